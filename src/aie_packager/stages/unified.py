"""Unified object generation.

The device module is lowered to LLVM IR once for the whole device and
compiled into a single object that every core ELF links against.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..backends import CoreCompiler
from ..device import DeviceModule
from ..models import Backend, BuildConfig
from ..translation import DeviceTranslator, PassManagerOptions, PassSpec, format_pipeline

logger = logging.getLogger(__name__)

UNIFIED_OBJECT = "input.o"


def lowering_pipeline(lower_to_chess: bool) -> list[PassSpec]:
    """Core-to-standard followed by the conversions to the LLVM dialect."""
    return [
        PassSpec("amdaie-core-to-standard", {"lower-to-chess": str(lower_to_chess).lower()}),
        PassSpec("finalize-memref-to-llvm"),
        PassSpec("canonicalize"),
        PassSpec("cse"),
        PassSpec("convert-func-to-llvm", {"use-bare-ptr-memref-call-conv": "true"}),
        PassSpec("convert-arith-to-llvm"),
        PassSpec("canonicalize"),
        PassSpec("cse"),
        PassSpec("convert-cf-to-llvm"),
        PassSpec("canonicalize"),
        PassSpec("cse"),
    ]


def pass_manager_options(config: BuildConfig) -> PassManagerOptions:
    return PassManagerOptions(
        print_ir_before_all=config.print_ir_before_all,
        print_ir_after_all=config.print_ir_after_all,
        print_ir_module_scope=config.print_ir_module_scope,
        timing=config.timing,
    )


class UnifiedObjectBuilder:
    """Lower a device module and compile it into ``input.o``."""

    def __init__(
        self, config: BuildConfig, translator: DeviceTranslator, compiler: CoreCompiler
    ):
        self.config = config
        self.translator = translator
        self.compiler = compiler

    def build(self, module: DeviceModule, work_dir: Path) -> Path:
        """Build the unified object in ``work_dir``.

        Raises:
            LoweringFailedError: If the lowering passes fail
            TranslationFailedError: If LLVM IR can't be produced
            BackendCompileFailedError: If the backend fails to compile it
        """
        pipeline = lowering_pipeline(self.config.backend == Backend.CHESS)
        if self.config.verbose:
            logger.info("Running: %s", format_pipeline(pipeline))

        # Lower a copy; the caller's module is reused by later stages.
        copy = module.clone()
        llvm_ir = self.translator.lower_to_llvm_ir(
            copy, pipeline, pass_manager_options(self.config)
        )
        del copy

        output = work_dir / UNIFIED_OBJECT
        return self.compiler.compile_unified_object(llvm_ir, output, work_dir)
