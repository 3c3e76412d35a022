"""Peano (llvm-aie) core compiler.

The unified object is built with ``opt`` then ``llc``; core ELFs are linked
by running ``clang`` as the linker driver so that libc, libm and crt paths
are injected into the ``ld.lld`` invocation automatically.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..device import DeviceModule
from ..exceptions import (
    BackendCompileFailedError,
    ExecutionError,
    LinkFailedError,
    MalformedFlagStringError,
    TranslationError,
)
from ..models import BuildConfig
from ..tools import find_peano, run_tool
from ..translation import DeviceTranslator
from .base import CoreCompiler

logger = logging.getLogger(__name__)


def _default_opt_args(ir_in: str, ir_out: str) -> list[str]:
    # Mostly copied from the llvm-aie clang driver defaults for AIE.
    return [
        # peano has no proper vectorization cost model for AIE
        "-vectorize-loops=false",
        "-vectorize-slp=false",
        # an if-then-else cascade needs 5 delay slots for the condition and
        # 5 for one branch, so speculating 10 instructions is fine
        "--two-entry-phi-node-folding-threshold=10",
        # optimize before mandatory inlining, or noalias attributes get lost
        "-mandatory-inlining-before-opt=false",
        "-basic-aa-full-phi-analysis=true",
        "-basic-aa-max-lookup-search-depth=10",
        "-O3",
        "--inline-threshold=10",
        # missing from libc
        "--disable-builtin=memset",
        "-S",
        ir_in,
        "-o",
        ir_out,
    ]


def _is_opt_level_flag(flag: str) -> bool:
    return len(flag) == 3 and flag.startswith("-O")


def _in_contention(a: str, b: str) -> bool:
    """True if ``opt`` would reject ``a`` and ``b`` together."""
    return _is_opt_level_flag(a) and _is_opt_level_flag(b)


def make_peano_opt_args(ir_in: str, ir_out: str, additional_flags: str = "") -> list[str]:
    """Build the argument list for peano's ``opt``.

    ``additional_flags`` must look like ``"-flag1 -flag2"`` including the
    double quotes. Each flag is appended, unless it conflicts with a flag
    already present (two optimization levels), in which case it takes that
    flag's place.

    Raises:
        MalformedFlagStringError: If the flags aren't wrapped in double quotes
    """
    args = _default_opt_args(ir_in, ir_out)
    if not additional_flags:
        return args

    if len(additional_flags) < 2 or additional_flags[0] != '"' or additional_flags[-1] != '"':
        raise MalformedFlagStringError(
            'additional peano opt flags must be of the form "-flag1 -flag2 ...". '
            'Specifically it must start and end with ".'
        )

    for flag in additional_flags[1:-1].split():
        for i, existing in enumerate(args):
            if _in_contention(existing, flag):
                args[i] = flag
                break
        else:
            args.append(flag)
    return args


class PeanoCompiler(CoreCompiler):
    """Open-source backend."""

    def __init__(self, config: BuildConfig, peano_dir: Optional[Path] = None):
        super().__init__(name="peano", config=config)
        self._peano_dir = peano_dir

    @property
    def peano_dir(self) -> Path:
        if self._peano_dir is None:
            self._peano_dir = find_peano(self.config.peano_dir)
        return self._peano_dir

    @property
    def target_lower(self) -> str:
        return self.config.effective_target_arch.lower()

    def _bin(self, tool: str) -> Path:
        return self.peano_dir / "bin" / tool

    def check_toolchain(self) -> None:
        logger.debug("Using peano at %s", self.peano_dir)

    def compile_unified_object(self, llvm_ir: str, output_file: Path, work_dir: Path) -> Path:
        ir_file = work_dir / "input.ll"
        opt_ir_file = work_dir / "input.opt.ll"
        try:
            ir_file.write_text(llvm_ir)
        except OSError as e:
            raise BackendCompileFailedError(
                f"Failed to dump to disk input.ll because: {e}"
            ) from e

        opt_args = make_peano_opt_args(
            str(ir_file), str(opt_ir_file), self.config.additional_peano_opt_flags
        )
        try:
            run_tool(self._bin("opt"), opt_args, self.verbose)
        except ExecutionError as e:
            raise BackendCompileFailedError(f"Failed to optimize ll with peano: {e}") from e

        llc_args = [
            str(opt_ir_file),
            "-O2",
            f"--march={self.target_lower}",
            "--function-sections",
            "--filetype=obj",
            "-o",
            str(output_file),
        ]
        try:
            run_tool(self._bin("llc"), llc_args, self.verbose)
        except ExecutionError as e:
            raise BackendCompileFailedError(f"Failed to assemble ll with peano: {e}") from e
        return output_file

    def link_core_elf(
        self,
        module: DeviceModule,
        translator: DeviceTranslator,
        col: int,
        row: int,
        unified_object: Path,
        elf_file: Path,
        work_dir: Path,
        ukernel_object: Path | None = None,
    ) -> Path:
        ldscript = work_dir / (elf_file.name + ".ld")
        try:
            ldscript.write_text(translator.translate_to_ldscript(module, col, row))
        except (OSError, TranslationError) as e:
            raise LinkFailedError(col, row, f"failed to write linker script: {e}") from e

        flags = [str(unified_object)]
        if ukernel_object is not None:
            flags.append(str(ukernel_object))
        flags += [
            f"--target={self.target_lower}-none-unknown-elf",
            "-Wl,--gc-sections",
            "-Wl,--orphan-handling=error",
            f"-Wl,-T,{ldscript}",
            "-o",
            str(elf_file),
        ]
        if self.verbose:
            flags.append("-v")

        try:
            run_tool(self._bin("clang"), flags, self.verbose)
        except ExecutionError as e:
            raise LinkFailedError(col, row, str(e)) from e
        return elf_file
