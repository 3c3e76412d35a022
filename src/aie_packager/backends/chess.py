"""Chess (Vitis xchesscc) core compiler.

xchesscc runs with a replacement environment that puts the family's chess
binaries first on PATH and points LD_LIBRARY_PATH, RDI_DATADIR and the
license variable at the Vitis install.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from ..assembler import assemble_string, ensure_object
from ..config import ENV_LD_LIBRARY_PATH
from ..device import DeviceModule
from ..exceptions import (
    AssembleFailedError,
    BackendCompileFailedError,
    ExecutionError,
    LinkFailedError,
    TranslationError,
)
from ..kernels import CHESS_INTRINSIC_WRAPPER, load_kernel_source
from ..models import BuildConfig, NpuFamily
from ..tools import VitisInstall, find_vitis, run_tool
from ..tools.runner import ToolRunResult
from ..translation import DeviceTranslator
from .base import CoreCompiler

logger = logging.getLogger(__name__)


def make_chess_args(
    vitis: VitisInstall, work_dir: Path, family: NpuFamily, verbose: bool = False
) -> tuple[Path, list[str]]:
    """Return the xchesscc executable and its common flags."""
    aietools = vitis.aietools
    flags = [
        # parallel compilation (function + file level)
        "-j1",
        # processor
        "-pme",
        # processor model directory
        f"-P{aietools / 'data' / family.model_dir / 'lib'}",
        # use LLVM frontend (chess-clang)
        "-f",
        "-CRelease_LLVM",
        # work directory
        f"+w{work_dir}",
        # for adf headers
        "-D__AIENGINE__",
        # for aie_api headers
        f"-D__AIE_ARCH__={family.arch_version}",
        f"-D__AIEARCH__={family.arch_version}",
        f"-I{aietools / 'include'}",
    ]
    if verbose:
        # disassemble output
        flags.append("-d")
    return vitis.xchesscc, flags


def make_chess_env(vitis: VitisInstall, family: NpuFamily) -> dict[str, str]:
    """Environment for xchesscc; replaces the caller's environment."""
    aietools = vitis.aietools
    chess_bin = vitis.chess_bin_dir(family.version)
    lnx64o = aietools / "lib" / "lnx64.o"
    dot_lib = aietools / "lnx64" / "tools" / "dot" / "lib"
    path = os.environ.get("PATH", "")
    ld_library_path = os.environ.get(ENV_LD_LIBRARY_PATH, "")
    return {
        "PATH": os.pathsep.join([str(chess_bin), path]),
        ENV_LD_LIBRARY_PATH: os.pathsep.join([str(lnx64o), str(dot_lib), ld_library_path]),
        "RDI_DATADIR": str(aietools / "data"),
        "XILINXD_LICENSE_FILE": vitis.license_file,
    }


class ChessCompiler(CoreCompiler):
    """Vendor backend. Also used to build microkernels for either backend."""

    def __init__(self, config: BuildConfig, vitis: Optional[VitisInstall] = None):
        super().__init__(name="chess", config=config)
        self._vitis = vitis

    @property
    def vitis(self) -> VitisInstall:
        if self._vitis is None:
            self._vitis = find_vitis(self.config.vitis_dir, self.config.npu_version)
        return self._vitis

    def run_xchesscc(self, args: Sequence[str], work_dir: Path) -> ToolRunResult:
        exe, flags = make_chess_args(self.vitis, work_dir, self.family, self.verbose)
        env = make_chess_env(self.vitis, self.family)
        return run_tool(exe, [*flags, *args], self.verbose, env)

    def assembler_for(self, work_dir: Path):
        """FileAssembler compiling one file with ``xchesscc -c``."""

        def assemble(input_file: Path, output_file: Path) -> ToolRunResult:
            return self.run_xchesscc(["-c", str(input_file), "-o", str(output_file)], work_dir)

        return assemble

    def intrinsics_object(self, work_dir: Path) -> Path:
        """The memoized chess intrinsics wrapper object for the configured family."""
        return ensure_object(
            self.assembler_for(work_dir),
            load_kernel_source(CHESS_INTRINSIC_WRAPPER),
            CHESS_INTRINSIC_WRAPPER,
            self.family.intrinsics_object,
            self.config.effective_cache_dir,
            work_dir,
        )

    def matmul_ukernel_object(self, work_dir: Path) -> Path:
        """The memoized matmul microkernel object for the configured family."""
        return ensure_object(
            self.assembler_for(work_dir),
            load_kernel_source(self.family.ukernel_source),
            self.family.ukernel_source,
            self.family.ukernel_object,
            self.config.effective_cache_dir,
            work_dir,
        )

    def check_toolchain(self) -> None:
        logger.debug("Using Vitis at %s", self.vitis.root)

    def compile_unified_object(self, llvm_ir: str, output_file: Path, work_dir: Path) -> Path:
        self.check_toolchain()
        try:
            return assemble_string(
                self.assembler_for(work_dir),
                llvm_ir,
                "input.ll",
                output_file,
                work_dir,
                work_dir,
            )
        except AssembleFailedError as e:
            raise BackendCompileFailedError(str(e)) from e

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
        try:
            intrinsics = self.intrinsics_object(work_dir)
        except AssembleFailedError as e:
            raise LinkFailedError(col, row, str(e)) from e

        bcf = work_dir / (elf_file.name + ".bcf")
        try:
            bcf.write_text(translator.translate_to_bcf(module, col, row))
        except (OSError, TranslationError) as e:
            raise LinkFailedError(col, row, f"Failed to generate BCF: {e}") from e

        args = [str(unified_object), str(intrinsics)]
        if ukernel_object is not None:
            args.append(str(ukernel_object))
        args += ["+l", str(bcf), "-o", str(elf_file)]
        try:
            self.run_xchesscc(args, work_dir)
        except ExecutionError as e:
            raise LinkFailedError(col, row, str(e)) from e
        return elf_file
