"""Per-core ELF generation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..backends import ChessCompiler, CoreCompiler
from ..device import DeviceModule, ElfAssignment
from ..exceptions import AssembleFailedError, BackendCompileFailedError, ResolutionError
from ..models import BuildConfig
from ..translation import DeviceTranslator

logger = logging.getLogger(__name__)

UKERNEL_REQUIRES_CHESS = "compiling ukernels currently requires chess (even if you're using peano)"


def default_elf_name(col: int, row: int) -> str:
    return f"core_{col}_{row}.elf"


def assign_elf_files(module: DeviceModule) -> ElfAssignment:
    """Map every core to its ELF filename.

    A name already set on the core is kept; other cores get
    ``core_<col>_<row>.elf``. Tiles without a core are left out.
    """
    assignment: ElfAssignment = {}
    for tile in module.core_tiles():
        assignment[tile.coords] = tile.core.elf_file or default_elf_name(tile.col, tile.row)
    return assignment


def check_ukernel_toolchain(chess: ChessCompiler) -> None:
    """Resolve chess for microkernel compilation.

    Raises:
        ResolutionError: Same type as the locator raised, with a message
            stating that microkernels need chess
    """
    try:
        chess.check_toolchain()
    except ResolutionError as e:
        raise type(e)(f"{UKERNEL_REQUIRES_CHESS}: {e}") from e


def prepare_ukernel(
    config: BuildConfig, work_dir: Path, vitis_compiler: Optional[ChessCompiler] = None
) -> Optional[Path]:
    """Return the matmul microkernel object, or None if none was requested.

    Microkernels are always compiled with chess, whatever the core backend.

    Raises:
        ToolchainNotFoundError, LicenseMissingError, ToolchainIncompleteError:
            If chess can't be resolved
        BackendCompileFailedError: If the microkernel fails to compile
    """
    if not config.wants_matmul_ukernel:
        return None

    chess = vitis_compiler or ChessCompiler(config)
    check_ukernel_toolchain(chess)
    try:
        return chess.matmul_ukernel_object(work_dir)
    except AssembleFailedError as e:
        raise BackendCompileFailedError(str(e)) from e


class CoreElfBuilder:
    """Link one ELF per core against the unified object."""

    def __init__(
        self,
        config: BuildConfig,
        translator: DeviceTranslator,
        compiler: CoreCompiler,
        ukernel_compiler: Optional[ChessCompiler] = None,
    ):
        self.config = config
        self.translator = translator
        self.compiler = compiler
        self.ukernel_compiler = ukernel_compiler

    def build(self, module: DeviceModule, unified_object: Path, work_dir: Path) -> ElfAssignment:
        """Link every core's ELF into ``work_dir``.

        Returns:
            The (col, row) -> ELF filename assignment

        Raises:
            LinkFailedError: If any core fails to link
        """
        ukernel_object = prepare_ukernel(self.config, work_dir, self.ukernel_compiler)

        assignment = assign_elf_files(module)
        for (col, row), name in assignment.items():
            elf_file = work_dir / name
            logger.debug("Linking core (%d, %d) into %s", col, row, elf_file)
            self.compiler.link_core_elf(
                module,
                self.translator,
                col,
                row,
                unified_object,
                elf_file,
                work_dir,
                ukernel_object=ukernel_object,
            )
        return assignment
