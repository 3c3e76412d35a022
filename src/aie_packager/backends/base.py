"""Base class for core compilers."""

from abc import ABC, abstractmethod
from pathlib import Path

from ..device import DeviceModule
from ..models import BuildConfig, NpuFamily
from ..translation import DeviceTranslator


class CoreCompiler(ABC):
    """A backend able to build the unified object and link core ELFs.

    Implementations handle one toolchain: chess (Vitis) or peano
    (llvm-aie). The pipeline only talks to this interface.
    """

    def __init__(self, name: str, config: BuildConfig):
        self.name = name
        self.config = config

    @property
    def family(self) -> NpuFamily:
        return self.config.family

    @property
    def verbose(self) -> bool:
        return self.config.verbose

    @abstractmethod
    def check_toolchain(self) -> None:
        """Resolve the toolchain, raising a ``ResolutionError`` if unusable."""
        pass

    @abstractmethod
    def compile_unified_object(self, llvm_ir: str, output_file: Path, work_dir: Path) -> Path:
        """Compile textual LLVM IR for the whole device into one object.

        Args:
            llvm_ir: Lowered device code
            output_file: Object file to produce
            work_dir: Directory for intermediate files

        Returns:
            Path of the object file

        Raises:
            BackendCompileFailedError: If any backend tool fails
        """
        pass

    @abstractmethod
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
        """Link the ELF for the core at (col, row).

        Raises:
            LinkFailedError: If the linker inputs or the link itself fail
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
