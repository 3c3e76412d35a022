"""Device translation interface.

The pipeline never interprets device IR itself. Lowering to LLVM IR,
generating per-core linker inputs, serializing the CDO and converting the
device to control packets are delegated to a ``DeviceTranslator``.

IMPLEMENTATION REQUIREMENTS:
----------------------------
1. Never mutate the module passed in (the pipeline hands over clones where
   the translation is destructive, but implementations must not rely on it)
2. Raise the ``TranslationError`` subclass named on each method
3. Honour ``PassManagerOptions`` for IR printing and timing

``StubDeviceTranslator`` produces small, deterministic stand-ins for every
output so the whole pipeline can be exercised without the upstream
compiler. Replace it with a real implementation for production use.
"""

from __future__ import annotations

import logging
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .device import DeviceModule, ElfAssignment
from .exceptions import CdoGenerationFailedError, TranslationFailedError

logger = logging.getLogger(__name__)

CDO_FILES = ("aie_cdo_elfs.bin", "aie_cdo_init.bin", "aie_cdo_enable.bin")


@dataclass
class PassSpec:
    """One pass of a textual pass pipeline."""

    name: str
    options: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        if not self.options:
            return self.name
        opts = " ".join(f"{k}={v}" for k, v in self.options.items())
        return f"{self.name}{{{opts}}}"


def format_pipeline(passes: Sequence[PassSpec]) -> str:
    """Render passes as ``builtin.module(a,b{k=v},...)``."""
    return "builtin.module(" + ",".join(str(p) for p in passes) + ")"


@dataclass
class PassManagerOptions:
    """When (if ever) IR is printed between passes, and whether to time them."""

    print_ir_before_all: bool = False
    print_ir_after_all: bool = False
    print_ir_module_scope: bool = False
    timing: bool = False


class DeviceTranslator(ABC):
    """Translations from a device module to the pipeline's inputs."""

    @abstractmethod
    def lower_to_llvm_ir(
        self,
        module: DeviceModule,
        pipeline: Sequence[PassSpec],
        options: PassManagerOptions,
    ) -> str:
        """Run ``pipeline`` on ``module`` and return textual LLVM IR.

        Raises:
            LoweringFailedError: If a pass fails
            TranslationFailedError: If the lowered module can't be exported
        """
        pass

    @abstractmethod
    def translate_to_bcf(self, module: DeviceModule, col: int, row: int) -> str:
        """Return the chess linker configuration (BCF) for one core.

        Raises:
            TranslationFailedError: If the core can't be described
        """
        pass

    @abstractmethod
    def translate_to_ldscript(self, module: DeviceModule, col: int, row: int) -> str:
        """Return the peano linker script for one core.

        Raises:
            TranslationFailedError: If the core can't be described
        """
        pass

    @abstractmethod
    def translate_to_cdo(
        self, module: DeviceModule, elf_files: ElfAssignment, work_dir: Path
    ) -> list[Path]:
        """Write the elfs/init/enable CDO blobs into ``work_dir``.

        All ELFs named in ``elf_files`` are expected in ``work_dir``.

        Returns:
            Paths of the three blobs, in elfs/init/enable order

        Raises:
            CdoGenerationFailedError: If serialization fails
        """
        pass

    @abstractmethod
    def convert_to_control_packets(
        self,
        module: DeviceModule,
        pipeline: Sequence[PassSpec],
        options: PassManagerOptions,
    ) -> str:
        """Apply the control-packet passes and return the resulting IR.

        Raises:
            LoweringFailedError: If a pass fails
        """
        pass


# =============================================================================
# Stub Implementation
# =============================================================================


class StubDeviceTranslator(DeviceTranslator):
    """Stub translator for development and testing.

    Emits one empty function per core, fixed memory layouts and CDO blobs
    that embed the ELF images verbatim.
    """

    PROGRAM_MEMORY = 0x20000
    DATA_ORIGIN = 0x70400
    DATA_LENGTH = 0xFC00
    STACK_SIZE = 0x400

    def lower_to_llvm_ir(
        self,
        module: DeviceModule,
        pipeline: Sequence[PassSpec],
        options: PassManagerOptions,
    ) -> str:
        if options.print_ir_before_all or options.print_ir_after_all:
            logger.info("IR for %s:\n%s", module.name, module.body)
        logger.debug("Lowering %s with %s", module.name, format_pipeline(pipeline))

        lines = [
            "; ModuleID = 'LLVMDialectModule'",
            'source_filename = "LLVMDialectModule"',
            "",
        ]
        for tile in module.core_tiles():
            lines.append(f"define void @core_{tile.col}_{tile.row}() {{")
            lines.append("  ret void")
            lines.append("}")
            lines.append("")
        return "\n".join(lines)

    def _core_symbol(self, module: DeviceModule, col: int, row: int) -> str:
        tile = module.get_tile(col, row)
        if tile is None or tile.core is None:
            raise TranslationFailedError(f"no core at tile ({col}, {row})")
        return f"core_{col}_{row}"

    def translate_to_bcf(self, module: DeviceModule, col: int, row: int) -> str:
        symbol = self._core_symbol(module, col, row)
        return (
            "_entry_point _main_init\n"
            f"_symbol {symbol} _after _main_init\n"
            "_symbol _main_init 0\n"
            f"_reserved DMb 0x00000 0x{self.DATA_ORIGIN:05x}\n"
            f"_stack DM_stack 0x{self.DATA_ORIGIN:05x} 0x{self.STACK_SIZE:x}\n"
            f"_resolve _main {symbol}\n"
        )

    def translate_to_ldscript(self, module: DeviceModule, col: int, row: int) -> str:
        symbol = self._core_symbol(module, col, row)
        return (
            "MEMORY\n"
            "{\n"
            f"   program (RX) : ORIGIN = 0, LENGTH = 0x{self.PROGRAM_MEMORY:07X}\n"
            f"   data (!RX) : ORIGIN = 0x{self.DATA_ORIGIN:X}, LENGTH = 0x{self.DATA_LENGTH:X}\n"
            "}\n"
            "ENTRY(_main_init)\n"
            "SECTIONS\n"
            "{\n"
            "  . = 0x0;\n"
            "  .text : { *(.text*) } > program\n"
            f"  . = 0x{self.DATA_ORIGIN:X};\n"
            f"  _sp_start_value_DM_stack = .;\n"
            f"  . += 0x{self.STACK_SIZE:X};\n"
            "  .data : { *(.data*) *(.rodata*) } > data\n"
            "  .bss : { *(.bss*) } > data\n"
            "}\n"
            f"PROVIDE(_main = {symbol});\n"
        )

    def translate_to_cdo(
        self, module: DeviceModule, elf_files: ElfAssignment, work_dir: Path
    ) -> list[Path]:
        work_dir = Path(work_dir)
        elfs_blob = bytearray()
        for (col, row), name in sorted(elf_files.items()):
            elf_path = work_dir / name
            if not elf_path.exists():
                raise CdoGenerationFailedError(
                    f"ELF for core ({col}, {row}) not found: {elf_path}"
                )
            data = elf_path.read_bytes()
            elfs_blob += struct.pack("<III", col, row, len(data)) + data

        init_blob = bytearray()
        for tile in module.tiles:
            init_blob += struct.pack("<IIB", tile.col, tile.row, 1 if tile.has_core else 0)

        enable_blob = bytearray()
        for col, row in sorted(elf_files):
            enable_blob += struct.pack("<II", col, row)

        paths = []
        for name, blob in zip(CDO_FILES, (elfs_blob, init_blob, enable_blob)):
            path = work_dir / name
            path.write_bytes(bytes(blob))
            paths.append(path)
        return paths

    def convert_to_control_packets(
        self,
        module: DeviceModule,
        pipeline: Sequence[PassSpec],
        options: PassManagerOptions,
    ) -> str:
        lines = [f"// {format_pipeline(pipeline)}", "module {"]
        for tile in module.core_tiles():
            lines.append(f"  amdaie.npu.control_packet tile({tile.col}, {tile.row})")
        lines.append("}")
        return "\n".join(lines) + "\n"
