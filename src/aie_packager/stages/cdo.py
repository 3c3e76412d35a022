"""CDO serialization and PDI generation."""

from __future__ import annotations

import logging
from pathlib import Path

from ..bootgen import BootImageGenerator
from ..device import DeviceModule, ElfAssignment
from ..exceptions import BootImageFailedError
from ..translation import CDO_FILES, DeviceTranslator

logger = logging.getLogger(__name__)

BIF_FILE = "design.bif"
PDI_FILE = "design.pdi"


def render_bif(work_dir: Path) -> str:
    """Boot image description wrapping the three CDO blobs."""
    elfs, init, enable = (Path(work_dir) / name for name in CDO_FILES)
    return (
        "all:\n"
        "{\n"
        "  id_code = 0x14ca8093\n"
        "  extended_id_code = 0x01\n"
        "  image\n"
        "  {\n"
        "    name=aie_image, id=0x1c000000\n"
        "    { type=cdo\n"
        f"      file={elfs}\n"
        f"      file={init}\n"
        f"      file={enable}\n"
        "    }\n"
        "  }\n"
        "}"
    )


def generate_cdo(
    module: DeviceModule,
    translator: DeviceTranslator,
    elf_files: ElfAssignment,
    work_dir: Path,
) -> list[Path]:
    """Serialize the device configuration into ``work_dir``.

    Raises:
        CdoGenerationFailedError: If an ELF is missing or serialization fails
    """
    copy = module.clone()
    paths = translator.translate_to_cdo(copy, elf_files, work_dir)
    logger.debug("Wrote CDO blobs %s", [p.name for p in paths])
    return paths


def generate_pdi(output: Path, work_dir: Path, bootgen: BootImageGenerator) -> Path:
    """Write ``design.bif`` and run bootgen to produce ``output``.

    Raises:
        BootImageFailedError: If the BIF can't be written or bootgen fails
    """
    bif = Path(work_dir) / BIF_FILE
    try:
        bif.write_text(render_bif(work_dir))
    except OSError as e:
        raise BootImageFailedError(f"failed to write {bif}: {e}") from e

    argv = ["", "-arch", "versal", "-image", str(bif), "-o", str(output), "-w"]
    status = bootgen.main(argv)
    if status != 0:
        raise BootImageFailedError(f"bootgen failed with status {status} for {output}")
    return Path(output)
