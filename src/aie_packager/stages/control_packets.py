"""Control-packet intermediate artifact."""

from __future__ import annotations

from pathlib import Path

from ..device import DeviceModule
from ..translation import DeviceTranslator, PassManagerOptions, PassSpec

CONTROL_PACKETS_FILE = "control_packets.mlir"


def control_packet_pipeline(path_to_elfs: Path) -> list[PassSpec]:
    return [
        PassSpec("amdaie-convert-device-to-control-packets", {"path-to-elfs": str(path_to_elfs)}),
        PassSpec("amdaie-split-control-packet-data"),
    ]


def emit_control_packets(
    module: DeviceModule,
    translator: DeviceTranslator,
    work_dir: Path,
    options: PassManagerOptions,
) -> Path:
    """Convert a copy of ``module`` to control packets and write the IR.

    The ELFs are looked up in ``work_dir``, so this runs after the core
    ELFs are linked.

    Raises:
        LoweringFailedError: If either pass fails
    """
    text = translator.convert_to_control_packets(
        module.clone(), control_packet_pipeline(work_dir), options
    )
    output = Path(work_dir) / CONTROL_PACKETS_FILE
    output.write_text(text)
    return output
