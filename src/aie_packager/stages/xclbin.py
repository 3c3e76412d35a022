"""XCLBin container packaging.

Writes the three JSON sections (memory topology, AIE partition, kernels),
regenerates the PDI and drives ``iree-aie-xclbinutil``. When a base
container is given, its partition PDIs are kept and the new PDI is
appended after them.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from ..bootgen import BootImageGenerator
from ..exceptions import ExecutionError, PackagingFailedError
from ..identifiers import UUIDGenerator, default_uuid_generator
from ..tools import XCLBINUTIL, find_tool, run_tool
from .cdo import PDI_FILE, generate_pdi

logger = logging.getLogger(__name__)

MEM_TOPOLOGY_FILE = "mem_topology.json"
AIE_PARTITION_FILE = "aie_partition.json"
AIE_INPUT_PARTITION_FILE = "aie_input_partition.json"
KERNELS_FILE = "kernels.json"

# (name, memory connection, address qualifier, type, offset)
KERNEL_ARGUMENTS = [
    ("opcode", None, "SCALAR", "uint64_t", "0x00"),
    ("instr", "SRAM", "GLOBAL", "char *", "0x08"),
    ("ninstr", None, "SCALAR", "uint32_t", "0x10"),
    ("bo0", "HOST", "GLOBAL", "void*", "0x14"),
    ("bo1", "HOST", "GLOBAL", "void*", "0x1c"),
    ("bo2", "HOST", "GLOBAL", "void*", "0x24"),
    ("bo3", "HOST", "GLOBAL", "void*", "0x2c"),
    ("bo4", "HOST", "GLOBAL", "void*", "0x34"),
    ("bo5", "HOST", "GLOBAL", "void*", "0x3c"),
]


def mem_topology() -> dict[str, Any]:
    """Host DDR and on-chip SRAM banks."""
    return {
        "mem_topology": {
            "m_count": "2",
            "m_mem_data": [
                {
                    "m_type": "MEM_DRAM",
                    "m_used": "1",
                    "m_sizeKB": "0x10000",
                    "m_tag": "HOST",
                    "m_base_address": "0x4000000",
                },
                {
                    "m_type": "MEM_DRAM",
                    "m_used": "1",
                    "m_sizeKB": "0xc000",
                    "m_tag": "SRAM",
                    "m_base_address": "0x4000000",
                },
            ],
        }
    }


def aie_partition(pdi_uuid: str, kernel_id: str) -> dict[str, Any]:
    """Partition section holding a single PDI."""
    return {
        "aie_partition": {
            "name": "QoS",
            "operations_per_cycle": "2048",
            "inference_fingerprint": "23423",
            "pre_post_fingerprint": "12345",
            "partition": {"column_width": 4, "start_columns": [1]},
            "PDIs": [
                {
                    "uuid": pdi_uuid,
                    "file_name": f"./{PDI_FILE}",
                    "cdo_groups": [
                        {
                            "name": "DPU",
                            "type": "PRIMARY",
                            "pdi_id": "0x01",
                            "dpu_kernel_ids": [kernel_id],
                            "pre_cdo_groups": ["0xC1"],
                        }
                    ],
                }
            ],
        }
    }


def kernel_entry(name: str, kernel_id: str, instance: str) -> dict[str, Any]:
    arguments = []
    for arg_name, connection, qualifier, arg_type, offset in KERNEL_ARGUMENTS:
        arg = {"name": arg_name}
        if connection:
            arg["memory-connection"] = connection
        arg.update({"address-qualifier": qualifier, "type": arg_type, "offset": offset})
        arguments.append(arg)

    return {
        "name": name,
        "type": "dpu",
        "extended-data": {"subtype": "DPU", "functional": "0", "dpu_kernel_id": kernel_id},
        "arguments": arguments,
        "instances": [{"name": instance}],
    }


def kernels(name: str, kernel_id: str, instance: str) -> dict[str, Any]:
    return {"ps-kernels": {"kernels": [kernel_entry(name, kernel_id, instance)]}}


def merge_partitions(base: dict[str, Any], new: dict[str, Any]) -> dict[str, Any]:
    """Append ``new``'s PDIs after ``base``'s, returning the updated base.

    Raises:
        PackagingFailedError: If either document lacks ``aie_partition.PDIs``
    """
    try:
        base_pdis = base["aie_partition"]["PDIs"]
        new_pdis = new["aie_partition"]["PDIs"]
    except (KeyError, TypeError) as e:
        raise PackagingFailedError(f"malformed AIE partition section: missing {e}") from e
    if not isinstance(base_pdis, list) or not isinstance(new_pdis, list):
        raise PackagingFailedError("malformed AIE partition section: PDIs is not a list")
    base_pdis.extend(new_pdis)
    return base


def _write_json(data: dict[str, Any], path: Path) -> Path:
    try:
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        raise PackagingFailedError(f"failed to dump to disk {path.name} because: {e}") from e
    return path


def _read_json(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise PackagingFailedError(f"failed to read {path.name} because: {e}") from e


class XclbinPackager:
    """Package the PDI and its metadata into an XCLBin container."""

    def __init__(
        self,
        bootgen: BootImageGenerator,
        uuid_generator: Optional[UUIDGenerator] = None,
        kernel_id: str = "0x101",
        kernel_name: str = "MLIR_AIE",
        instance_name: str = "MLIRAIEV1",
        install_dir: Optional[Path] = None,
        verbose: bool = False,
    ):
        self.bootgen = bootgen
        self.uuid_generator = uuid_generator or default_uuid_generator()
        self.kernel_id = kernel_id
        self.kernel_name = kernel_name
        self.instance_name = instance_name
        self.install_dir = install_dir
        self.verbose = verbose

    def write_metadata(self, work_dir: Path) -> tuple[Path, Path, Path]:
        """Write the memory topology, partition and kernels JSON files."""
        mem = _write_json(mem_topology(), work_dir / MEM_TOPOLOGY_FILE)
        part = _write_json(
            aie_partition(self.uuid_generator(), self.kernel_id),
            work_dir / AIE_PARTITION_FILE,
        )
        kern = _write_json(
            kernels(self.kernel_name, self.kernel_id, self.instance_name),
            work_dir / KERNELS_FILE,
        )
        return mem, part, kern

    def _run(self, xclbinutil: Path, args: list[str], what: str) -> None:
        try:
            run_tool(xclbinutil, args, self.verbose)
        except ExecutionError as e:
            output = getattr(e, "output", "")
            raise PackagingFailedError(f"failed to {what} with {XCLBINUTIL}: {e}", output) from e

    def merge_base_partition(self, xclbinutil: Path, base: Path, work_dir: Path) -> None:
        """Dump the base container's partition and fold our PDIs into it."""
        input_part = work_dir / AIE_INPUT_PARTITION_FILE
        self._run(
            xclbinutil,
            [
                "--dump-section",
                f"AIE_PARTITION:JSON:{input_part}",
                "--force",
                "--input",
                str(base),
            ],
            "dump the base AIE partition",
        )
        part = work_dir / AIE_PARTITION_FILE
        merged = merge_partitions(_read_json(input_part), _read_json(part))
        _write_json(merged, part)

    def package(self, output: Path, work_dir: Path, input_xclbin: Optional[Path] = None) -> Path:
        """Build the container at ``output``.

        Raises:
            ToolNotFoundError: If iree-aie-xclbinutil can't be found
            BootImageFailedError: If the PDI can't be regenerated
            PackagingFailedError: If a JSON section or xclbinutil fails
        """
        work_dir = Path(work_dir)
        mem, part, kern = self.write_metadata(work_dir)
        generate_pdi(work_dir / PDI_FILE, work_dir, self.bootgen)

        xclbinutil = find_tool(XCLBINUTIL, self.install_dir)

        if input_xclbin is None:
            args = ["--add-replace-section", f"MEM_TOPOLOGY:JSON:{mem}"]
        else:
            self.merge_base_partition(xclbinutil, Path(input_xclbin), work_dir)
            args = ["--input", str(input_xclbin)]
        args += [
            "--add-kernel",
            str(kern),
            "--add-replace-section",
            f"AIE_PARTITION:JSON:{part}",
            "--force",
            "--output",
            str(output),
        ]
        self._run(xclbinutil, args, "package the xclbin")
        logger.info("Wrote %s", output)
        return Path(output)
