"""Tests for XCLBin metadata and packaging."""

import json

import pytest

from aie_packager.bootgen import StubBootgen
from aie_packager.exceptions import PackagingFailedError, ToolNotFoundError
from aie_packager.identifiers import RandomUUIDGenerator
from aie_packager.stages.xclbin import (
    XclbinPackager,
    aie_partition,
    kernels,
    mem_topology,
    merge_partitions,
)

EXPECTED_OFFSETS = ["0x00", "0x08", "0x10", "0x14", "0x1c", "0x24", "0x2c", "0x34", "0x3c"]


class TestMetadata:
    def test_mem_topology(self):
        banks = mem_topology()["mem_topology"]["m_mem_data"]
        assert [(b["m_tag"], b["m_sizeKB"]) for b in banks] == [("HOST", "0x10000"), ("SRAM", "0xc000")]
        assert {b["m_base_address"] for b in banks} == {"0x4000000"}

    def test_partition(self):
        part = aie_partition("uuid-1", "0x101")["aie_partition"]
        assert part["operations_per_cycle"] == "2048"
        assert part["partition"] == {"column_width": 4, "start_columns": [1]}
        (pdi,) = part["PDIs"]
        assert pdi["uuid"] == "uuid-1"
        assert pdi["file_name"] == "./design.pdi"
        (group,) = pdi["cdo_groups"]
        assert group["dpu_kernel_ids"] == ["0x101"]
        assert group["pre_cdo_groups"] == ["0xC1"]

    def test_kernel_arguments(self):
        (kernel,) = kernels("MLIR_AIE", "0x101", "MLIRAIEV1")["ps-kernels"]["kernels"]
        assert kernel["extended-data"] == {
            "subtype": "DPU",
            "functional": "0",
            "dpu_kernel_id": "0x101",
        }
        assert [a["offset"] for a in kernel["arguments"]] == EXPECTED_OFFSETS
        assert kernel["arguments"][1] == {
            "name": "instr",
            "memory-connection": "SRAM",
            "address-qualifier": "GLOBAL",
            "type": "char *",
            "offset": "0x08",
        }
        assert "memory-connection" not in kernel["arguments"][0]
        assert kernel["instances"] == [{"name": "MLIRAIEV1"}]


class TestMergePartitions:
    def test_appends_after_base(self):
        base = {"aie_partition": {"name": "base", "PDIs": [{"uuid": "a"}, {"uuid": "b"}]}}
        new = {"aie_partition": {"PDIs": [{"uuid": "c"}]}}
        merged = merge_partitions(base, new)
        assert [p["uuid"] for p in merged["aie_partition"]["PDIs"]] == ["a", "b", "c"]
        assert merged["aie_partition"]["name"] == "base"

    @pytest.mark.parametrize(
        "base",
        [{}, {"aie_partition": {}}, {"aie_partition": {"PDIs": "x"}}, {"aie_partition": None}],
    )
    def test_malformed_base(self, base):
        with pytest.raises(PackagingFailedError):
            merge_partitions(base, aie_partition("u", "0x101"))


class TestXclbinPackager:
    def _prepare_cdo(self, work_dir):
        for name in ("aie_cdo_elfs.bin", "aie_cdo_init.bin", "aie_cdo_enable.bin"):
            (work_dir / name).write_bytes(b"cdo")

    def test_metadata_files(self, tmp_path):
        packager = XclbinPackager(StubBootgen(), RandomUUIDGenerator(seed=7))
        mem, part, kern = packager.write_metadata(tmp_path)
        assert json.loads(kern.read_text())["ps-kernels"]["kernels"][0]["name"] == "MLIR_AIE"
        # indent=2 output
        assert kern.read_text().startswith('{\n  "ps-kernels"')
        assert mem.name == "mem_topology.json"
        assert part.name == "aie_partition.json"

    def test_uuid_from_injected_generator(self, tmp_path):
        packager = XclbinPackager(StubBootgen(), lambda: "fixed-uuid")
        _, part, _ = packager.write_metadata(tmp_path)
        assert json.loads(part.read_text())["aie_partition"]["PDIs"][0]["uuid"] == "fixed-uuid"

    def test_without_base(self, tmp_path, toolchain):
        self._prepare_cdo(tmp_path)
        packager = XclbinPackager(StubBootgen(), install_dir=toolchain.install_dir)
        out = packager.package(tmp_path / "design.xclbin", tmp_path)
        (call,) = toolchain.calls("xclbinutil")
        assert call == [
            "--add-replace-section",
            f"MEM_TOPOLOGY:JSON:{tmp_path / 'mem_topology.json'}",
            "--add-kernel",
            str(tmp_path / "kernels.json"),
            "--add-replace-section",
            f"AIE_PARTITION:JSON:{tmp_path / 'aie_partition.json'}",
            "--force",
            "--output",
            str(tmp_path / "design.xclbin"),
        ]
        assert (tmp_path / "design.pdi").exists()
        container = json.loads(out.read_text())
        assert set(container["sections"]) == {"MEM_TOPOLOGY", "AIE_PARTITION"}

    def test_missing_xclbinutil(self, tmp_path):
        self._prepare_cdo(tmp_path)
        packager = XclbinPackager(StubBootgen(), install_dir=tmp_path / "nowhere")
        with pytest.raises(ToolNotFoundError):
            packager.package(tmp_path / "design.xclbin", tmp_path)
        assert not (tmp_path / "design.xclbin").exists()

    def test_tool_failure_carries_output(self, tmp_path, toolchain):
        self._prepare_cdo(tmp_path)
        toolchain.break_tool(toolchain.install_dir / "bin" / "iree-aie-xclbinutil", "xclbinutil")
        packager = XclbinPackager(StubBootgen(), install_dir=toolchain.install_dir)
        with pytest.raises(PackagingFailedError) as exc_info:
            packager.package(tmp_path / "design.xclbin", tmp_path)
        assert "simulated failure" in exc_info.value.output
