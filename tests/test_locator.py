"""Tests for toolchain discovery."""

import pytest

from aie_packager.exceptions import (
    LicenseMissingError,
    ToolchainIncompleteError,
    ToolchainNotFoundError,
    ToolNotFoundError,
    UnsupportedNpuVersionError,
)
from aie_packager.tools import XCLBINUTIL, describe_search, find_peano, find_tool, find_vitis
from conftest import write_script


class TestFindVitis:
    def test_explicit_dir(self, toolchain, monkeypatch):
        monkeypatch.setenv("XILINXD_LICENSE_FILE", "2100@licserver")
        vitis = find_vitis(toolchain.vitis_dir, "npu1")
        assert vitis.root == toolchain.vitis_dir
        assert vitis.license_file == "2100@licserver"
        assert vitis.xchesscc.exists()

    def test_from_env(self, chess_env):
        vitis = find_vitis(None, "npu1")
        assert vitis.root == chess_env.vitis_dir

    def test_from_vpp_on_path(self, toolchain, monkeypatch, tmp_path):
        bin_dir = toolchain.vitis_dir / "bin"
        write_script(bin_dir / "v++", "#!/bin/sh\n")
        monkeypatch.setenv("PATH", str(bin_dir))
        monkeypatch.setenv("XILINXD_LICENSE_FILE", str(toolchain.license_file))
        assert find_vitis(None, "npu1").root == toolchain.vitis_dir.resolve()

    def test_not_found(self, monkeypatch, toolchain):
        monkeypatch.setenv("XILINXD_LICENSE_FILE", str(toolchain.license_file))
        with pytest.raises(ToolchainNotFoundError):
            find_vitis(None, "npu1")

    def test_no_license(self, toolchain):
        with pytest.raises(LicenseMissingError):
            find_vitis(toolchain.vitis_dir, "npu1")

    def test_lm_license_must_exist(self, toolchain, monkeypatch, tmp_path):
        monkeypatch.setenv("LM_LICENSE_FILE", str(tmp_path / "missing.lic"))
        with pytest.raises(LicenseMissingError):
            find_vitis(toolchain.vitis_dir, "npu1")

    def test_lm_license_file(self, toolchain, monkeypatch):
        monkeypatch.setenv("LM_LICENSE_FILE", str(toolchain.license_file))
        assert find_vitis(toolchain.vitis_dir, "npu1").license_file == str(toolchain.license_file)

    def test_missing_aietools(self, tmp_path, monkeypatch, toolchain):
        monkeypatch.setenv("XILINXD_LICENSE_FILE", str(toolchain.license_file))
        empty = tmp_path / "empty_vitis"
        empty.mkdir()
        with pytest.raises(ToolchainIncompleteError, match="aietools"):
            find_vitis(empty, "npu1")

    def test_missing_chess_compiler(self, chess_env):
        target = chess_env.vitis_dir / "aietools" / "tps" / "lnx64" / "target_aie2p"
        (target / "bin" / "LNa64bin" / "chess-llvm-link").unlink()
        assert find_vitis(None, "npu1")
        with pytest.raises(ToolchainIncompleteError, match="chess-llvm-link"):
            find_vitis(None, "npu4")

    def test_npu4_chess_bin_dir(self, chess_env):
        vitis = find_vitis(None, "npu4")
        assert vitis.chess_bin_dir("npu4").parts[-3:] == ("target_aie2p", "bin", "LNa64bin")

    def test_unsupported_npu(self, chess_env):
        with pytest.raises(UnsupportedNpuVersionError):
            find_vitis(None, "npu9")


class TestFindPeano:
    def test_explicit(self, tmp_path):
        assert find_peano(tmp_path) == tmp_path

    def test_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PEANO_INSTALL_DIR", str(tmp_path))
        assert find_peano(None) == tmp_path

    def test_missing(self):
        with pytest.raises(ToolchainNotFoundError):
            find_peano(None)


class TestFindTool:
    @pytest.mark.parametrize("subdir", [".", "bin", "tools"])
    def test_install_dir_layouts(self, tmp_path, subdir):
        tool = write_script(tmp_path / "install" / subdir / "mytool", "#!/bin/sh\n")
        assert find_tool("mytool", tmp_path / "install").resolve() == tool.resolve()

    def test_top_level_wins(self, tmp_path):
        top = write_script(tmp_path / "mytool", "#!/bin/sh\n")
        write_script(tmp_path / "bin" / "mytool", "#!/bin/sh\n")
        assert find_tool("mytool", tmp_path) == top

    def test_env_install_dir(self, toolchain, monkeypatch):
        monkeypatch.setenv("AIE_PACKAGER_INSTALL_DIR", str(toolchain.install_dir))
        assert find_tool(XCLBINUTIL).parent == toolchain.install_dir / "bin"

    def test_path_fallback(self, tmp_path, monkeypatch):
        tool = write_script(tmp_path / "onpath" / "mytool", "#!/bin/sh\n")
        monkeypatch.setenv("PATH", str(tool.parent))
        assert find_tool("mytool", tmp_path / "nowhere") == tool

    def test_not_found(self, tmp_path):
        with pytest.raises(ToolNotFoundError, match="mytool"):
            find_tool("mytool", tmp_path)


def test_describe_search_mentions_every_source(chess_env):
    lines = "\n".join(describe_search())
    assert f"VITIS={chess_env.vitis_dir}" in lines
    assert "PEANO_INSTALL_DIR=<not set>" in lines
    assert XCLBINUTIL in lines
