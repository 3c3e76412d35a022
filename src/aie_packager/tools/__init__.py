"""Toolchain discovery and process execution."""

from aie_packager.tools.locator import (
    XCLBINUTIL,
    VitisInstall,
    describe_search,
    find_peano,
    find_tool,
    find_vitis,
)
from aie_packager.tools.runner import ToolRunResult, run_tool

__all__ = [
    "XCLBINUTIL",
    "VitisInstall",
    "ToolRunResult",
    "describe_search",
    "find_peano",
    "find_tool",
    "find_vitis",
    "run_tool",
]
