"""Locate the chess (Vitis) and peano toolchains and packaging tools.

Vitis search order: explicit directory, ``$VITIS``, then ``v++`` on PATH
(two directories above the resolved executable). A license variable must be
set and the install must contain chess-clang and chess-llvm-link for the
requested hardware family.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from aie_packager.config import (
    ENV_INSTALL_DIR,
    ENV_LM_LICENSE,
    ENV_PEANO_INSTALL_DIR,
    ENV_VITIS,
    ENV_XILINX_LICENSE,
)
from aie_packager.exceptions import (
    LicenseMissingError,
    ToolchainIncompleteError,
    ToolchainNotFoundError,
    ToolNotFoundError,
)
from aie_packager.models import NpuVersion, get_npu_family
from aie_packager.tools.runner import IS_WINDOWS

logger = logging.getLogger(__name__)

XCLBINUTIL = "iree-aie-xclbinutil"


@dataclass(frozen=True)
class VitisInstall:
    """A validated Vitis installation."""

    root: Path
    license_file: str

    @property
    def aietools(self) -> Path:
        return self.root / "aietools"

    def chess_bin_dir(self, npu_version: Union[NpuVersion, str]) -> Path:
        family = get_npu_family(npu_version)
        return self.aietools / "tps" / "lnx64" / family.target_dir / "bin" / "LNa64bin"

    @property
    def xchesscc(self) -> Path:
        return self.aietools / "bin" / "unwrapped" / "lnx64.o" / "xchesscc"


def _license_file() -> str:
    """Return the license variable value or raise LicenseMissingError."""
    license_file = os.environ.get(ENV_XILINX_LICENSE)
    if license_file:
        return license_file
    license_file = os.environ.get(ENV_LM_LICENSE)
    if not license_file:
        raise LicenseMissingError(
            f"either {ENV_XILINX_LICENSE} or {ENV_LM_LICENSE} must be set"
        )
    if not os.path.exists(license_file):
        raise LicenseMissingError(f"license file {license_file} does not exist")
    return license_file


def _vitis_from_path() -> Optional[Path]:
    vpp = shutil.which("v++")
    if not vpp:
        return None
    root = Path(os.path.realpath(vpp)).parent.parent
    logger.debug("Found Vitis at %s", root)
    return root


def find_vitis(
    vitis_dir: Optional[Union[str, Path]], npu_version: Union[NpuVersion, str]
) -> VitisInstall:
    """Resolve and validate the Vitis installation.

    Raises:
        ToolchainNotFoundError: If no Vitis directory can be determined
        LicenseMissingError: If no license variable (or file) is usable
        ToolchainIncompleteError: If aietools or the chess compilers are missing
        UnsupportedNpuVersionError: If ``npu_version`` is not supported
    """
    family = get_npu_family(npu_version)

    root: Optional[Path] = Path(vitis_dir) if vitis_dir else None
    if root is None and os.environ.get(ENV_VITIS):
        root = Path(os.environ[ENV_VITIS])
    if root is None:
        root = _vitis_from_path()
    if root is None:
        raise ToolchainNotFoundError("couldn't find vitis directory")

    license_file = _license_file()

    install = VitisInstall(root=root, license_file=license_file)
    if not install.aietools.exists():
        raise ToolchainIncompleteError(f"couldn't find aietools directory in {root}")

    chess_dir = install.chess_bin_dir(family.version)
    for exe in ("chess-clang", "chess-llvm-link"):
        if not (chess_dir / exe).exists():
            raise ToolchainIncompleteError(f"couldn't find {exe} in {chess_dir}")

    return install


def find_peano(peano_dir: Optional[Union[str, Path]]) -> Path:
    """Resolve the peano (llvm-aie) install root.

    Raises:
        ToolchainNotFoundError: If neither the argument nor the env var is set
    """
    if peano_dir:
        return Path(peano_dir)
    env = os.environ.get(ENV_PEANO_INSTALL_DIR)
    if env:
        return Path(env)
    raise ToolchainNotFoundError(
        f"couldn't find peano directory; pass peano_dir or set {ENV_PEANO_INSTALL_DIR}"
    )


def find_tool(tool_name: str, install_dir: Optional[Union[str, Path]] = None) -> Path:
    """Find a packaging tool under ``install_dir`` or on PATH.

    Checks ``install_dir/<tool>``, ``install_dir/bin/<tool>`` and
    ``install_dir/tools/<tool>`` before falling back to a PATH search.

    Raises:
        ToolNotFoundError: If the tool cannot be found anywhere
    """
    if IS_WINDOWS:
        tool_name += ".exe"

    base = install_dir or os.environ.get(ENV_INSTALL_DIR)
    if base:
        base = Path(base)
        for candidate in (base / tool_name, base / "bin" / tool_name, base / "tools" / tool_name):
            if candidate.exists():
                return candidate

    found = shutil.which(tool_name)
    if found and Path(found).exists():
        return Path(found)

    raise ToolNotFoundError(f"Could not find {tool_name}. Check your install_dir setting")


def describe_search() -> list[str]:
    """Return a human-readable list of search locations (for diagnostics)."""
    return [
        f"{ENV_VITIS}={os.environ.get(ENV_VITIS, '<not set>')}",
        f"v++ on PATH: {shutil.which('v++') or '<not found>'}",
        f"{ENV_XILINX_LICENSE}={os.environ.get(ENV_XILINX_LICENSE, '<not set>')}",
        f"{ENV_LM_LICENSE}={os.environ.get(ENV_LM_LICENSE, '<not set>')}",
        f"{ENV_PEANO_INSTALL_DIR}={os.environ.get(ENV_PEANO_INSTALL_DIR, '<not set>')}",
        f"{ENV_INSTALL_DIR}={os.environ.get(ENV_INSTALL_DIR, '<not set>')}",
        f"{XCLBINUTIL} on PATH: {shutil.which(XCLBINUTIL) or '<not found>'}",
    ]
