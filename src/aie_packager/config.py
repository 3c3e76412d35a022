"""YAML loader and saver for build configurations.

CLI options are layered on top of the file values with ``merge_overrides``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

import yaml

from .models import BuildConfig

# Environment consulted by the toolchain locator (read only)
ENV_VITIS = "VITIS"
ENV_XILINX_LICENSE = "XILINXD_LICENSE_FILE"
ENV_LM_LICENSE = "LM_LICENSE_FILE"
ENV_PEANO_INSTALL_DIR = "PEANO_INSTALL_DIR"
ENV_INSTALL_DIR = "AIE_PACKAGER_INSTALL_DIR"
ENV_LD_LIBRARY_PATH = "LD_LIBRARY_PATH"

DEFAULT_CONFIG_FILE = Path(".aie-packager") / "config.yaml"

DEFAULT_CONFIG_TEMPLATE = """\
# Core compiler backend: peano (open source) or chess (Vitis)
backend: peano

# Hardware family: npu1 or npu4
npu_version: npu1

# Deployment target: xrt (XCLBin container) or xrt-lite (raw PDI)
device_hal: xrt

output_path: design.xclbin

# Toolchain locations (VITIS / PEANO_INSTALL_DIR / PATH are used when unset)
# vitis_dir: /opt/Xilinx/Vitis/2024.2
# peano_dir: /opt/llvm-aie
# install_dir: /opt/iree-amd-aie

# Microkernels linked into every core: none, mm or all (requires chess)
ukernel: none

# Extra flags for peano's opt, wrapped in double quotes
additional_peano_opt_flags: ""

# Registered translator and bootgen implementations ("stub" for the built-in
# stand-ins, which are also used when none is registered)
# translator: mlir-aie
# bootgen: bootgen

verbose: false
keep_intermediates: false
"""


def load_build_config(path: Union[str, Path]) -> BuildConfig:
    """Load a build configuration from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed BuildConfig

    Raises:
        FileNotFoundError: If file doesn't exist
        ValidationError: If YAML doesn't match schema
    """
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return BuildConfig.model_validate(data)


def save_build_config(config: BuildConfig, path: Union[str, Path]) -> Path:
    """Save a build configuration to a YAML file, omitting unset paths."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(exclude_none=True, mode="json")

    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    return path


def merge_overrides(
    base: dict[str, Any] | None, overrides: dict[str, Any]
) -> BuildConfig:
    """Build a config from file values plus overrides that are not None."""
    data = dict(base or {})
    data.update({k: v for k, v in overrides.items() if v is not None})
    return BuildConfig.model_validate(data)
