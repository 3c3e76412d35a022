"""Pydantic models for packaging configuration and results."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .exceptions import UnsupportedNpuVersionError


class Backend(str, Enum):
    """Core compiler backends."""

    CHESS = "chess"  # vendor toolchain (xchesscc)
    PEANO = "peano"  # open-source llvm-aie


class NpuVersion(str, Enum):
    """Supported hardware families."""

    NPU1 = "npu1"
    NPU4 = "npu4"


class DeviceHAL(str, Enum):
    """Deployment targets."""

    XRT_LITE = "xrt-lite"  # ships the raw PDI
    XRT = "xrt"  # ships an XCLBin container


class Microkernel(str, Enum):
    """Which precompiled microkernels to link into every core."""

    NONE = "none"
    MM = "mm"
    ALL = "all"


@dataclass(frozen=True)
class NpuFamily:
    """Per-family constants used to drive the toolchains."""

    version: NpuVersion
    arch_version: str  # __AIE_ARCH__ value
    model_dir: str  # aietools/data/<model_dir>/lib
    target_dir: str  # aietools/tps/lnx64/<target_dir>
    target_arch: str  # llc --march / clang --target prefix
    ukernel_source: str
    ukernel_object: str
    intrinsics_object: str  # chess intrinsic wrapper, built per family


NPU_FAMILIES: dict[NpuVersion, NpuFamily] = {
    NpuVersion.NPU1: NpuFamily(
        version=NpuVersion.NPU1,
        arch_version="20",
        model_dir="aie_ml",
        target_dir="target_aie_ml",
        target_arch="AIE2",
        ukernel_source="mm_npu1.cc",
        ukernel_object="mm_npu1.o",
        intrinsics_object="chess_intrinsic_wrapper_npu1.o",
    ),
    NpuVersion.NPU4: NpuFamily(
        version=NpuVersion.NPU4,
        arch_version="21",
        model_dir="aie2p",
        target_dir="target_aie2p",
        target_arch="AIE2P",
        ukernel_source="mm_npu4.cc",
        ukernel_object="mm_npu4.o",
        intrinsics_object="chess_intrinsic_wrapper_npu4.o",
    ),
}


def get_npu_family(npu_version: "NpuVersion | str") -> NpuFamily:
    """Look up the family constants for an NPU version.

    Raises:
        UnsupportedNpuVersionError: If the version is not npu1 or npu4
    """
    try:
        return NPU_FAMILIES[NpuVersion(npu_version)]
    except ValueError:
        raise UnsupportedNpuVersionError(f"unsupported NPU version: {npu_version}") from None


class BuildConfig(BaseModel):
    """Everything the pipeline needs besides the device module."""

    backend: Backend = Backend.PEANO
    npu_version: NpuVersion = NpuVersion.NPU1
    device_hal: DeviceHAL = DeviceHAL.XRT
    target_arch: str | None = None  # defaults to the family's architecture

    output_path: Path
    work_dir: Path | None = None  # temporary directory when unset
    vitis_dir: Path | None = None
    peano_dir: Path | None = None
    install_dir: Path | None = None  # holds iree-aie-xclbinutil
    input_xclbin: Path | None = None  # base container to merge into
    cache_dir: Path | None = None  # memoized objects, cwd when unset
    npu_instructions_path: Path | None = None

    ukernel: Microkernel = Microkernel.NONE
    emit_ctrl_pkt: bool = False

    verbose: bool = False
    print_ir_before_all: bool = False
    print_ir_after_all: bool = False
    print_ir_module_scope: bool = False
    timing: bool = False
    keep_intermediates: bool = False

    xclbin_kernel_id: str = "0x101"
    xclbin_kernel_name: str = "MLIR_AIE"
    xclbin_instance_name: str = "MLIRAIEV1"

    additional_peano_opt_flags: str = ""

    translator: str | None = None  # registered translator name, "stub" for the built-in one
    bootgen: str | None = None  # registered bootgen name, "stub" for the built-in one

    @property
    def family(self) -> NpuFamily:
        return get_npu_family(self.npu_version)

    @property
    def effective_target_arch(self) -> str:
        return self.target_arch or self.family.target_arch

    @property
    def wants_matmul_ukernel(self) -> bool:
        return self.ukernel in (Microkernel.MM, Microkernel.ALL)

    @property
    def effective_cache_dir(self) -> Path:
        return self.cache_dir if self.cache_dir is not None else Path.cwd()


class PipelineStage(str, Enum):
    """Stages of the packaging pipeline, in execution order."""

    TOOLCHAIN = "toolchain"
    WORK_DIR = "work_dir"
    NPU_INSTRUCTIONS = "npu_instructions"
    UNIFIED_OBJECT = "unified_object"
    CORE_ELFS = "core_elfs"
    CONTROL_PACKETS = "control_packets"
    CDO = "cdo"
    PDI = "pdi"
    ARTIFACT = "artifact"


class PipelineResult(BaseModel):
    """Outcome of one pipeline run."""

    success: bool
    artifact_path: Path | None = None
    failed_stage: PipelineStage | None = None
    error: str | None = None
    work_dir: Path | None = None
    elf_files: dict[str, str] = Field(default_factory=dict)  # "col,row" -> filename
    artifacts: list[Path] = Field(default_factory=list)
    stage_timings: dict[str, float] = Field(default_factory=dict)
    logs: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
