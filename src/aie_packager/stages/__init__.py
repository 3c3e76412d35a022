"""Pipeline stages, in execution order."""

from .cdo import BIF_FILE, PDI_FILE, generate_cdo, generate_pdi, render_bif
from .control_packets import CONTROL_PACKETS_FILE, emit_control_packets
from .elf import CoreElfBuilder, assign_elf_files, check_ukernel_toolchain, prepare_ukernel
from .instructions import emit_npu_instructions, format_npu_instructions, get_npu_instructions
from .unified import UNIFIED_OBJECT, UnifiedObjectBuilder, lowering_pipeline, pass_manager_options
from .xclbin import XclbinPackager, merge_partitions

__all__ = [
    "BIF_FILE",
    "CONTROL_PACKETS_FILE",
    "PDI_FILE",
    "UNIFIED_OBJECT",
    "CoreElfBuilder",
    "UnifiedObjectBuilder",
    "XclbinPackager",
    "assign_elf_files",
    "check_ukernel_toolchain",
    "emit_control_packets",
    "emit_npu_instructions",
    "format_npu_instructions",
    "generate_cdo",
    "generate_pdi",
    "get_npu_instructions",
    "lowering_pipeline",
    "merge_partitions",
    "pass_manager_options",
    "prepare_ukernel",
    "render_bif",
]
