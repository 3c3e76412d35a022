"""Kernel sources compiled alongside the device code.

``chess_intrinsic_wrapper.cpp`` exposes chess intrinsics under the names the
LLVM lowering emits, so objects produced by either backend can be linked with
chess. ``mm_npu1.cc`` / ``mm_npu4.cc`` are the matmul microkernels selected
by hardware family.
"""

from importlib import resources

CHESS_INTRINSIC_WRAPPER = "chess_intrinsic_wrapper.cpp"


def load_kernel_source(name: str) -> str:
    """Return the text of a bundled kernel source file."""
    return resources.files(__name__).joinpath(name).read_text()
