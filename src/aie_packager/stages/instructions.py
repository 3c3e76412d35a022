"""Dump the device's NPU instruction stream as hex text."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

from ..device import NPU_INSTRUCTIONS_ATTR, DeviceModule
from ..exceptions import MissingInstructionsError

UINT32_MAX = 0xFFFFFFFF


def get_npu_instructions(module: DeviceModule) -> list[int]:
    """Return the instruction words, validated as unsigned 32-bit values.

    Raises:
        MissingInstructionsError: If the attribute is absent, empty or not
            a sequence of uint32 words
    """
    words: Any = module.attributes.get(NPU_INSTRUCTIONS_ATTR)
    if words is None:
        raise MissingInstructionsError(
            f"Expected {NPU_INSTRUCTIONS_ATTR} attribute on device {module.name}"
        )
    if isinstance(words, (str, bytes)) or not isinstance(words, (list, tuple)):
        raise MissingInstructionsError(
            f"{NPU_INSTRUCTIONS_ATTR} must be a sequence of uint32 words, "
            f"got {type(words).__name__}"
        )
    if not words:
        raise MissingInstructionsError(f"{NPU_INSTRUCTIONS_ATTR} is empty")
    for word in words:
        if isinstance(word, bool) or not isinstance(word, int) or not 0 <= word <= UINT32_MAX:
            raise MissingInstructionsError(
                f"{NPU_INSTRUCTIONS_ATTR} holds a value that is not a uint32: {word!r}"
            )
    return list(words)


def format_npu_instructions(words: list[int]) -> str:
    """One ``%08X`` word per line, no newline after the last word."""
    return "\n".join(f"{w:08X}" for w in words)


def emit_npu_instructions(module: DeviceModule, output: Union[str, Path]) -> Path:
    """Write the instruction stream of ``module`` to ``output``."""
    text = format_npu_instructions(get_npu_instructions(module))
    output = Path(output)
    output.write_text(text)
    return output
