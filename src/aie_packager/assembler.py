"""Assemble in-memory sources into object files.

``ensure_object`` memoizes by the presence of the object in a cache
directory (the current working directory unless configured). The cache is
not content addressed: a stale object from an earlier run is reused as is,
so remove it after changing backend flags or kernel sources.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Union

from .exceptions import AssembleFailedError, ExecutionError

logger = logging.getLogger(__name__)

# (input file, output file) -> None, raising on failure
FileAssembler = Callable[[Path, Path], object]


def resolve_output(output_name: Union[str, Path], output_dir: Path) -> Path:
    """Absolute names are used verbatim; relative ones land in ``output_dir``."""
    output = Path(output_name)
    return output if output.is_absolute() else Path(output_dir) / output


def assemble_string(
    assembler: FileAssembler,
    source: str,
    input_name: str,
    output_name: Union[str, Path],
    output_dir: Path,
    work_dir: Path,
) -> Path:
    """Write ``source`` to ``work_dir/input_name`` and assemble it.

    Returns:
        Path of the object file

    Raises:
        AssembleFailedError: If the source can't be written or assembled
    """
    input_file = Path(work_dir) / input_name
    try:
        input_file.write_text(source)
    except OSError as e:
        raise AssembleFailedError(
            str(output_name), f"failed to dump to disk {input_file} because: {e}"
        ) from e

    output_file = resolve_output(output_name, output_dir)
    try:
        assembler(input_file, output_file)
    except ExecutionError as e:
        raise AssembleFailedError(str(output_name), str(e)) from e
    return output_file


def ensure_object(
    assembler: FileAssembler,
    source: str,
    input_name: str,
    output_name: str,
    cache_dir: Path,
    work_dir: Path,
) -> Path:
    """Return ``cache_dir/output_name``, assembling it only if it is missing."""
    cached = Path(cache_dir) / output_name
    if cached.exists():
        logger.debug("Reusing cached object %s", cached)
        return cached
    Path(cache_dir).mkdir(parents=True, exist_ok=True)
    return assemble_string(assembler, source, input_name, output_name, cache_dir, work_dir)
