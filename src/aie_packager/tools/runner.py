"""Run external programs with their output captured to a temporary file.

Output is never shown on the terminal unless ``verbose`` is set, in which
case the command line, exit status, elapsed time and captured output are
logged after the program finishes.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

from aie_packager.exceptions import ProgramNotFoundError, ToolFailedError

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


@dataclass
class ToolRunResult:
    """Result of a successful tool invocation."""

    program: str
    args: list[str] = field(default_factory=list)
    returncode: int = 0
    output: str = ""
    elapsed_sec: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def _with_exe_suffix(program: str) -> str:
    if IS_WINDOWS and not program.endswith(".exe"):
        return program + ".exe"
    return program


def run_tool(
    program: Union[str, Path],
    args: Sequence[str],
    verbose: bool = False,
    env: Optional[dict[str, str]] = None,
) -> ToolRunResult:
    """Run ``program`` with ``args`` and wait for it.

    Args:
        program: Path to the executable
        args: Arguments, not including the program itself
        verbose: Log the command, timing and captured output
        env: Replacement environment for the child process

    Returns:
        ToolRunResult for a zero exit code

    Raises:
        ProgramNotFoundError: If ``program`` does not exist (nothing is run)
        ToolFailedError: If the program exits nonzero or cannot be spawned
    """
    program = _with_exe_suffix(str(program))
    args = [str(a) for a in args]

    if verbose:
        env_prefix = " ".join(f"{k}={v}" for k, v in (env or {}).items())
        logger.info("Run: %s %s %s", env_prefix, program, " ".join(args))

    if not Path(program).exists():
        raise ProgramNotFoundError(program)

    spawn_error = ""
    returncode: Optional[int] = None
    start = time.perf_counter()
    with tempfile.TemporaryFile(mode="w+b", prefix="tmpRunTool", suffix="Logging") as log:
        try:
            proc = subprocess.run(
                [program, *args],
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=subprocess.STDOUT,
                env=env,
                check=False,
            )
            returncode = proc.returncode
        except OSError as e:
            spawn_error = str(e)
        elapsed = time.perf_counter() - start
        log.seek(0)
        # Tools may print diagnostics in any encoding
        output = log.read().decode("utf-8", errors="replace")

    if verbose:
        status = "Succeeded" if returncode == 0 else "Failed"
        logger.info(
            "%s in totalTime %.3f [s]. Exit code=%s\n%s", status, elapsed, returncode, output
        )

    if returncode != 0:
        logger.error("Failed to run tool: %s. Error: '%s'\n%s", program, spawn_error, output)
        raise ToolFailedError(program, returncode, output=output, spawn_error=spawn_error)

    return ToolRunResult(
        program=program, args=args, returncode=0, output=output, elapsed_sec=elapsed
    )
