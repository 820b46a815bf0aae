"""Subprocess runner with timeout, output capture and structured results."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


@dataclass
class SubprocessResult:
    """Result of subprocess execution."""

    returncode: int
    """Exit code of the process."""

    stdout: str
    """Standard output captured from the process."""

    stderr: str
    """Standard error captured from the process."""

    success: bool
    """True if returncode is 0."""

    timed_out: bool = False
    """True if the process was terminated due to timeout."""

    duration_ms: float = 0.0
    """Actual duration of execution in milliseconds."""


def run_subprocess(
    command: Sequence[str],
    *,
    input_text: str | None = None,
    cwd: Path | None = None,
    timeout: float = 120.0,
    env: dict[str, str] | None = None,
    check: bool = False,
) -> SubprocessResult:
    """Execute a command, feeding *input_text* on stdin.

    Args:
        command: Command and arguments as a sequence (e.g. ['node', '-e', script]).
        input_text: Text written to the process's standard input.
        cwd: Working directory for the subprocess. Defaults to current directory.
        timeout: Maximum seconds to wait for completion.
        env: Extra environment variables, layered over the current environment.
        check: If True, raise SubprocessError on non-zero exit code or timeout.

    Returns:
        SubprocessResult with exit code, output, and metadata.

    Raises:
        SubprocessError: If the command cannot be started, or check=True and it fails.
        ValueError: If command is empty or timeout is invalid.
    """
    if not command:
        raise ValueError("Command cannot be empty")

    if timeout <= 0:
        raise ValueError(f"Timeout must be positive, got {timeout}")

    work_dir = cwd.resolve() if cwd else Path.cwd()
    if not work_dir.exists():
        raise ValueError(f"Working directory does not exist: {work_dir}")

    full_env = {**os.environ, **env} if env else None

    logger.debug("Running subprocess: %s (cwd=%s, timeout=%s)", command[0], work_dir, timeout)

    start_time = time.perf_counter()
    timed_out = False

    try:
        completed = subprocess.run(
            list(command),
            input=input_text,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            cwd=work_dir,
            env=full_env,
            timeout=timeout,
            check=False,
        )
        returncode = completed.returncode
        stdout = completed.stdout
        stderr = completed.stderr
    except subprocess.TimeoutExpired:
        logger.warning("Subprocess timed out after %s seconds", timeout)
        timed_out = True
        returncode = -1
        stdout = ""
        stderr = "Process timed out and was killed"
    except FileNotFoundError as exc:
        logger.error("Command not found: %s", command[0])
        raise SubprocessError(
            f"Command not found: {command[0]}",
            result=SubprocessResult(returncode=-1, stdout="", stderr=str(exc), success=False),
        ) from exc

    duration_ms = (time.perf_counter() - start_time) * 1000
    result = SubprocessResult(
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
        success=(returncode == 0 and not timed_out),
        timed_out=timed_out,
        duration_ms=duration_ms,
    )

    logger.debug(
        "Subprocess completed: returncode=%d, duration=%.2fms, success=%s",
        returncode,
        duration_ms,
        result.success,
    )

    if check and not result.success:
        raise SubprocessError(
            f"Command failed with exit code {returncode}: {command[0]}",
            result=result,
        )

    return result


class SubprocessError(Exception):
    """Exception raised when subprocess execution fails."""

    def __init__(self, message: str, result: SubprocessResult) -> None:
        """Initialize with error message and result.

        Args:
            message: Error description.
            result: The SubprocessResult from the failed execution.
        """
        super().__init__(message)
        self.result = result
