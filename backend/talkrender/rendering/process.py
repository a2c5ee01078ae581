"""
External process execution for renderer steps.

Design rules:
- One subprocess per step, awaited by the calling task
- stdout/stderr inherited so tool output lands in the service logs
- Full command line logged for audit
- Timeout → SIGTERM, then SIGKILL after a grace period
- No retries
"""

import asyncio
import logging
import shlex
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence, Union

logger = logging.getLogger(__name__)


# Seconds to wait after SIGTERM before escalating to SIGKILL
TERMINATE_GRACE_SECONDS = 5.0


@dataclass(frozen=True)
class ProcessOutcome:
    """How an external process ended."""

    argv: tuple
    exit_code: Optional[int]
    duration_seconds: float
    timed_out: bool = False
    spawn_error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and self.spawn_error is None

    def describe(self) -> str:
        if self.spawn_error:
            return f"could not start: {self.spawn_error}"
        if self.timed_out:
            return f"timed out after {self.duration_seconds:.1f}s"
        return f"exited with code {self.exit_code}"


ProcessRunner = Callable[[Sequence[str], Union[str, Path], Optional[float]], Awaitable[ProcessOutcome]]


async def run_process(
    argv: Sequence[str],
    cwd: Union[str, Path],
    timeout: Optional[float] = None,
) -> ProcessOutcome:
    """
    Run an external command to completion.

    Args:
        argv: Program and arguments (no shell)
        cwd: Working directory
        timeout: Seconds before the process is terminated, None for no limit

    Returns:
        ProcessOutcome describing exit code, timeout or spawn failure
    """
    argv = tuple(str(arg) for arg in argv)
    logger.info(f"[Process] Executing in {cwd}: {shlex.join(argv)}")
    start = time.monotonic()

    try:
        process = await asyncio.create_subprocess_exec(*argv, cwd=str(cwd))
    except OSError as e:
        logger.error(f"[Process] Could not start {argv[0]}: {e}")
        return ProcessOutcome(
            argv=argv,
            exit_code=None,
            duration_seconds=time.monotonic() - start,
            spawn_error=str(e),
        )

    logger.info(f"[Process] Started PID {process.pid}")

    try:
        exit_code = await asyncio.wait_for(process.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"[Process] PID {process.pid} exceeded {timeout}s, sending SIGTERM")
        await _terminate(process)
        return ProcessOutcome(
            argv=argv,
            exit_code=process.returncode,
            duration_seconds=time.monotonic() - start,
            timed_out=True,
        )
    except asyncio.CancelledError:
        await _terminate(process)
        raise

    duration = time.monotonic() - start
    logger.info(f"[Process] PID {process.pid} exited with code {exit_code} ({duration:.1f}s)")
    return ProcessOutcome(argv=argv, exit_code=exit_code, duration_seconds=duration)


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """SIGTERM, then SIGKILL if the process does not exit in time."""
    try:
        process.terminate()
    except ProcessLookupError:
        return

    try:
        await asyncio.wait_for(process.wait(), timeout=TERMINATE_GRACE_SECONDS)
    except asyncio.TimeoutError:
        logger.warning(f"[Process] PID {process.pid} did not terminate, sending SIGKILL")
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()
