"""Async helpers for running FFmpeg-family binaries.

These helpers are intentionally small so both the engine and the probe can use
them without pulling in each other.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

LOGGER = logging.getLogger(__name__)

KILL_GRACE_S = 5.0


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished subprocess."""

    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_tail(self, limit: int = 400) -> str:
        text = self.stderr.decode("utf-8", errors="replace").strip()
        return text[-limit:]


class CommandTimeout(TimeoutError):
    """Raised when a subprocess exceeds its timeout and was killed."""

    def __init__(self, cmd: Sequence[str], timeout_s: float) -> None:
        super().__init__(f"{cmd[0]} did not finish within {timeout_s:g}s")
        self.timeout_s = timeout_s


async def spawn(
    cmd: Sequence[object],
    *,
    cwd: Path | None = None,
    with_stdin: bool = False,
) -> asyncio.subprocess.Process:
    """Start a subprocess with piped output and safe defaults."""
    normalized_cmd = [str(part) for part in cmd]
    LOGGER.debug("spawn: %s", " ".join(normalized_cmd))
    return await asyncio.create_subprocess_exec(
        *normalized_cmd,
        stdin=asyncio.subprocess.PIPE if with_stdin else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd is not None else None,
    )


async def stop_process(proc: asyncio.subprocess.Process) -> None:
    """Terminate a process, killing it if it does not exit in time."""
    if proc.returncode is not None:
        return
    try:
        proc.terminate()
        await asyncio.wait_for(proc.wait(), timeout=KILL_GRACE_S)
    except asyncio.TimeoutError:
        LOGGER.warning("Process %s did not terminate in time; killing", proc.pid)
        try:
            proc.kill()
        except ProcessLookupError:
            return
        await proc.wait()
    except ProcessLookupError:
        return


async def communicate(
    proc: asyncio.subprocess.Process,
    cmd: Sequence[str],
    *,
    input_bytes: bytes | None = None,
    timeout_s: float | None = None,
) -> CommandResult:
    """Wait for a spawned process, killing it on timeout or cancellation."""
    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(input=input_bytes), timeout=timeout_s,
        )
    except asyncio.TimeoutError as exc:
        await stop_process(proc)
        raise CommandTimeout(cmd, timeout_s or 0.0) from exc
    except asyncio.CancelledError:
        await stop_process(proc)
        raise
    returncode = proc.returncode if proc.returncode is not None else -1
    return CommandResult(returncode=returncode, stdout=stdout, stderr=stderr)


async def run_command(
    cmd: Sequence[object],
    *,
    input_bytes: bytes | None = None,
    cwd: Path | None = None,
    timeout_s: float | None = None,
) -> CommandResult:
    """Run a command to completion and capture its output."""
    normalized_cmd = [str(part) for part in cmd]
    proc = await spawn(normalized_cmd, cwd=cwd, with_stdin=input_bytes is not None)
    return await communicate(
        proc, normalized_cmd, input_bytes=input_bytes, timeout_s=timeout_s,
    )
