"""Media probing via ffprobe.

The input bytes are piped on stdin, so no temporary decode file is left behind.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Protocol

from edit_forge.errors import ProbeError
from edit_forge.utils.subprocess_utils import CommandTimeout, run_command

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    duration_seconds: float


class MediaProbe(Protocol):
    """Protocol describing the minimal media probe interface."""

    async def probe(self, data: bytes) -> ProbeResult: ...


class FfprobeProbe:
    """Probe that asks ffprobe for the container duration."""

    def __init__(self, binary: str = "ffprobe", *, timeout_s: float | None = 15.0) -> None:
        self.binary = binary
        self.timeout_s = timeout_s

    def _command(self) -> list[str]:
        return [
            self.binary,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "json",
            "-i",
            "pipe:0",
        ]

    async def probe(self, data: bytes) -> ProbeResult:
        try:
            res = await run_command(self._command(), input_bytes=data, timeout_s=self.timeout_s)
        except CommandTimeout as exc:
            message = f"ffprobe timed out after {exc.timeout_s:g}s"
            raise ProbeError(message) from exc
        except (FileNotFoundError, PermissionError) as exc:
            message = f"ffprobe is not available: {exc}"
            raise ProbeError(message) from exc

        if not res.ok:
            message = f"ffprobe failed: {res.stderr_tail() or f'exit code {res.returncode}'}"
            raise ProbeError(message)
        return ProbeResult(duration_seconds=parse_probe_duration(res.stdout))


def parse_probe_duration(stdout: bytes) -> float:
    """Extract `format.duration` from ffprobe JSON output."""
    try:
        payload = json.loads(stdout.decode("utf-8", errors="replace") or "{}")
    except json.JSONDecodeError as exc:
        message = "ffprobe returned invalid JSON"
        raise ProbeError(message) from exc

    fmt = payload.get("format") if isinstance(payload, dict) else None
    raw = fmt.get("duration") if isinstance(fmt, dict) else None
    if raw is None:
        message = "ffprobe reported no duration"
        raise ProbeError(message)
    try:
        duration = float(raw)
    except (TypeError, ValueError) as exc:
        message = f"ffprobe reported an invalid duration: {raw!r}"
        raise ProbeError(message) from exc
    if math.isnan(duration):
        message = "ffprobe reported a NaN duration"
        raise ProbeError(message)
    LOG.debug("Probed duration: %.3fs", duration)
    return duration
