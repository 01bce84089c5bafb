"""RU: Движок транскодирования на базе локального FFmpeg.

EN: Transcoding engine backed by a local FFmpeg binary.

The engine owns a private working directory: inputs are written there, FFmpeg
runs with it as cwd, outputs are read back from it. terminate() kills a
running FFmpeg process and removes the directory.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from edit_forge.compiler import sanitize_ref
from edit_forge.errors import (
    EngineInitError,
    EngineInvokeError,
    EngineReadError,
    EngineWriteError,
)
from edit_forge.utils.subprocess_utils import (
    CommandTimeout,
    communicate,
    run_command,
    spawn,
    stop_process,
)

LOG = logging.getLogger(__name__)

WORKDIR_PREFIX = "edit-forge-"


class TranscodingEngine(Protocol):
    """Protocol describing the minimal transcoding engine interface."""

    async def initialize(self) -> None: ...

    async def write_input(self, name: str, data: bytes) -> None: ...

    async def invoke(self, args: Sequence[str]) -> None: ...

    async def read_output(self, name: str) -> bytes: ...

    async def terminate(self) -> None: ...


class FfmpegEngine:
    """RU: FFmpeg как подпроцесс с собственной рабочей директорией.

    EN: FFmpeg as a subprocess with its own working directory.
    """

    def __init__(
        self,
        binary: str = "ffmpeg",
        *,
        invoke_timeout_s: float | None = 300.0,
        base_dir: Path | None = None,
    ) -> None:
        self.binary = binary
        self.invoke_timeout_s = invoke_timeout_s
        self.base_dir = base_dir
        self._workdir: tempfile.TemporaryDirectory[str] | None = None
        self._proc: asyncio.subprocess.Process | None = None
        self._executable: str | None = None

    @property
    def workdir(self) -> Path:
        if self._workdir is None:
            message = "FFmpeg engine is not initialized"
            raise EngineInitError(message)
        return Path(self._workdir.name)

    @property
    def ready(self) -> bool:
        return self._workdir is not None

    async def initialize(self) -> None:
        executable = shutil.which(self.binary)
        if executable is None:
            message = f"FFmpeg binary not found: {self.binary}"
            raise EngineInitError(message)

        try:
            res = await run_command([executable, "-hide_banner", "-version"], timeout_s=30)
        except (OSError, CommandTimeout) as exc:
            message = f"Failed to start FFmpeg: {exc}"
            raise EngineInitError(message) from exc
        if not res.ok:
            message = f"FFmpeg self-check failed: {res.stderr_tail()}"
            raise EngineInitError(message)

        first_line = res.stdout.decode("utf-8", errors="replace").splitlines()[:1]
        LOG.info("FFmpeg ready: %s", first_line[0] if first_line else executable)

        if not self.ready:
            self._workdir = tempfile.TemporaryDirectory(
                prefix=WORKDIR_PREFIX,
                dir=str(self.base_dir) if self.base_dir is not None else None,
            )
        self._executable = executable

    def _path_for(self, name: str) -> Path:
        return self.workdir / sanitize_ref(name)

    async def write_input(self, name: str, data: bytes) -> None:
        try:
            path = self._path_for(name)
            await asyncio.to_thread(path.write_bytes, data)
        except (OSError, ValueError, EngineInitError) as exc:
            message = f"Failed to write input {name!r}: {exc}"
            raise EngineWriteError(message) from exc

    async def invoke(self, args: Sequence[str]) -> None:
        if self._executable is None:
            message = "FFmpeg engine is not initialized"
            raise EngineInvokeError(message)
        if self._proc is not None:
            message = "FFmpeg is already running"
            raise EngineInvokeError(message)

        cmd = [self._executable, "-y", "-hide_banner", "-loglevel", "error", *args]
        LOG.debug("Running: %s", " ".join(cmd))
        try:
            self._proc = await spawn(cmd, cwd=self.workdir)
            res = await communicate(self._proc, cmd, timeout_s=self.invoke_timeout_s)
        except CommandTimeout as exc:
            message = f"FFmpeg timed out after {exc.timeout_s:g}s"
            raise EngineInvokeError(message) from exc
        except OSError as exc:
            message = f"Failed to run FFmpeg: {exc}"
            raise EngineInvokeError(message) from exc
        finally:
            self._proc = None

        if not res.ok:
            message = f"FFmpeg failed (exit {res.returncode}): {res.stderr_tail()}"
            raise EngineInvokeError(message)

    async def read_output(self, name: str) -> bytes:
        try:
            path = self._path_for(name)
            return await asyncio.to_thread(path.read_bytes)
        except (OSError, ValueError, EngineInitError) as exc:
            message = f"Failed to read output {name!r}: {exc}"
            raise EngineReadError(message) from exc

    async def terminate(self) -> None:
        """Kill a running FFmpeg and remove the working directory."""
        proc, self._proc = self._proc, None
        if proc is not None:
            LOG.info("Terminating running FFmpeg process")
            await stop_process(proc)
        workdir, self._workdir = self._workdir, None
        if workdir is not None:
            try:
                workdir.cleanup()
            except OSError:
                LOG.exception("Failed to remove engine working directory")
        self._executable = None
