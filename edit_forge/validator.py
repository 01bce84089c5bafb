"""RU: Проверка входного видеофайла перед редактированием.

Порядок проверок фиксирован: тип, размер, декодируемость, длительность.
Первые две выполняются синхронно, до запуска асинхронного probe.

EN: Input video validation before editing.

The check order is fixed: type, size, decodability, duration. The first two
run synchronously, before the suspending probe is started.
"""

from __future__ import annotations

import asyncio
import logging
import math
import mimetypes
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from edit_forge.config import LimitSettings
from edit_forge.errors import (
    CorruptedFileError,
    DurationExceededError,
    FileTooLargeError,
    ProbeError,
    UnsupportedTypeError,
)
from edit_forge.probe import MediaProbe

LOG = logging.getLogger(__name__)

SUPPORTED_MIME_TYPES: Final[frozenset[str]] = frozenset(
    {
        "video/mp4",
        "video/avi",
        "video/mov",
        "video/wmv",
        "video/flv",
        "video/webm",
        "video/mkv",
        "video/m4v",
        "video/3gp",
    },
)
SUPPORTED_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".mkv", ".m4v", ".3gp"},
)


@dataclass(frozen=True)
class CandidateFile:
    """A file offered for editing; bytes are read only after cheap checks pass."""

    name: str
    size: int
    mime_type: str | None
    read_bytes: Callable[[], bytes] = field(repr=False, compare=False)

    @classmethod
    def from_path(cls, path: Path) -> CandidateFile:
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            size=path.stat().st_size,
            mime_type=mime_type,
            read_bytes=path.read_bytes,
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: str | None = None) -> CandidateFile:
        return cls(name=name, size=len(data), mime_type=mime_type, read_bytes=lambda: data)


class ValidatedFile:
    """An accepted input. Owned by exactly one session until released."""

    def __init__(
        self, *, name: str, data: bytes, duration_seconds: float, mime_type: str | None,
    ) -> None:
        self.name = name
        self.duration_seconds = duration_seconds
        self.mime_type = mime_type
        self._data: bytes | None = data

    @property
    def released(self) -> bool:
        return self._data is None

    @property
    def data(self) -> bytes:
        if self._data is None:
            message = f"Input file {self.name} was already released"
            raise RuntimeError(message)
        return self._data

    @property
    def suffix(self) -> str:
        return Path(self.name).suffix.lower()

    def release(self) -> None:
        self._data = None

    def __repr__(self) -> str:
        return (
            f"ValidatedFile(name={self.name!r}, duration_seconds={self.duration_seconds}, "
            f"released={self.released})"
        )


def is_supported_type(candidate: CandidateFile) -> bool:
    if candidate.mime_type and candidate.mime_type.lower() in SUPPORTED_MIME_TYPES:
        return True
    return Path(candidate.name).suffix.lower() in SUPPORTED_EXTENSIONS


class FileValidator:
    """RU: Валидатор входного файла.

    EN: Input file validator.
    """

    def __init__(self, probe: MediaProbe, limits: LimitSettings | None = None) -> None:
        self.probe = probe
        self.limits = limits or LimitSettings()

    def check_static(self, candidate: CandidateFile) -> None:
        """Synchronous checks: type and size."""
        if not is_supported_type(candidate):
            message = "Please select a valid video file (MP4, AVI, MOV, ...)"
            raise UnsupportedTypeError(candidate.name, message)
        if candidate.size > self.limits.max_file_size_bytes:
            limit_mb = self.limits.max_file_size_bytes / (1024 * 1024)
            message = f"File is too large; please select a video under {limit_mb:g}MB"
            raise FileTooLargeError(candidate.name, message)

    async def validate(self, candidate: CandidateFile) -> ValidatedFile:
        """Run all checks, raising the first FileValidationError found."""
        self.check_static(candidate)

        try:
            data = await asyncio.to_thread(candidate.read_bytes)
        except OSError as exc:
            message = f"File could not be read: {exc}"
            raise CorruptedFileError(candidate.name, message) from exc

        try:
            result = await self.probe.probe(data)
        except ProbeError as exc:
            LOG.info("Probe rejected %s: %s", candidate.name, exc)
            message = "File appears to be corrupted or contains no video"
            raise CorruptedFileError(candidate.name, message) from exc

        duration = result.duration_seconds
        if duration is None or math.isnan(duration) or duration <= 0:
            message = "File appears to be corrupted or contains no video"
            raise CorruptedFileError(candidate.name, message)
        if duration > self.limits.max_duration_s:
            message = (
                f"Video exceeds the allowed duration "
                f"({duration:g}s > {self.limits.max_duration_s:g}s)"
            )
            raise DurationExceededError(candidate.name, message)

        LOG.info("Accepted %s (%.2fs, %d bytes)", candidate.name, duration, candidate.size)
        return ValidatedFile(
            name=candidate.name,
            data=data,
            duration_seconds=duration,
            mime_type=candidate.mime_type,
        )
