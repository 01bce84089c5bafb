"""Tests for input file validation."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from edit_forge.config import LimitSettings
from edit_forge.errors import (
    CorruptedFileError,
    DurationExceededError,
    FileTooLargeError,
    UnsupportedTypeError,
)
from edit_forge.validator import CandidateFile, FileValidator

if TYPE_CHECKING:
    from pathlib import Path

    from conftest import FakeProbe


@pytest.mark.asyncio
async def test_accepts_exactly_thirty_seconds(probe: FakeProbe) -> None:
    probe.duration = 30.0
    validated = await FileValidator(probe).validate(
        CandidateFile.from_bytes("clip.mp4", b"data", "video/mp4"),
    )
    assert validated.duration_seconds == 30.0
    assert validated.data == b"data"
    assert validated.name == "clip.mp4"


@pytest.mark.asyncio
async def test_rejects_thirty_one_seconds(probe: FakeProbe) -> None:
    probe.duration = 31.0
    with pytest.raises(DurationExceededError):
        await FileValidator(probe).validate(CandidateFile.from_bytes("clip.mp4", b"data"))


@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [None, float("nan"), 0.0])
async def test_undecodable_file_is_corrupted(probe: FakeProbe, duration: float | None) -> None:
    probe.duration = duration
    with pytest.raises(CorruptedFileError):
        await FileValidator(probe).validate(CandidateFile.from_bytes("clip.webm", b"junk"))


@pytest.mark.asyncio
async def test_type_is_checked_before_probe(probe: FakeProbe) -> None:
    candidate = CandidateFile.from_bytes("song.mp3", b"id3", "audio/mpeg")
    with pytest.raises(UnsupportedTypeError):
        await FileValidator(probe).validate(candidate)
    assert probe.calls == 0


@pytest.mark.asyncio
async def test_size_is_checked_before_reading(probe: FakeProbe) -> None:
    reads: list[int] = []

    def read_bytes() -> bytes:
        reads.append(1)
        return b""

    candidate = CandidateFile(
        name="big.mp4", size=100 * 1024 * 1024 + 1, mime_type="video/mp4", read_bytes=read_bytes,
    )
    with pytest.raises(FileTooLargeError):
        await FileValidator(probe).validate(candidate)
    assert reads == []
    assert probe.calls == 0


@pytest.mark.asyncio
async def test_exactly_max_size_is_accepted(probe: FakeProbe) -> None:
    limits = LimitSettings(max_file_size_bytes=4)
    validated = await FileValidator(probe, limits).validate(
        CandidateFile.from_bytes("clip.mp4", b"1234"),
    )
    assert validated.data == b"1234"


@pytest.mark.parametrize(
    ("name", "mime_type"),
    [
        ("CLIP.MOV", None),
        ("clip", "video/webm"),
        ("clip.3gp", "application/octet-stream"),
        ("clip.m4v", ""),
    ],
)
def test_supported_by_extension_or_mime(probe: FakeProbe, name: str, mime_type: str | None) -> None:
    FileValidator(probe).check_static(CandidateFile.from_bytes(name, b"x", mime_type))


def test_from_path_reads_stat_and_guesses_type(tmp_path: Path) -> None:
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"12345")
    candidate = CandidateFile.from_path(path)
    assert candidate.size == 5
    assert candidate.mime_type == "video/mp4"
    assert candidate.read_bytes() == b"12345"


@pytest.mark.asyncio
async def test_release_drops_bytes(probe: FakeProbe) -> None:
    validated = await FileValidator(probe).validate(CandidateFile.from_bytes("clip.mp4", b"data"))
    validated.release()
    assert validated.released
    with pytest.raises(RuntimeError):
        _ = validated.data


@pytest.mark.asyncio
async def test_bytes_are_read_off_the_event_loop_thread(probe: FakeProbe) -> None:
    loop_thread = threading.get_ident()
    readers: list[int] = []

    def read_bytes() -> bytes:
        readers.append(threading.get_ident())
        return b"data"

    candidate = CandidateFile(name="clip.mp4", size=4, mime_type="video/mp4", read_bytes=read_bytes)
    validated = await FileValidator(probe).validate(candidate)

    assert validated.data == b"data"
    assert len(readers) == 1
    assert readers[0] != loop_thread
