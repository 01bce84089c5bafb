"""Tests for temp-file display handles."""

from __future__ import annotations

from typing import TYPE_CHECKING

from edit_forge.handles import TempFileHandleAllocator

if TYPE_CHECKING:
    from pathlib import Path


def test_create_and_release(tmp_path: Path) -> None:
    handles = TempFileHandleAllocator(tmp_path)
    handle = handles.create_handle(b"GIF89a", "image/gif")

    assert handle.path.read_bytes() == b"GIF89a"
    assert handle.path.parent == tmp_path
    assert handle.uri.startswith("file://")
    assert handle.mime_type == "image/gif"
    assert handles.live_handles == [handle]

    handles.release_handle(handle)
    assert not handle.path.exists()
    assert handles.live_handles == []
    # Releasing twice is harmless.
    handles.release_handle(handle)

