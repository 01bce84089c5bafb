"""Display handles: transient, revocable references to output bytes.

A handle is a temp file plus its `file://` URI, so a viewer or a download
step can use it without holding the bytes in memory.
"""

from __future__ import annotations

import logging
import mimetypes
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisplayHandle:
    uri: str
    path: Path
    mime_type: str


class HandleAllocator(Protocol):
    """Protocol describing the display-handle allocator interface."""

    def create_handle(self, data: bytes, mime_type: str) -> DisplayHandle: ...

    def release_handle(self, handle: DisplayHandle) -> None: ...


class TempFileHandleAllocator:
    """Allocate one temp file per handle and delete it on release."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir = base_dir
        self._live: dict[str, DisplayHandle] = {}

    @property
    def live_handles(self) -> list[DisplayHandle]:
        return list(self._live.values())

    def create_handle(self, data: bytes, mime_type: str) -> DisplayHandle:
        suffix = mimetypes.guess_extension(mime_type) or ".bin"
        with tempfile.NamedTemporaryFile(
            prefix="edit-forge-output-",
            suffix=suffix,
            dir=str(self.base_dir) if self.base_dir is not None else None,
            delete=False,
        ) as f:
            f.write(data)
            path = Path(f.name)
        handle = DisplayHandle(uri=path.resolve().as_uri(), path=path, mime_type=mime_type)
        self._live[handle.uri] = handle
        LOG.debug("Created display handle %s (%d bytes)", handle.uri, len(data))
        return handle

    def release_handle(self, handle: DisplayHandle) -> None:
        self._live.pop(handle.uri, None)
        handle.path.unlink(missing_ok=True)
        LOG.debug("Released display handle %s", handle.uri)
