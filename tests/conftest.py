"""Shared fakes for the engine, probe and handle collaborators."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

import pytest

from edit_forge.errors import ProbeError
from edit_forge.handles import DisplayHandle
from edit_forge.probe import ProbeResult
from edit_forge.session import Session
from edit_forge.validator import CandidateFile, FileValidator


class FakeEngine:
    """In-memory engine: records calls and returns canned output."""

    def __init__(self, output: bytes = b"OUTPUT") -> None:
        self.output = output
        self.init_error: Exception | None = None
        self.invoke_error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.files: dict[str, bytes] = {}
        self.invocations: list[tuple[str, ...]] = []
        self.initialized = 0
        self.terminated = False

    async def initialize(self) -> None:
        self.initialized += 1
        if self.init_error is not None:
            raise self.init_error

    async def write_input(self, name: str, data: bytes) -> None:
        self.files[name] = data

    async def invoke(self, args: Sequence[str]) -> None:
        self.invocations.append(tuple(args))
        if self.gate is not None:
            await self.gate.wait()
        if self.invoke_error is not None:
            raise self.invoke_error
        self.files[args[-1]] = self.output

    async def read_output(self, name: str) -> bytes:
        return self.files.get(name, b"")

    async def terminate(self) -> None:
        self.terminated = True


class FakeProbe:
    def __init__(self, duration: float | None = 10.0) -> None:
        self.duration = duration
        self.calls = 0

    async def probe(self, data: bytes) -> ProbeResult:
        self.calls += 1
        if self.duration is None:
            message = "cannot decode"
            raise ProbeError(message)
        return ProbeResult(duration_seconds=self.duration)


class FakeHandles:
    """Handle allocator that tracks how many handles are live at once."""

    def __init__(self) -> None:
        self.live: list[DisplayHandle] = []
        self.created: list[DisplayHandle] = []
        self.released: list[DisplayHandle] = []
        self.max_live = 0

    def create_handle(self, data: bytes, mime_type: str) -> DisplayHandle:
        n = len(self.created) + 1
        handle = DisplayHandle(uri=f"blob:fake/{n}", path=Path(f"/tmp/fake-{n}"), mime_type=mime_type)
        self.created.append(handle)
        self.live.append(handle)
        self.max_live = max(self.max_live, len(self.live))
        return handle

    def release_handle(self, handle: DisplayHandle) -> None:
        self.live.remove(handle)
        self.released.append(handle)


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def handles() -> FakeHandles:
    return FakeHandles()


@pytest.fixture
def session(engine: FakeEngine, probe: FakeProbe, handles: FakeHandles) -> Session:
    return Session(engine, FileValidator(probe), handles)


@pytest.fixture
def clip() -> CandidateFile:
    return CandidateFile.from_bytes("clip.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")
