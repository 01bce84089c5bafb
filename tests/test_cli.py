"""Tests for the command line entrypoint."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from edit_forge import __version__, cli
from edit_forge.errors import EngineInitError, EngineInvokeError
from edit_forge.session import Session

if TYPE_CHECKING:
    from pathlib import Path

    from conftest import FakeEngine, FakeProbe


@pytest.fixture
def clip_path(tmp_path: Path) -> Path:
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return path


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--version"]) == cli.EXIT_OK
    assert capsys.readouterr().out.strip() == __version__


def test_missing_input_is_rejected(tmp_path: Path) -> None:
    config = tmp_path / "none.yaml"
    assert cli.main(["--config", str(config)]) == cli.EXIT_REJECTED
    assert cli.main([str(tmp_path / "nope.mp4"), "--config", str(config)]) == cli.EXIT_REJECTED


def test_broken_config_is_rejected(tmp_path: Path, clip_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("limits: [1, 2", encoding="utf-8")
    assert cli.main([str(clip_path), "--config", str(config)]) == cli.EXIT_REJECTED


def test_edit_changes_maps_flags() -> None:
    args = cli.parse_args(["in.mp4", "--trim-start", "1", "--trim-end", "4", "--format", "gif"])
    assert cli.edit_changes(args) == {"trim_start": "1", "trim_end": "4", "format": "gif"}


def test_main_runs_a_session(
    monkeypatch: pytest.MonkeyPatch,
    session: Session,
    engine: FakeEngine,
    clip_path: Path,
    tmp_path: Path,
) -> None:
    monkeypatch.setattr(cli, "build_session", lambda settings: session)
    outdir = tmp_path / "out"

    code = cli.main([
        str(clip_path),
        "--config", str(tmp_path / "none.yaml"),
        "--outdir", str(outdir),
        "--preset", "YouTube",
        "--rotate", "180",
        "--format", "mov",
    ])

    assert code == cli.EXIT_OK
    assert (outdir / "result.mov").read_bytes() == b"OUTPUT"
    (args,) = engine.invocations
    assert args[args.index("-vf") + 1] == "scale=1920:1080,transpose=1,transpose=1"
    assert session.closed


@pytest.mark.asyncio
async def test_engine_load_failure_exits_with_engine_code(
    session: Session, engine: FakeEngine, clip_path: Path,
) -> None:
    engine.init_error = EngineInitError("no ffmpeg")
    args = cli.parse_args([str(clip_path)])
    assert await cli.run_session(session, args) == cli.EXIT_ENGINE


@pytest.mark.asyncio
async def test_rejected_file_exits_with_rejected_code(
    session: Session, probe: FakeProbe, clip_path: Path,
) -> None:
    probe.duration = 31.0
    args = cli.parse_args([str(clip_path)])
    assert await cli.run_session(session, args) == cli.EXIT_REJECTED


@pytest.mark.asyncio
async def test_invalid_edit_exits_with_rejected_code(
    session: Session, engine: FakeEngine, clip_path: Path,
) -> None:
    args = cli.parse_args([str(clip_path), "--volume", "500"])
    assert await cli.run_session(session, args) == cli.EXIT_REJECTED
    assert engine.invocations == []


@pytest.mark.asyncio
async def test_engine_failure_exits_with_engine_code(
    session: Session, engine: FakeEngine, clip_path: Path,
) -> None:
    engine.invoke_error = EngineInvokeError("FFmpeg failed (exit 1)")
    args = cli.parse_args([str(clip_path)])
    assert await cli.run_session(session, args) == cli.EXIT_ENGINE
