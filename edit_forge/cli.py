"""RU: CLI Edit Forge: одна сессия редактирования от файла до результата.

EN: Edit Forge CLI: one edit session from input file to saved result.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Final

from edit_forge.compiler import OutputFormat
from edit_forge.config import DEFAULT_CONFIG_PATH, ForgeSettings, load_settings
from edit_forge.edit_config import RESIZE_PRESETS
from edit_forge.errors import (
    EmptyOutputError,
    EngineInitError,
    EngineInvokeError,
    EngineReadError,
    EngineWriteError,
    HandleError,
    SettingsError,
)
from edit_forge.session import Session
from edit_forge.utils.logging_utils import setup_logging
from edit_forge.validator import CandidateFile

LOG = logging.getLogger(__name__)

EXIT_OK: Final = 0
EXIT_REJECTED: Final = 1
EXIT_ENGINE: Final = 2

ENGINE_ERROR_CODES: Final = frozenset(
    cls.code
    for cls in (
        EngineInitError,
        EngineWriteError,
        EngineInvokeError,
        EngineReadError,
        EmptyOutputError,
        HandleError,
    )
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(
        prog="edit-forge",
        description="Trim, resize, rotate, color-adjust and transcode one short video locally.",
    )
    ap.add_argument("input", type=Path, nargs="?", help="Input video file")
    ap.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to config.yaml")
    ap.add_argument("--outdir", type=Path, default=Path("out"), help="Output directory")
    ap.add_argument("--trim-start", help="Trim start (seconds or [HH:]MM:SS[.ff])")
    ap.add_argument("--trim-end", help="Trim end (seconds or [HH:]MM:SS[.ff])")
    ap.add_argument("--width", help="Resize width in pixels")
    ap.add_argument("--height", help="Resize height in pixels")
    ap.add_argument(
        "--preset",
        choices=[p.name for p in RESIZE_PRESETS],
        help="Resize preset (overrides --width/--height)",
    )
    ap.add_argument("--rotate", choices=("0", "90", "180", "270"), help="Rotation angle")
    ap.add_argument("--volume", help="Volume level in percent (0-200)")
    ap.add_argument("--brightness", help="Brightness 0-100 (50 = unchanged)")
    ap.add_argument("--contrast", help="Contrast 0-100 (50 = unchanged)")
    ap.add_argument("--saturation", help="Saturation 0-100 (50 = unchanged)")
    ap.add_argument(
        "--format",
        dest="output_format",
        choices=[f.value for f in OutputFormat],
        help="Output format (default from config, mp4)",
    )
    ap.add_argument("--quiet", action="store_true", help="Only errors")
    ap.add_argument("--verbose", action="store_true", help="Verbose output (incl. FFmpeg args)")
    ap.add_argument("--version", action="store_true", help="Print version and exit")
    return ap.parse_args(argv)


def edit_changes(args: argparse.Namespace) -> dict[str, str]:
    """Collect the edit fields given on the command line."""
    changes = {
        "trim_start": args.trim_start,
        "trim_end": args.trim_end,
        "resize_width": args.width,
        "resize_height": args.height,
        "rotate_angle": args.rotate,
        "volume_level": args.volume,
        "brightness": args.brightness,
        "contrast": args.contrast,
        "saturation": args.saturation,
        "format": args.output_format,
    }
    return {k: v for k, v in changes.items() if v is not None}


async def run_session(session: Session, args: argparse.Namespace) -> int:
    """Drive one session: load, validate, edit, process, save."""
    async with session:
        if not await session.start():
            LOG.error("%s", session.state.error)
            return EXIT_ENGINE

        if not await session.select_file(CandidateFile.from_path(args.input)):
            LOG.error("%s", session.state.error)
            return EXIT_REJECTED

        session.update_config(**edit_changes(args))
        if args.preset:
            session.apply_preset(args.preset)

        if not await session.submit():
            state = session.state
            LOG.error("%s", state.error)
            return EXIT_ENGINE if state.error_code in ENGINE_ERROR_CODES else EXIT_REJECTED

        out_path = session.save_output(args.outdir)
        LOG.info("[edit] done: %s", out_path)
        return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """RU: CLI-точка входа.

    EN: CLI entrypoint.
    """
    args = parse_args(argv)

    if args.version:
        from . import __version__

        print(__version__)
        return EXIT_OK

    try:
        settings = load_settings(args.config)
    except SettingsError as exc:
        setup_logging(quiet=args.quiet)
        LOG.error("%s", exc)
        return EXIT_REJECTED

    setup_logging(
        verbose=bool(args.verbose or settings.verbose),
        quiet=bool(args.quiet or settings.quiet),
    )

    if args.input is None:
        LOG.error("No input file given")
        return EXIT_REJECTED
    if not args.input.is_file():
        LOG.error("Input file not found: %s", args.input)
        return EXIT_REJECTED

    return asyncio.run(run_session(build_session(settings), args))


def build_session(settings: ForgeSettings) -> Session:
    return Session.from_settings(settings)


if __name__ == "__main__":
    sys.exit(main())
