"""RU: Компиляция EditConfig в список аргументов FFmpeg.

Один проход валидации превращает строковые поля в типизированный CompiledEdit,
после чего сборка аргументов уже не может провалиться из-за параметров.

EN: Compile an EditConfig into an FFmpeg argument list.

A single validation pass turns the string fields into a typed CompiledEdit;
building the argument list from it cannot fail on edit parameters anymore.
The order of emitted arguments is fixed: FFmpeg applies filters left to right.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Final

from edit_forge.edit_config import EditConfig
from edit_forge.errors import (
    InvalidAngleError,
    InvalidColorValueError,
    InvalidDimensionsError,
    InvalidTimeRangeError,
    InvalidVolumeError,
    UnsupportedFormatError,
)
from edit_forge.utils.timecode import format_number, parse_number, parse_time_value

ArgList = tuple[str, ...]

COLOR_NEUTRAL: Final = 50.0
COLOR_RANGE: Final = (0.0, 100.0)
VOLUME_RANGE: Final = (0.0, 200.0)

_UNSAFE_REF_CHARS: Final = re.compile(r"[^a-zA-Z0-9._-]")
_POSITIVE_INT_RE: Final = re.compile(r"^\+?\d+$")
_ANGLE_RE: Final = re.compile(r"^\d+$")


class OutputFormat(str, Enum):
    MP4 = "mp4"
    WEBM = "webm"
    GIF = "gif"
    AVI = "avi"
    MOV = "mov"
    MKV = "mkv"

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self]

    @property
    def codec_args(self) -> ArgList:
        return FORMAT_CODEC_ARGS[self]


FORMAT_CODEC_ARGS: Final[dict[OutputFormat, ArgList]] = {
    OutputFormat.MP4: ("-c:v", "libx264", "-crf", "23"),
    OutputFormat.WEBM: ("-c:v", "libvpx", "-b:v", "1M"),
    OutputFormat.GIF: ("-loop", "0"),
    OutputFormat.AVI: ("-c:v", "mpeg4"),
    OutputFormat.MOV: ("-c:v", "libx264", "-crf", "23"),
    OutputFormat.MKV: ("-c:v", "libx264", "-crf", "23"),
}

MIME_TYPES: Final[dict[OutputFormat, str]] = {
    OutputFormat.MP4: "video/mp4",
    OutputFormat.WEBM: "video/webm",
    OutputFormat.GIF: "image/gif",
    OutputFormat.AVI: "video/x-msvideo",
    OutputFormat.MOV: "video/quicktime",
    OutputFormat.MKV: "video/x-matroska",
}

_ROTATIONS: Final[dict[int, tuple[str, ...]]] = {
    90: ("transpose=1",),
    180: ("transpose=1", "transpose=1"),
    270: ("transpose=2",),
}


@dataclass(frozen=True)
class TrimRange:
    start: float
    end: float


@dataclass(frozen=True)
class ColorLevels:
    brightness: float = COLOR_NEUTRAL
    contrast: float = COLOR_NEUTRAL
    saturation: float = COLOR_NEUTRAL

    @property
    def is_neutral(self) -> bool:
        return (
            self.brightness == COLOR_NEUTRAL
            and self.contrast == COLOR_NEUTRAL
            and self.saturation == COLOR_NEUTRAL
        )


@dataclass(frozen=True)
class CompiledEdit:
    """Already-validated edit. Every field is in range by construction."""

    output_format: OutputFormat
    trim: TrimRange | None = None
    scale: tuple[int, int] | None = None
    rotation: int = 0
    color: ColorLevels = ColorLevels()
    volume: float | None = None


def sanitize_ref(ref: str) -> str:
    """Restrict an engine file reference to `[A-Za-z0-9._-]`.

    Leading dashes are dropped so a reference can never be read as an option.
    """
    cleaned = _UNSAFE_REF_CHARS.sub("", ref).lstrip("-")
    if not cleaned or cleaned in (".", ".."):
        message = f"File reference {ref!r} is empty after sanitizing"
        raise ValueError(message)
    return cleaned


# ---------------------------------------------------------------------------
# Validation pass
# ---------------------------------------------------------------------------


def _trim_point(raw: str, field: str) -> float:
    try:
        return parse_time_value(raw)
    except ValueError as exc:
        message = f"Invalid trim time format: {field}={raw}"
        raise InvalidTimeRangeError(message, field=field) from exc


def _compile_trim(config: EditConfig) -> TrimRange | None:
    if config.trim_start is None or config.trim_end is None:
        return None
    start = _trim_point(config.trim_start, "trim_start")
    end = _trim_point(config.trim_end, "trim_end")
    if start >= end:
        message = "trim_start must be less than trim_end"
        raise InvalidTimeRangeError(message, field="trim_start")
    return TrimRange(start=start, end=end)


def _positive_int(raw: str, field: str) -> int:
    value = raw.strip()
    if not _POSITIVE_INT_RE.match(value) or int(value) <= 0:
        message = f"Invalid resize dimensions: {field} must be a positive integer"
        raise InvalidDimensionsError(message, field=field)
    return int(value)


def _compile_scale(config: EditConfig) -> tuple[int, int] | None:
    if config.resize_width is None or config.resize_height is None:
        return None
    width = _positive_int(config.resize_width, "resize_width")
    height = _positive_int(config.resize_height, "resize_height")
    return (width, height)


def _compile_rotation(config: EditConfig) -> int:
    raw = config.rotate_angle
    if raw is None:
        return 0
    value = raw.strip()
    angle = int(value) if _ANGLE_RE.match(value) else -1
    # "0", "00" and "000" all mean no rotation.
    if angle == 0:
        return 0
    if angle not in _ROTATIONS:
        message = f"Invalid rotate_angle: {raw}"
        raise InvalidAngleError(message, field="rotate_angle")
    return angle


def _color_level(raw: str | None, field: str) -> float:
    if raw is None:
        return COLOR_NEUTRAL
    low, high = COLOR_RANGE
    try:
        value = parse_number(raw)
    except ValueError:
        value = float("nan")
    if not low <= value <= high:
        message = f"Color adjustment values must be between 0 and 100 ({field}={raw})"
        raise InvalidColorValueError(message, field=field)
    return value


def _compile_color(config: EditConfig) -> ColorLevels:
    return ColorLevels(
        brightness=_color_level(config.brightness, "brightness"),
        contrast=_color_level(config.contrast, "contrast"),
        saturation=_color_level(config.saturation, "saturation"),
    )


def _compile_volume(config: EditConfig) -> float | None:
    if config.volume_level is None:
        return None
    low, high = VOLUME_RANGE
    try:
        level = parse_number(config.volume_level)
    except ValueError:
        level = float("nan")
    if not low <= level <= high:
        message = "Invalid volume_level: must be between 0 and 200"
        raise InvalidVolumeError(message, field="volume_level")
    return level / 100


def _compile_format(config: EditConfig) -> OutputFormat:
    raw = (config.format or "").strip().lower()
    try:
        return OutputFormat(raw)
    except ValueError as exc:
        message = f"Unsupported output format: {config.format or 'undefined'}"
        raise UnsupportedFormatError(message, field="format") from exc


def compile_edit(config: EditConfig) -> CompiledEdit:
    """RU: Проверяет все поля в фиксированном порядке.

    EN: Validate every field in argument order, raising the first ConfigError.
    """
    trim = _compile_trim(config)
    scale = _compile_scale(config)
    rotation = _compile_rotation(config)
    color = _compile_color(config)
    volume = _compile_volume(config)
    output_format = _compile_format(config)
    return CompiledEdit(
        output_format=output_format,
        trim=trim,
        scale=scale,
        rotation=rotation,
        color=color,
        volume=volume,
    )


# ---------------------------------------------------------------------------
# Argument building
# ---------------------------------------------------------------------------


def build_scale_filter(edit: CompiledEdit) -> str | None:
    if edit.scale is None:
        return None
    width, height = edit.scale
    return f"scale={width}:{height}"


def build_rotate_filter(edit: CompiledEdit) -> str | None:
    if edit.rotation == 0:
        return None
    return ",".join(_ROTATIONS[edit.rotation])


def build_color_filter(edit: CompiledEdit) -> str | None:
    color = edit.color
    if color.is_neutral:
        return None
    brightness = format_number((color.brightness - COLOR_NEUTRAL) / 100)
    contrast = format_number(color.contrast / COLOR_NEUTRAL)
    saturation = format_number(color.saturation / COLOR_NEUTRAL)
    return f"eq=brightness={brightness}:contrast={contrast}:saturation={saturation}"


VIDEO_FILTER_BUILDERS: Final[tuple[Callable[[CompiledEdit], str | None], ...]] = (
    build_scale_filter,
    build_rotate_filter,
    build_color_filter,
)


def build_args(edit: CompiledEdit, input_ref: str, output_ref: str) -> ArgList:
    """Turn a validated edit into the engine argument list."""
    args: list[str] = ["-i", sanitize_ref(input_ref)]

    if edit.trim is not None:
        args += ["-ss", format_number(edit.trim.start), "-to", format_number(edit.trim.end)]

    filters = [f for f in (builder(edit) for builder in VIDEO_FILTER_BUILDERS) if f]
    if filters:
        args += ["-vf", ",".join(filters)]

    if edit.volume is not None:
        args += ["-af", f"volume={format_number(edit.volume)}"]

    args += edit.output_format.codec_args
    args.append(sanitize_ref(output_ref))
    return tuple(args)


def compile_args(config: EditConfig, input_ref: str, output_ref: str) -> ArgList:
    """RU: Компилирует конфиг в аргументы FFmpeg или бросает ConfigError.

    EN: Compile a config into FFmpeg arguments or raise a ConfigError.
    """
    return build_args(compile_edit(config), input_ref, output_ref)
