"""RU: Разбор временных меток и форматирование чисел для аргументов FFmpeg.

EN: Timecode parsing and number formatting for FFmpeg arguments.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Final

_SECONDS_RE: Final = re.compile(r"^\d+(?:\.\d+)?$")
_CLOCK_RE: Final = re.compile(r"^(?:(\d+):)?(\d{1,2}):(\d{1,2}(?:\.\d+)?)$")
_DECIMAL_RE: Final = re.compile(r"^[+-]?\d+(?:\.\d+)?$")


def parse_time_value(text: str) -> float:
    """RU: Переводит `SS[.ff]` или `[[HH:]MM:]SS[.ff]` в секунды.

    EN: Convert `SS[.ff]` or `[[HH:]MM:]SS[.ff]` into seconds.

    Raises ValueError for negative, malformed or out-of-range components.
    """
    value = text.strip()
    if _SECONDS_RE.match(value):
        return float(value)

    match = _CLOCK_RE.match(value)
    if match is None:
        message = f"Invalid time value: {text!r}"
        raise ValueError(message)

    hours_raw, minutes_raw, seconds_raw = match.groups()
    hours = int(hours_raw) if hours_raw is not None else 0
    minutes = int(minutes_raw)
    seconds = float(seconds_raw)
    # Minutes are only bounded when an hour component is present.
    if seconds >= 60 or (hours_raw is not None and minutes >= 60):
        message = f"Invalid time value: {text!r}"
        raise ValueError(message)
    return hours * 3600 + minutes * 60 + seconds


def parse_number(text: str) -> float:
    """Parse a plain decimal number (`12`, `-0.5`).

    Exponents, underscores, NaN and infinities are rejected.
    """
    value = text.strip()
    if not _DECIMAL_RE.match(value):
        message = f"Not a decimal number: {text!r}"
        raise ValueError(message)
    number = float(value)
    if not math.isfinite(number):
        message = f"Not a finite number: {text!r}"
        raise ValueError(message)
    return number


def format_number(value: float) -> str:
    """Render a number in plain positional notation without trailing zeros.

    The shortest repr is kept digit for digit, so distinct values never render
    the same (`1`, `1.5`, `0.0000001`).
    """
    out = format(Decimal(repr(value)), "f")
    if "." in out:
        out = out.rstrip("0").rstrip(".")
    if out in ("-0", ""):
        return "0"
    return out
