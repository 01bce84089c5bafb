"""RU: Конфигурация правок: необязательные строковые поля, дефолты формы и пресеты.

EN: Edit configuration: optional string fields, form defaults and presets.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, replace
from typing import Final

EDIT_KEYS: Final[tuple[str, ...]] = (
    "trim_start",
    "trim_end",
    "resize_width",
    "resize_height",
    "rotate_angle",
    "volume_level",
    "brightness",
    "contrast",
    "saturation",
    "format",
)

# Toggleable operations and the fields each of them contributes.
OPERATION_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    "trim": ("trim_start", "trim_end"),
    "resize": ("resize_width", "resize_height"),
    "rotate": ("rotate_angle",),
    "volume": ("volume_level",),
}

FORM_DEFAULTS: Final[dict[str, str]] = {
    "trim_start": "0",
    "trim_end": "30",
    "resize_width": "1920",
    "resize_height": "1080",
    "rotate_angle": "0",
    "volume_level": "100",
    "format": "mp4",
    "brightness": "50",
    "contrast": "50",
    "saturation": "50",
}


@dataclass(frozen=True)
class ResizePreset:
    name: str
    width: str
    height: str


RESIZE_PRESETS: Final[tuple[ResizePreset, ...]] = (
    ResizePreset("Instagram Stories", "1080", "1920"),
    ResizePreset("YouTube", "1920", "1080"),
    ResizePreset("TikTok", "1080", "1920"),
    ResizePreset("LinkedIn", "1200", "675"),
)


def find_preset(name: str) -> ResizePreset:
    """Look up a resize preset by name (case-insensitive)."""
    wanted = name.strip().lower()
    for preset in RESIZE_PRESETS:
        if preset.name.lower() == wanted:
            return preset
    known = ", ".join(p.name for p in RESIZE_PRESETS)
    message = f"Unknown resize preset {name!r}; known presets: {known}"
    raise KeyError(message)


@dataclass(frozen=True)
class EditConfig:
    """RU: Набор необязательных параметров правки. None означает «выключено».

    EN: Set of optional edit parameters. None means "disabled / engine default",
    never zero. Values are kept as the user typed them; ArgCompiler validates.
    """

    trim_start: str | None = None
    trim_end: str | None = None
    resize_width: str | None = None
    resize_height: str | None = None
    rotate_angle: str | None = None
    volume_level: str | None = None
    brightness: str | None = None
    contrast: str | None = None
    saturation: str | None = None
    format: str | None = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, object]) -> EditConfig:
        """Build a config from a mapping, rejecting unknown keys.

        Empty strings count as absent.
        """
        unknown = sorted(set(values) - set(EDIT_KEYS))
        if unknown:
            message = f"Unknown edit config keys: {', '.join(unknown)}"
            raise KeyError(message)
        return cls(**{k: _normalize(v) for k, v in values.items()})

    @classmethod
    def from_form(
        cls, values: Mapping[str, object], enabled: Mapping[str, bool],
    ) -> EditConfig:
        """RU: Проецирует значения формы с учётом включённых операций.

        EN: Project form values through the per-operation toggles. Fields of
        disabled operations are dropped; color fields and format always pass.
        """
        unknown_ops = sorted(set(enabled) - set(OPERATION_FIELDS))
        if unknown_ops:
            message = f"Unknown edit operations: {', '.join(unknown_ops)}"
            raise KeyError(message)
        kept = dict(values)
        for op, op_fields in OPERATION_FIELDS.items():
            if not enabled.get(op, False):
                for name in op_fields:
                    kept.pop(name, None)
        return cls.from_mapping(kept)

    def with_changes(self, **changes: object) -> EditConfig:
        """Return a copy with some fields replaced (None disables a field)."""
        unknown = sorted(set(changes) - set(EDIT_KEYS))
        if unknown:
            message = f"Unknown edit config keys: {', '.join(unknown)}"
            raise KeyError(message)
        return replace(self, **{k: _normalize(v) for k, v in changes.items()})

    def with_preset(self, name: str) -> EditConfig:
        preset = find_preset(name)
        return replace(self, resize_width=preset.width, resize_height=preset.height)

    def present(self) -> dict[str, str]:
        """Only the fields that are set."""
        return {k: v for k, v in asdict(self).items() if v is not None}


def default_form_config(
    defaults: Mapping[str, str] | None = None,
    enabled: Mapping[str, bool] | None = None,
) -> EditConfig:
    """Fresh config for a new edit session; every operation starts disabled."""
    values = dict(FORM_DEFAULTS)
    if defaults:
        values.update(defaults)
    return EditConfig.from_form(values, enabled or {})


def _normalize(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
