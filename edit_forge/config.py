"""RU: Загрузка настроек из config.yaml.

EN: Settings loading from config.yaml.

Every section is optional; a missing file means built-in defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

import yaml

from edit_forge.edit_config import EDIT_KEYS, OPERATION_FIELDS
from edit_forge.errors import SettingsError

LOG = logging.getLogger(__name__)

MIB: Final = 1024 * 1024
DEFAULT_CONFIG_PATH: Final = Path("config.yaml")
_OPERATION_KEYS: Final = frozenset(name for names in OPERATION_FIELDS.values() for name in names)


@dataclass(frozen=True)
class EngineSettings:
    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    probe_timeout_s: float = 15.0
    invoke_timeout_s: float = 300.0


@dataclass(frozen=True)
class LimitSettings:
    max_file_size_bytes: int = 100 * MIB
    max_duration_s: float = 30.0


@dataclass(frozen=True)
class ForgeSettings:
    """RU: Итоговые настройки приложения.

    EN: Resolved application settings.
    """

    engine: EngineSettings = field(default_factory=EngineSettings)
    limits: LimitSettings = field(default_factory=LimitSettings)
    defaults: dict[str, str] = field(default_factory=dict)
    quiet: bool = False
    verbose: bool = False


def _section(conf: dict[str, Any], name: str) -> dict[str, Any]:
    value = conf.get(name, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        message = f"Config section '{name}' must be a mapping"
        raise SettingsError(message)
    return value


def _positive_float(section: dict[str, Any], key: str, default: float) -> float:
    raw = section.get(key, default)
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        message = f"Config value '{key}' must be a number, got {raw!r}"
        raise SettingsError(message) from exc
    if value <= 0:
        message = f"Config value '{key}' must be positive, got {raw!r}"
        raise SettingsError(message)
    return value


def settings_from_dict(conf: dict[str, Any]) -> ForgeSettings:
    """Build ForgeSettings from a parsed YAML mapping."""
    engine_conf = _section(conf, "engine")
    limits_conf = _section(conf, "limits")
    defaults_conf = _section(conf, "defaults")
    cli_conf = _section(conf, "cli")

    engine = EngineSettings(
        ffmpeg=str(engine_conf.get("ffmpeg", "ffmpeg")),
        ffprobe=str(engine_conf.get("ffprobe", "ffprobe")),
        probe_timeout_s=_positive_float(engine_conf, "probe_timeout_s", 15.0),
        invoke_timeout_s=_positive_float(engine_conf, "invoke_timeout_s", 300.0),
    )
    limits = LimitSettings(
        max_file_size_bytes=int(_positive_float(limits_conf, "max_file_size_mb", 100.0) * MIB),
        max_duration_s=_positive_float(limits_conf, "max_duration_s", 30.0),
    )

    unknown = sorted(set(defaults_conf) - set(EDIT_KEYS))
    if unknown:
        message = f"Unknown keys in 'defaults': {', '.join(unknown)}"
        raise SettingsError(message)
    # Operations start disabled in every session, so their fields cannot have defaults.
    toggled = sorted(set(defaults_conf) & _OPERATION_KEYS)
    if toggled:
        message = (
            f"Keys in 'defaults' belong to operations that start disabled: "
            f"{', '.join(toggled)}; only format and color keys apply"
        )
        raise SettingsError(message)
    defaults = {k: str(v) for k, v in defaults_conf.items() if v is not None}

    return ForgeSettings(
        engine=engine,
        limits=limits,
        defaults=defaults,
        quiet=bool(cli_conf.get("quiet", False)),
        verbose=bool(cli_conf.get("verbose", False)),
    )


def load_settings(path: Path | None = None) -> ForgeSettings:
    """RU: Читает YAML-конфиг; если файла нет, возвращает дефолты.

    EN: Read the YAML config; fall back to defaults when the file is missing.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    if not config_path.exists():
        LOG.debug("Config file not found (%s); using defaults", config_path)
        return ForgeSettings()

    try:
        with config_path.open(encoding="utf-8") as f:
            conf = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        message = f"Cannot parse config file {config_path}: {exc}"
        raise SettingsError(message) from exc

    if not isinstance(conf, dict):
        message = f"Config file {config_path} must contain a mapping"
        raise SettingsError(message)
    return settings_from_dict(conf)
