"""Tests for the edit config model, form projection and presets."""

from __future__ import annotations

from dataclasses import FrozenInstanceError, fields

import pytest

from edit_forge.edit_config import (
    EDIT_KEYS,
    FORM_DEFAULTS,
    EditConfig,
    default_form_config,
    find_preset,
)


def test_field_names_match_edit_keys() -> None:
    assert tuple(f.name for f in fields(EditConfig)) == EDIT_KEYS


def test_absent_means_none_not_zero() -> None:
    config = EditConfig()
    assert config.present() == {}
    assert config.volume_level is None


def test_from_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(KeyError):
        EditConfig.from_mapping({"format": "mp4", "speed": "2"})


def test_from_mapping_treats_blank_as_absent() -> None:
    config = EditConfig.from_mapping({"format": " mp4 ", "trim_start": "  "})
    assert config.format == "mp4"
    assert config.trim_start is None


def test_config_is_immutable() -> None:
    config = EditConfig(format="mp4")
    with pytest.raises(FrozenInstanceError):
        config.format = "gif"  # type: ignore[misc]


def test_with_changes_returns_new_config() -> None:
    base = EditConfig(format="mp4")
    changed = base.with_changes(volume_level=150, format=None)
    assert base.format == "mp4"
    assert changed.volume_level == "150"
    assert changed.format is None
    with pytest.raises(KeyError):
        base.with_changes(fps="30")


def test_from_form_drops_disabled_operations() -> None:
    config = EditConfig.from_form(FORM_DEFAULTS, {"trim": True, "volume": False})
    assert config.trim_start == "0"
    assert config.trim_end == "30"
    assert config.resize_width is None
    assert config.rotate_angle is None
    assert config.volume_level is None
    # Color and format always pass through.
    assert config.brightness == "50"
    assert config.format == "mp4"


def test_from_form_rejects_unknown_operation() -> None:
    with pytest.raises(KeyError):
        EditConfig.from_form(FORM_DEFAULTS, {"blur": True})


def test_default_form_config_applies_overrides() -> None:
    config = default_form_config({"format": "webm"})
    assert config.present() == {
        "brightness": "50",
        "contrast": "50",
        "saturation": "50",
        "format": "webm",
    }


def test_presets() -> None:
    preset = find_preset("instagram stories")
    assert (preset.width, preset.height) == ("1080", "1920")
    config = EditConfig(format="mp4").with_preset("LinkedIn")
    assert (config.resize_width, config.resize_height) == ("1200", "675")
    with pytest.raises(KeyError):
        find_preset("Vimeo")
