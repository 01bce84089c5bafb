"""RU: Типы ошибок Edit Forge.

EN: Error types for Edit Forge.

All errors inherit from ForgeError so callers can catch the whole family.
Messages are meant to be shown to the user as-is.
"""

from __future__ import annotations


class ForgeError(Exception):
    """Base exception for all Edit Forge failures."""


class SettingsError(ForgeError):
    """Raised when the YAML settings file is malformed."""


# ---------------------------------------------------------------------------
# Edit configuration
# ---------------------------------------------------------------------------


class ConfigError(ForgeError):
    """Base class for rejected edit parameters."""

    code = "config_error"

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        self.reason = reason
        self.field = field
        super().__init__(reason)


class InvalidTimeRangeError(ConfigError):
    code = "invalid_time_range"


class InvalidDimensionsError(ConfigError):
    code = "invalid_dimensions"


class InvalidAngleError(ConfigError):
    code = "invalid_angle"


class InvalidColorValueError(ConfigError):
    code = "invalid_color_value"


class InvalidVolumeError(ConfigError):
    code = "invalid_volume"


class UnsupportedFormatError(ConfigError):
    code = "unsupported_format"


# ---------------------------------------------------------------------------
# Input file validation
# ---------------------------------------------------------------------------


class FileValidationError(ForgeError):
    """Base class for rejected input files."""

    code = "validation_error"

    def __init__(self, file_name: str, reason: str) -> None:
        self.file_name = file_name
        self.reason = reason
        super().__init__(f"{file_name}: {reason}")


class UnsupportedTypeError(FileValidationError):
    code = "unsupported_type"


class FileTooLargeError(FileValidationError):
    code = "too_large"


class CorruptedFileError(FileValidationError):
    code = "corrupted"


class DurationExceededError(FileValidationError):
    code = "duration_exceeded"


class ProbeError(ForgeError):
    """Raised by a media probe when it cannot report a duration."""


# ---------------------------------------------------------------------------
# Transcoding engine
# ---------------------------------------------------------------------------


class EngineError(ForgeError):
    """Base class for transcoding engine failures."""

    code = "engine_error"


class EngineInitError(EngineError):
    code = "init_failed"


class EngineWriteError(EngineError):
    code = "write_failed"


class EngineInvokeError(EngineError):
    code = "invoke_failed"


class EngineReadError(EngineError):
    code = "read_failed"


class EmptyOutputError(EngineError):
    code = "empty_output"


class HandleError(EngineError):
    """The output could not be published as a display handle."""

    code = "handle_failed"


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class SessionError(ForgeError):
    """Base class for misuse of the session state machine."""


class InvalidTransitionError(SessionError):
    """Raised when attempting an illegal stage transition."""

    def __init__(self, current_stage: str, target_stage: str) -> None:
        self.current_stage = current_stage
        self.target_stage = target_stage
        super().__init__(
            f"Invalid session stage transition: {current_stage} -> {target_stage}",
        )


class SessionBusyError(SessionError):
    """Raised when a submit arrives while another one is still processing."""

    def __init__(self) -> None:
        super().__init__("Processing already in progress; submit rejected")
