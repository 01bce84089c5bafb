"""RU: Машина состояний сессии редактирования.

Стадии: Loading → Ready → Editing → Processing → Preview (+ Failed).
Сессия является единственным владельцем движка, входного файла, конфигурации и
результата; ресурсы освобождаются на каждом переходе.

EN: Edit session state machine.

Stages: Loading → Ready → Editing → Processing → Preview (+ Failed).
The session is the only owner of the engine, the input file, the edit
config and the output artifact; resources are released on every transition.

INVARIANT: at most one Processing run is in flight. A second submit while
`processing` is true raises SessionBusyError and never reaches the engine.

INVARIANT: at most one display handle is live. The previous handle is
released before a new one is created.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Final

from edit_forge.compiler import CompiledEdit, OutputFormat, build_args, compile_edit
from edit_forge.config import ForgeSettings
from edit_forge.edit_config import EditConfig, default_form_config
from edit_forge.engine import FfmpegEngine, TranscodingEngine
from edit_forge.errors import (
    ConfigError,
    EmptyOutputError,
    EngineError,
    FileValidationError,
    HandleError,
    InvalidTransitionError,
    SessionBusyError,
    SessionError,
)
from edit_forge.handles import DisplayHandle, HandleAllocator, TempFileHandleAllocator
from edit_forge.probe import FfprobeProbe
from edit_forge.validator import CandidateFile, FileValidator, ValidatedFile

LOG = logging.getLogger(__name__)

INPUT_STEM: Final = "input"
OUTPUT_STEM: Final = "output"
RESULT_STEM: Final = "result"


class Stage(str, Enum):
    LOADING = "loading"
    FAILED = "failed"
    READY = "ready"
    EDITING = "editing"
    PROCESSING = "processing"
    PREVIEW = "preview"


_TRANSITIONS: Final[frozenset[tuple[Stage, Stage]]] = frozenset(
    {
        (Stage.LOADING, Stage.READY),
        (Stage.LOADING, Stage.FAILED),
        # Explicit retry after a failed engine load.
        (Stage.FAILED, Stage.LOADING),
        (Stage.READY, Stage.EDITING),
        # Cancel.
        (Stage.EDITING, Stage.READY),
        (Stage.EDITING, Stage.PROCESSING),
        (Stage.PROCESSING, Stage.PREVIEW),
        (Stage.PROCESSING, Stage.EDITING),
        # Restart.
        (Stage.PREVIEW, Stage.READY),
    },
)


def can_transition(from_stage: Stage, to_stage: Stage) -> bool:
    return (from_stage, to_stage) in _TRANSITIONS


@dataclass(frozen=True)
class OutputArtifact:
    data: bytes
    output_format: OutputFormat
    handle: DisplayHandle

    @property
    def mime_type(self) -> str:
        return self.output_format.mime_type


@dataclass
class SessionState:
    stage: Stage = Stage.LOADING
    file: ValidatedFile | None = None
    config: EditConfig | None = None
    artifact: OutputArtifact | None = None
    processing: bool = False
    error: str | None = None
    error_code: str | None = None


StateListener = Callable[[SessionState], None]


class Session:
    """RU: Сессия редактирования одного файла.

    EN: Single-file edit session.

    All methods are meant to be called from one event loop. Errors from
    validation, compilation and the engine are recovered here and surfaced in
    `state.error`; only misuse (illegal transitions, overlapping submits,
    calls after close) raises.
    """

    def __init__(
        self,
        engine: TranscodingEngine,
        validator: FileValidator,
        handles: HandleAllocator,
        *,
        defaults: Mapping[str, str] | None = None,
    ) -> None:
        self._engine = engine
        self._validator = validator
        self._handles = handles
        self._defaults = dict(defaults or {})
        self._state = SessionState()
        self._listeners: list[StateListener] = []
        self._closed = False

    @classmethod
    def from_settings(
        cls, settings: ForgeSettings, *, handles_dir: Path | None = None,
    ) -> Session:
        """Wire a session with the FFmpeg engine, ffprobe and temp-file handles."""
        engine = FfmpegEngine(
            settings.engine.ffmpeg, invoke_timeout_s=settings.engine.invoke_timeout_s,
        )
        probe = FfprobeProbe(settings.engine.ffprobe, timeout_s=settings.engine.probe_timeout_s)
        return cls(
            engine,
            FileValidator(probe, settings.limits),
            TempFileHandleAllocator(handles_dir),
            defaults=settings.defaults,
        )

    # ------------------------------------------------------------------
    # State plumbing
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        """Snapshot of the current state."""
        return replace(self._state)

    @property
    def stage(self) -> Stage:
        return self._state.stage

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call `listener` with a state snapshot after every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)

    def _ensure_open(self) -> None:
        if self._closed:
            message = "Session is closed"
            raise SessionError(message)

    def _require(self, target: Stage) -> None:
        self._ensure_open()
        if not can_transition(self._state.stage, target):
            raise InvalidTransitionError(self._state.stage.value, target.value)

    def _move(
        self, target: Stage, *, error: str | None = None, error_code: str | None = None,
    ) -> None:
        self._require(target)
        LOG.info("stage: %s -> %s", self._state.stage.value, target.value)
        self._state.stage = target
        self._state.error = error
        self._state.error_code = error_code
        self._notify()

    def _set_error(self, message: str, code: str) -> None:
        LOG.warning("%s (stage=%s)", message, self._state.stage.value)
        self._state.error = message
        self._state.error_code = code
        self._notify()

    def _release_handle(self) -> None:
        artifact, self._state.artifact = self._state.artifact, None
        if artifact is not None:
            self._handles.release_handle(artifact.handle)

    def _release_file(self) -> None:
        file, self._state.file = self._state.file, None
        if file is not None:
            file.release()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Initialize the engine: Loading → Ready, or Loading → Failed."""
        self._require(Stage.READY)
        try:
            await self._engine.initialize()
        except EngineError as exc:
            if self._closed:
                return False
            self._move(Stage.FAILED, error=f"Failed to load FFmpeg: {exc}", error_code=exc.code)
            LOG.error("Engine initialization failed: %s", exc)
            return False
        if self._closed:
            return False
        self._move(Stage.READY)
        return True

    async def retry(self) -> bool:
        """Failed → Loading, then try to initialize again."""
        self._move(Stage.LOADING)
        return await self.start()

    # ------------------------------------------------------------------
    # Ready / Editing
    # ------------------------------------------------------------------

    async def select_file(self, candidate: CandidateFile) -> bool:
        """Validate a file: Ready → Editing on success, stay in Ready otherwise."""
        self._require(Stage.EDITING)
        self._state.error = None
        self._state.error_code = None
        try:
            validated = await self._validator.validate(candidate)
        except FileValidationError as exc:
            self._set_error(exc.reason, exc.code)
            return False

        if self._closed or self._state.stage is not Stage.READY:
            validated.release()
            return False

        self._state.file = validated
        self._state.config = default_form_config(self._defaults)
        self._move(Stage.EDITING)
        return True

    def _require_editing(self) -> EditConfig:
        self._ensure_open()
        if self._state.stage is not Stage.EDITING or self._state.config is None:
            message = f"Edit config can only change while editing (stage={self._state.stage.value})"
            raise SessionError(message)
        return self._state.config

    def update_config(self, **changes: object) -> EditConfig:
        """Change individual fields; None disables a field."""
        config = self._require_editing().with_changes(**changes)
        self._state.config = config
        self._notify()
        return config

    def set_form(self, values: Mapping[str, object], enabled: Mapping[str, bool]) -> EditConfig:
        """Replace the config with form values filtered by operation toggles."""
        self._require_editing()
        config = EditConfig.from_form(values, enabled)
        self._state.config = config
        self._notify()
        return config

    def apply_preset(self, name: str) -> EditConfig:
        config = self._require_editing().with_preset(name)
        self._state.config = config
        self._notify()
        return config

    def cancel(self) -> None:
        """Editing → Ready, dropping the file, config and any display handle."""
        self._require(Stage.READY)
        if self._state.stage is not Stage.EDITING:
            raise InvalidTransitionError(self._state.stage.value, Stage.READY.value)
        self._release_handle()
        self._release_file()
        self._state.config = None
        self._move(Stage.READY)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def _prepare(self) -> tuple[CompiledEdit, tuple[str, ...], str, str] | None:
        file = self._state.file
        config = self._state.config
        if file is None or config is None:
            message = "Editing stage without an input file or config"
            raise SessionError(message)

        # Frozen dataclass: the compiled snapshot cannot change under us.
        snapshot = replace(config)
        LOG.debug("Edit config: %s", snapshot.present())
        try:
            edit = compile_edit(snapshot)
            input_ref = f"{INPUT_STEM}{file.suffix or '.mp4'}"
            output_ref = f"{OUTPUT_STEM}.{edit.output_format.value}"
            args = build_args(edit, input_ref, output_ref)
        except ConfigError as exc:
            self._set_error(exc.reason, exc.code)
            return None
        return edit, args, input_ref, output_ref

    async def submit(self) -> bool:
        """RU: Запускает обработку текущего файла с текущей конфигурацией.

        EN: Run the engine on the current file and config.

        Returns True when the session reached Preview. Config errors keep the
        session in Editing; engine errors return it to Editing. Raises
        SessionBusyError if a submit is already in flight.
        """
        self._ensure_open()
        if self._state.processing:
            raise SessionBusyError()
        self._require(Stage.PROCESSING)

        prepared = self._prepare()
        if prepared is None:
            return False
        edit, args, input_ref, output_ref = prepared
        file = self._state.file
        assert file is not None

        self._state.processing = True
        self._move(Stage.PROCESSING)
        LOG.debug("FFmpeg args: %s", " ".join(args))

        try:
            await self._engine.write_input(input_ref, file.data)
            await self._engine.invoke(args)
            data = await self._engine.read_output(output_ref)
            if not data:
                message = "No output generated"
                raise EmptyOutputError(message)
            if not self._closed:
                self._publish(data, edit.output_format)
        except EngineError as exc:
            self._state.processing = False
            if self._closed:
                LOG.info("Discarding failed run after session close: %s", exc)
                return False
            LOG.error("Processing failed: %s", exc)
            self._move(Stage.EDITING, error=str(exc), error_code=exc.code)
            return False
        except BaseException:
            # Cancellation or a bug: never leave the session half-transitioned.
            self._state.processing = False
            if not self._closed:
                self._state.stage = Stage.EDITING
                self._state.error = "Processing was interrupted"
                self._state.error_code = "interrupted"
                self._notify()
            raise

        self._state.processing = False
        if self._closed:
            LOG.info("Discarding result that completed after session close")
            return False

        self._move(Stage.PREVIEW)
        return True

    def _publish(self, data: bytes, output_format: OutputFormat) -> None:
        # Release before create: never two live handles.
        self._release_handle()
        try:
            handle = self._handles.create_handle(data, output_format.mime_type)
        except OSError as exc:
            message = f"Failed to publish output: {exc}"
            raise HandleError(message) from exc
        self._state.artifact = OutputArtifact(data=data, output_format=output_format, handle=handle)
        LOG.info("Output ready: %s (%d bytes)", output_format.value, len(data))

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def save_output(self, directory: Path) -> Path:
        """Write the current artifact as `result.<format>` into `directory`."""
        self._ensure_open()
        artifact = self._state.artifact
        if self._state.stage is not Stage.PREVIEW or artifact is None:
            message = "No output to save outside the preview stage"
            raise SessionError(message)
        directory.mkdir(parents=True, exist_ok=True)
        out_path = directory / f"{RESULT_STEM}.{artifact.output_format.value}"
        out_path.write_bytes(artifact.data)
        LOG.info("Saved %s", out_path)
        return out_path

    def restart(self) -> None:
        """Preview → Ready, releasing the handle, the file and the config."""
        self._require(Stage.READY)
        if self._state.stage is not Stage.PREVIEW:
            raise InvalidTransitionError(self._state.stage.value, Stage.READY.value)
        self._release_handle()
        self._release_file()
        self._state.config = None
        self._move(Stage.READY)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Terminate the engine and release every outstanding resource."""
        if self._closed:
            return
        self._closed = True
        self._release_handle()
        self._release_file()
        self._state.config = None
        try:
            await self._engine.terminate()
        finally:
            self._listeners.clear()
            LOG.debug("Session closed")

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
