from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from PySide6.QtCore import QObject, Signal

from pngquant_tuner.app.state.session_state import SessionState
from pngquant_tuner.app.state.view_state import ViewState
from pngquant_tuner.conversion import (
    ArtifactAccessError,
    CommitController,
    CommitError,
    ConversionFailure,
    ConversionParameters,
    ConversionResult,
    ConversionSuccess,
    DebouncedConversionPipeline,
    ExternalCompressor,
    PurgeReport,
    SourceImage,
    TempArtifactStore,
    UnsupportedFileError,
    resolve_pngquant,
)
from pngquant_tuner.logger import get_logger
from pngquant_tuner.path_utils import format_kb, path_from_drop
from pngquant_tuner.settings_manager import SettingsManager

_logger = get_logger("session")

NOTICE_NO_FILE = "Add a PNG file to start."
NOTICE_CONVERTING = "Converting…"
NOTICE_FAILED = "Conversion failed. Check the log for details."
NOTICE_UNAVAILABLE = "The file size is unavailable. Move a slider to convert again."


@dataclass(frozen=True)
class SizeSummary:
    source_kb: str | None = None
    artifact_kb: str | None = None
    ratio_percent: float | None = None
    unavailable: bool = False

    @property
    def text(self) -> str:
        parts: list[str] = []
        if self.source_kb is not None:
            parts.append(f"Current size: {self.source_kb} KB")
        if self.artifact_kb is not None and self.ratio_percent is not None:
            parts.append(f"Converted size: {self.artifact_kb} KB ({self.ratio_percent:.1f}%)")
        return "    ".join(parts)


class EditingSession(QObject):
    """Owner of one editing session: source, parameters, preview and view state.

    UI widgets call the command methods and listen to the signals; nothing else
    mutates session state.
    """

    source_changed = Signal(str)  # "" when cleared
    result_changed = Signal(object)  # ConversionResult
    view_changed = Signal(object)  # ViewState
    error = Signal(str)  # non-blocking, shown inline or as a warning
    commit_succeeded = Signal(str)
    commit_failed = Signal(str)  # blocking until acknowledge_error()
    purged = Signal(object)  # PurgeReport

    def __init__(
        self,
        settings: SettingsManager,
        *,
        store: TempArtifactStore | None = None,
        pipeline: DebouncedConversionPipeline | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings
        self._store = store or TempArtifactStore(settings.scratch_dir)
        if pipeline is None:
            compressor = ExternalCompressor(
                self._store,
                resolve_pngquant(settings.pngquant_path),
                timeout=settings.compress_timeout,
            )
            pipeline = DebouncedConversionPipeline(
                compressor, self._store, quiescence_ms=settings.quiescence_ms, parent=self
            )
        self._pipeline = pipeline
        self._commit = CommitController(self._store)
        self._view = ViewState()
        self._blocked = False
        self.state = SessionState(self)
        self.state._set_notice(NOTICE_NO_FILE)

        self._pipeline.update_parameters(ConversionParameters.from_dict(settings.last_parameters))
        self._pipeline.converting_changed.connect(self._on_converting_changed)
        self._pipeline.result_ready.connect(self._on_result)

    # ---- read-only state ------------------------------------------
    @property
    def pipeline(self) -> DebouncedConversionPipeline:
        return self._pipeline

    @property
    def store(self) -> TempArtifactStore:
        return self._store

    @property
    def source(self) -> SourceImage | None:
        return self._pipeline.source

    @property
    def parameters(self) -> ConversionParameters:
        return self._pipeline.parameters

    @property
    def view(self) -> ViewState:
        return self._view

    @property
    def preview(self) -> ConversionSuccess | None:
        return self._pipeline.preview

    @property
    def is_blocked(self) -> bool:
        return self._blocked

    # ---- file / parameter events ----------------------------------
    def select_file(self, path: str | Path) -> bool:
        """Open a new source. Non-PNG input is reported and leaves the session as it was."""
        try:
            source = SourceImage.from_path(path_from_drop(str(path)))
        except UnsupportedFileError as e:
            _logger.warning("file rejected: %s", e)
            self.error.emit(str(e))
            return False

        self._pipeline.set_source(source)
        self._set_view(ViewState(tab=self._view.tab))
        self.state._set_source_name(source.name)
        self.state._set_size_text("")
        self.state._set_notice("")
        self.source_changed.emit(str(source.path))
        _logger.info("source selected: %s", source.path)
        return True

    def set_parameters(self, parameters: ConversionParameters) -> None:
        self._pipeline.update_parameters(parameters)

    def set_parameter(self, name: str, value: object) -> ConversionParameters:
        """Apply one free-form field edit; returns the normalized parameter set."""
        params = self._pipeline.parameters.with_changes(**{name: value})
        self.set_parameters(params)
        return params

    # ---- commands -------------------------------------------------
    def reset(self) -> None:
        """Discard the current file and its preview."""
        self._clear_session()

    def commit(self) -> bool:
        """Save the preview over the original file."""
        source = self._pipeline.source
        preview = self._pipeline.preview
        if self._blocked:
            self.error.emit("Acknowledge the previous save error first.")
            return False
        if source is None or preview is None:
            self.error.emit("There is no converted preview to save.")
            return False
        if self._pipeline.is_converting:
            self.error.emit("Wait for the conversion to finish before saving.")
            return False
        if not preview.artifact_path.is_file():
            self.state._set_notice(NOTICE_UNAVAILABLE)
            self.error.emit("The preview is no longer available. Move a slider to convert again.")
            return False

        try:
            report = self._commit.commit(source, preview)
        except CommitError as e:
            _logger.error("commit failed: %s", e)
            self._blocked = True
            self._pipeline.set_suspended(True)
            self.commit_failed.emit(str(e))
            return False

        self._clear_session()
        self.commit_succeeded.emit(str(source.path))
        self.purged.emit(report)
        return True

    def acknowledge_error(self) -> None:
        if not self._blocked:
            return
        self._blocked = False
        self._pipeline.set_suspended(False)

    def purge_scratch(self) -> PurgeReport:
        report = self._store.purge_all()
        if report.removed:
            self._pipeline.invalidate_preview()
        self.refresh_sizes()
        self.purged.emit(report)
        return report

    def size_summary(self) -> SizeSummary:
        source = self._pipeline.source
        if source is None:
            return SizeSummary()
        try:
            source_kb: str | None = format_kb(self._store.size_of(source.path))
        except ArtifactAccessError as e:
            _logger.warning("source size unavailable: %s", e)
            source_kb = None
        result = self._pipeline.latest_result
        artifact = self._pipeline.preview
        if artifact is None:
            return SizeSummary(source_kb=source_kb, unavailable=isinstance(result, ConversionSuccess))
        try:
            artifact_size = self._store.size_of(artifact.artifact_path)
        except ArtifactAccessError as e:
            _logger.warning("artifact size unavailable: %s", e)
            return SizeSummary(source_kb=source_kb, unavailable=True)
        ratio = artifact_size / artifact.source_size * 100.0 if artifact.source_size > 0 else 0.0
        return SizeSummary(source_kb=source_kb, artifact_kb=format_kb(artifact_size), ratio_percent=ratio)

    def refresh_sizes(self) -> None:
        summary = self.size_summary()
        self.state._set_size_text(summary.text)
        if summary.unavailable:
            self.state._set_notice(NOTICE_UNAVAILABLE)

    def close(self) -> None:
        self._settings.set("last_parameters", self._pipeline.parameters.to_dict())
        self._pipeline.shutdown()

    # ---- view commands --------------------------------------------
    def zoom_in(self) -> None:
        self._set_view(self._view.zoomed_in())

    def zoom_out(self) -> None:
        self._set_view(self._view.zoomed_out())

    def zoom_by_wheel(self, delta: float) -> None:
        self._set_view(self._view.wheel_zoomed(delta))

    def drag_by(self, dx: float, dy: float) -> None:
        self._set_view(self._view.dragged(dx, dy))

    def end_drag(self) -> None:
        self._set_view(self._view.drag_ended())

    def reset_view(self) -> None:
        self._set_view(self._view.reset())

    def set_tab(self, tab: str) -> None:
        self._set_view(self._view.with_tab(tab))

    # ---- internals ------------------------------------------------
    def _clear_session(self) -> None:
        self._pipeline.discard()
        self._set_view(ViewState(tab=self._view.tab))
        self.state._set_source_name("")
        self.state._set_size_text("")
        self.state._set_notice(NOTICE_NO_FILE)
        self.source_changed.emit("")

    def _set_view(self, view: ViewState) -> None:
        if view == self._view:
            return
        self._view = view
        self.view_changed.emit(view)

    def _on_converting_changed(self, converting: bool) -> None:
        self.state._set_converting(converting)
        if converting:
            self.state._set_notice(NOTICE_CONVERTING)
        elif self.state._get_notice() == NOTICE_CONVERTING:
            self.state._set_notice("")

    def _on_result(self, result: ConversionResult) -> None:
        if isinstance(result, ConversionFailure):
            _logger.warning("conversion failed (%s): %s", result.kind.name, result.reason)
            self.state._set_notice(NOTICE_FAILED)
        else:
            self.state._set_notice("")
            # A fresh preview starts centered at 1x.
            self._set_view(self._view.reset())
        self.refresh_sizes()
        self.result_changed.emit(result)
