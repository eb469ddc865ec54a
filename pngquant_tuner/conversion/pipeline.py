"""Debounced conversion pipeline.

Rapid parameter edits coalesce into one pending parameter set; after a quiet
period that set is dispatched as a new generation to a worker thread. Results
come back to the owner thread through a queued signal and are applied only
when they belong to the newest dispatched generation of the current session.
Superseded processes are never killed; their results are dropped on arrival.
"""

from __future__ import annotations

import enum
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from PySide6.QtCore import QObject, Signal

from ..logger import get_logger
from .artifact_store import TempArtifactStore
from .debounce import Debouncer
from .models import (
    ConversionFailure,
    ConversionParameters,
    ConversionRequest,
    ConversionResult,
    ConversionSuccess,
    FailureKind,
    SourceImage,
)

_logger = get_logger("pipeline")

# Failures that happen after the previous artifact was deleted.
_ARTIFACT_LOST = {FailureKind.EXIT, FailureKind.OUTPUT_MISSING}


class PipelinePhase(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"
    SETTLED = "settled"


@dataclass(frozen=True)
class PipelineSnapshot:
    phase: PipelinePhase
    generation: int
    source: SourceImage | None
    pending: ConversionParameters | None
    running: ConversionParameters | None
    result: ConversionResult | None


class DebouncedConversionPipeline(QObject):
    state_changed = Signal(object)  # PipelineSnapshot
    converting_changed = Signal(bool)
    result_ready = Signal(object)  # ConversionResult
    _compress_finished = Signal(object)  # emitted from worker threads

    def __init__(
        self,
        compressor,
        store: TempArtifactStore,
        *,
        quiescence_ms: int = 1000,
        max_workers: int = 2,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._compressor = compressor
        self._store = store
        self._executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="pngquant")
        self._debouncer = Debouncer(quiescence_ms, self)
        self._debouncer.fired.connect(self._on_quiescent)
        self._compress_finished.connect(self._on_compress_finished)

        self._source: SourceImage | None = None
        self._parameters = ConversionParameters()
        self._pending: ConversionParameters | None = None
        self._running: ConversionRequest | None = None
        self._in_flight: dict[int, Future] = {}
        self._generation = 0
        # Generations at or below the floor belong to a discarded session.
        self._floor = 0
        self._applied = 0
        self._result: ConversionResult | None = None
        self._preview: ConversionSuccess | None = None
        self._suspended = False
        _logger.debug("pipeline init: quiescence=%dms workers=%d", quiescence_ms, max(1, max_workers))

    # ---- read-only state ------------------------------------------
    @property
    def source(self) -> SourceImage | None:
        return self._source

    @property
    def parameters(self) -> ConversionParameters:
        return self._parameters

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def latest_result(self) -> ConversionResult | None:
        return self._result

    @property
    def preview(self) -> ConversionSuccess | None:
        """Latest applied success whose artifact is still the live preview."""
        return self._preview

    @property
    def is_converting(self) -> bool:
        return self._running is not None

    @property
    def is_suspended(self) -> bool:
        return self._suspended

    @property
    def snapshot(self) -> PipelineSnapshot:
        if self._running is not None:
            phase = PipelinePhase.RUNNING
        elif self._pending is not None:
            phase = PipelinePhase.PENDING
        elif self._result is not None:
            phase = PipelinePhase.SETTLED
        else:
            phase = PipelinePhase.IDLE
        return PipelineSnapshot(
            phase=phase,
            generation=self._generation,
            source=self._source,
            pending=self._pending,
            running=self._running.parameters if self._running is not None else None,
            result=self._result,
        )

    def set_quiescence_ms(self, interval_ms: int) -> None:
        self._debouncer.set_interval(interval_ms)

    # ---- events ---------------------------------------------------
    def set_source(self, source: SourceImage) -> None:
        """Start a new session for ``source`` and schedule its first conversion."""
        self.discard()
        self._source = source
        self._pending = self._parameters
        self._debouncer.trigger()
        _logger.debug("source set: %s", source.path)
        self._emit_state()

    def update_parameters(self, parameters: ConversionParameters) -> None:
        self._parameters = parameters
        if self._source is None:
            return

        current = self._effective_parameters()
        if parameters == current:
            if self._pending is not None:
                # Edited back to what is already running/shown.
                self._pending = None
                self._debouncer.cancel()
                self._emit_state()
            return

        self._pending = parameters
        token = self._debouncer.trigger()
        _logger.debug("pending: %s token=%d", parameters, token)
        self._emit_state()

    def discard(self) -> None:
        """Return to IDLE; in-flight results of this session will be ignored."""
        previous = self._source
        was_running = self._running is not None
        self._debouncer.cancel()
        self._pending = None
        self._running = None
        self._floor = self._generation
        for gen, future in list(self._in_flight.items()):
            if future.cancel():
                self._in_flight.pop(gen, None)
        self._source = None
        had_result = self._result is not None
        self._result = None
        self._preview = None

        if previous is not None:
            if self._in_flight:
                # A live process may hold the artifact lock; its stale result
                # removes the file when it arrives.
                _logger.debug("discard: %d conversion(s) still running, artifact removal deferred", len(self._in_flight))
            else:
                self._store.discard(previous)
            _logger.debug("discarded session for %s (floor=%d)", previous.path, self._floor)

        if was_running:
            self.converting_changed.emit(False)
        if previous is not None or had_result:
            self._emit_state()

    def set_suspended(self, suspended: bool) -> None:
        """While suspended, settled parameters wait instead of being dispatched."""
        self._suspended = bool(suspended)
        _logger.debug("pipeline suspended=%s", self._suspended)
        if not self._suspended and self._pending is not None and self._running is None:
            self._debouncer.trigger()

    def invalidate_preview(self) -> None:
        """Forget the preview after its artifact was removed (e.g. a scratch purge).

        The next parameter event converts again even if the values are unchanged.
        """
        if self._preview is None:
            return
        self._preview = None
        self._emit_state()

    def shutdown(self) -> None:
        self._debouncer.cancel()
        self._pending = None
        self._executor.shutdown(wait=False, cancel_futures=True)

    # ---- internals ------------------------------------------------
    def _effective_parameters(self) -> ConversionParameters | None:
        if self._running is not None:
            return self._running.parameters
        if self._preview is not None:
            return self._preview.request.parameters
        return None

    def _on_quiescent(self, token: int) -> None:
        _logger.debug("quiescent: token=%d", token)
        self._dispatch_pending()

    def _dispatch_pending(self) -> None:
        if self._pending is None or self._source is None:
            return
        if self._suspended:
            _logger.debug("dispatch held: pipeline suspended")
            return
        if self._running is not None:
            # Restarted from _on_compress_finished once the current run settles.
            _logger.debug("dispatch deferred: gen=%d still running", self._running.generation)
            return

        self._generation += 1
        request = ConversionRequest(self._source, self._pending, self._generation)
        self._pending = None
        self._running = request
        try:
            future = self._executor.submit(self._run, request)
        except RuntimeError as e:
            # Executor already shut down.
            _logger.error("submit failed for gen=%d: %s", request.generation, e)
            self._running = None
            self._emit_state()
            return
        self._in_flight[request.generation] = future
        _logger.debug("dispatched gen=%d params=%s", request.generation, request.parameters)
        self.converting_changed.emit(True)
        self._emit_state()

    def _run(self, request: ConversionRequest) -> None:
        # Worker thread. A job that was superseded while queued never spawns a process.
        if request.generation <= self._floor:
            result: ConversionResult = ConversionFailure(request, FailureKind.EXIT, "superseded before start")
        else:
            try:
                result = self._compressor.compress(request)
            except Exception as e:
                _logger.exception("compress raised for gen=%d", request.generation)
                result = ConversionFailure(request, FailureKind.EXIT, f"unexpected error: {e}")
        self._compress_finished.emit(result)

    def _on_compress_finished(self, result: ConversionResult) -> None:
        gen = result.generation
        self._in_flight.pop(gen, None)
        authoritative = self._running is not None and self._running.generation == gen
        if authoritative:
            self._running = None

        if gen <= self._floor or gen < self._generation or gen <= self._applied:
            _logger.debug(
                "result dropped: gen=%d latest=%d floor=%d applied=%d", gen, self._generation, self._floor, self._applied
            )
            self._drop_stale_artifact(result)
        else:
            self._applied = gen
            self._result = result
            if isinstance(result, ConversionSuccess):
                self._preview = result
            elif result.kind in _ARTIFACT_LOST:
                self._preview = None
            self.result_ready.emit(result)

        if authoritative:
            self.converting_changed.emit(False)
        if self._pending is not None and self._running is None and not self._suspended:
            self._debouncer.trigger()
        self._emit_state()

    def _drop_stale_artifact(self, result: ConversionResult) -> None:
        # Any outcome: a failed run still leaves the abandoned source's earlier preview behind.
        artifact = self._store.artifact_path(result.request.source)
        if self._source is not None and self._store.artifact_path(self._source) == artifact:
            # Same file as the current session's preview; the next run replaces it.
            return
        self._store.remove(artifact)

    def _emit_state(self) -> None:
        self.state_changed.emit(self.snapshot)
