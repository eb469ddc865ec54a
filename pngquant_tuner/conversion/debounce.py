"""Token-keyed debounce timer."""

from __future__ import annotations

from PySide6.QtCore import QObject, QTimer, Signal


class Debouncer(QObject):
    """Single-shot QTimer re-armed on every trigger().

    Each trigger() bumps a monotonically increasing token; ``fired`` carries the
    token of the trigger that survived the quiet period. A timeout whose token
    is no longer current (cancel() ran in between) is ignored.
    """

    fired = Signal(int)

    def __init__(self, interval_ms: int = 1000, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._token = 0
        self._armed_token: int | None = None
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(0, int(interval_ms)))
        self._timer.timeout.connect(self._on_timeout)

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    def set_interval(self, interval_ms: int) -> None:
        self._timer.setInterval(max(0, int(interval_ms)))

    @property
    def token(self) -> int:
        return self._token

    def is_active(self) -> bool:
        return self._armed_token is not None

    def trigger(self) -> int:
        self._token += 1
        self._armed_token = self._token
        self._timer.start()
        return self._token

    def cancel(self) -> None:
        self._token += 1
        self._armed_token = None
        self._timer.stop()

    def _on_timeout(self) -> None:
        token = self._armed_token
        if token is None or token != self._token:
            return
        self._armed_token = None
        self.fired.emit(token)
