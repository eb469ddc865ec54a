from __future__ import annotations

from PySide6.QtCore import Property, QObject, Signal


class SessionState(QObject):
    """Bindable state for the conversion tab.

    The session mutates it through the ``_set_*`` helpers; widgets only read
    and listen to the change signals.
    """

    convertingChanged = Signal(bool)
    sourceNameChanged = Signal(str)
    sizeTextChanged = Signal(str)
    noticeChanged = Signal(str)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._converting = False
        self._source_name = ""
        self._size_text = ""
        self._notice = ""

    def _get_converting(self) -> bool:
        return bool(self._converting)

    converting = Property(bool, _get_converting, notify=convertingChanged)  # type: ignore[arg-type]

    def _get_source_name(self) -> str:
        return str(self._source_name)

    sourceName = Property(str, _get_source_name, notify=sourceNameChanged)  # type: ignore[arg-type]

    def _get_size_text(self) -> str:
        return str(self._size_text)

    sizeText = Property(str, _get_size_text, notify=sizeTextChanged)  # type: ignore[arg-type]

    def _get_notice(self) -> str:
        return str(self._notice)

    notice = Property(str, _get_notice, notify=noticeChanged)  # type: ignore[arg-type]

    # ---- internal mutation helpers (called by the session) ----
    def _set_converting(self, converting: bool) -> None:
        v = bool(converting)
        if v == self._converting:
            return
        self._converting = v
        self.convertingChanged.emit(v)

    def _set_source_name(self, name: str) -> None:
        n = str(name)
        if n == self._source_name:
            return
        self._source_name = n
        self.sourceNameChanged.emit(n)

    def _set_size_text(self, text: str) -> None:
        t = str(text)
        if t == self._size_text:
            return
        self._size_text = t
        self.sizeTextChanged.emit(t)

    def _set_notice(self, text: str) -> None:
        t = str(text)
        if t == self._notice:
            return
        self._notice = t
        self.noticeChanged.emit(t)
