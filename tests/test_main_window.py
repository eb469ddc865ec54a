from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

PySide6 = pytest.importorskip("PySide6")  # noqa: F401

from PySide6.QtWidgets import QMessageBox

from pngquant_tuner.app.session import EditingSession
from pngquant_tuner.conversion import DebouncedConversionPipeline, ExternalCompressor, TempArtifactStore
from pngquant_tuner.main import _apply_cli_logging_options
from pngquant_tuner.settings_manager import SettingsManager
from pngquant_tuner.ui.main_window import MainWindow


def _make_window(qtbot, tmp_path: Path, scratch_dir: Path, launcher: list[str], quiescence_ms: int) -> MainWindow:
    store = TempArtifactStore(scratch_dir)
    pipeline = DebouncedConversionPipeline(ExternalCompressor(store, launcher), store, quiescence_ms=quiescence_ms)
    session = EditingSession(SettingsManager(str(tmp_path / "settings.json")), store=store, pipeline=pipeline)
    w = MainWindow(session)
    qtbot.addWidget(w)
    return w


@pytest.fixture
def window(qtbot, tmp_path: Path, scratch_dir: Path, fake_pngquant):
    return _make_window(qtbot, tmp_path, scratch_dir, fake_pngquant, 40)


def test_window_starts_empty(window) -> None:
    assert not window.canvas.has_pixmap()
    assert not window.save_btn.isEnabled()
    assert not window.reset_btn.isEnabled()
    assert window.rows["quality"].value() == 50
    assert window.scale_label.text() == "1.0x"


def test_selecting_file_shows_preview_and_enables_save(qtbot, window, png_file: Path) -> None:
    with qtbot.waitSignal(window.session.result_changed, timeout=5000):
        window.session.select_file(png_file)

    assert window.canvas.has_pixmap()
    assert window.file_label.text() == "Selected file: photo.png"
    assert window.size_label.text().startswith("Current size:")
    assert window.save_btn.isEnabled()
    assert window.reset_btn.isEnabled()


def test_spin_entry_updates_session_parameters(window) -> None:
    row = window.rows["colors"]
    row.spin.setValue(300)  # clamped by the spin box range
    row.spin.editingFinished.emit()
    assert window.session.parameters.colors == 256

    row = window.rows["dither"]
    row.spin.setValue(0.2)
    row.spin.editingFinished.emit()
    assert window.session.parameters.dither == pytest.approx(0.2)
    assert row.slider.value() == 2


def test_spin_commits_within_quiet_period_run_one_conversion(
    qtbot, tmp_path: Path, scratch_dir: Path, fake_pngquant, png_file: Path
) -> None:
    w = _make_window(qtbot, tmp_path, scratch_dir, fake_pngquant, 300)
    with qtbot.waitSignal(w.session.result_changed, timeout=5000):
        w.session.select_file(png_file)

    with qtbot.waitSignal(w.session.result_changed, timeout=5000):
        for name, value in (("quality", 30), ("colors", 64), ("speed", 3)):
            row = w.rows[name]
            row.spin.setValue(value)
            row.spin.editingFinished.emit()
    qtbot.wait(600)

    calls = [json.loads(line) for line in (tmp_path / "calls.log").read_text(encoding="utf-8").splitlines()]
    assert len(calls) == 2
    assert {"--quality=30-35", "--colors=64", "--speed=3"} <= set(calls[-1])


def test_zoom_buttons_follow_session_view(window) -> None:
    window.session.zoom_in()
    assert window.scale_label.text() == "1.3x"
    window.session.reset_view()
    assert window.scale_label.text() == "1.0x"


def test_tab_toggle_switches_pages(window) -> None:
    window._toggle_tab()
    assert window._stack.currentIndex() == 1
    assert window.tab_action.text() == "Convert"
    window._toggle_tab()
    assert window._stack.currentIndex() == 0


def test_rejected_file_shows_warning(window, tmp_path: Path, monkeypatch) -> None:
    shown: list[str] = []
    monkeypatch.setattr(QMessageBox, "warning", lambda _parent, _title, text: shown.append(text))
    other = tmp_path / "image.gif"
    other.write_bytes(b"GIF89a")

    window.session.select_file(other)

    assert len(shown) == 1


def test_cli_logging_options_are_stripped(monkeypatch) -> None:
    # Registered so the values written below are undone after the test.
    monkeypatch.setenv("PNGQUANT_TUNER_LOG_LEVEL", "")
    monkeypatch.setenv("PNGQUANT_TUNER_LOG_CATS", "")

    argv = _apply_cli_logging_options(["prog", "--log-level", "debug", "--log-cats=pipeline", "image.png"])

    assert argv == ["prog", "image.png"]
    assert os.environ["PNGQUANT_TUNER_LOG_LEVEL"] == "debug"
    assert os.environ["PNGQUANT_TUNER_LOG_CATS"] == "pipeline"
