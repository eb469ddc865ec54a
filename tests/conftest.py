"""Pytest configuration.

The suite uses PySide6 widgets and QObjects in several modules. We create a
single `QApplication` for the whole session as early as possible (before
collection imports Qt modules) and shut it down cleanly at the end.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import pytest

_APP: Any | None = None

HELPERS_DIR = Path(__file__).resolve().parent / "helpers"
FAKE_PNGQUANT = HELPERS_DIR / "fake_pngquant.py"


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QApplication exists before collecting/running tests."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

    # Import lazily so non-Qt environments can still import this conftest.
    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    global _APP

    app = QApplication.instance()
    if app is None:
        # Keep a strong ref so it isn't GC'd mid-session.
        _APP = QApplication([])
    else:
        _APP = app


def pytest_sessionfinish(session, exitstatus) -> None:  # noqa: ARG001
    """Attempt a clean Qt shutdown to avoid lingering threads at interpreter exit."""
    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    app = QApplication.instance()
    if app is None:
        return

    app.quit()
    app.processEvents()


def write_png(path: Path, size: tuple[int, int] = (64, 48), color=(200, 40, 90)) -> Path:
    from PIL import Image

    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, format="PNG")
    return path


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    # Keep user settings and the fake tool's switches out of every test.
    monkeypatch.setenv("PNGQUANT_TUNER_SETTINGS", str(tmp_path / "settings" / "settings.json"))
    for name in ("FAKE_PNGQUANT_EXIT", "FAKE_PNGQUANT_EMPTY", "FAKE_PNGQUANT_SKIP", "FAKE_PNGQUANT_SLEEP"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_png(tmp_path: Path):
    """Factory: ``make_png("name.png", size=(w, h))`` writes a real PNG under tmp_path/images."""

    def _make(name: str = "photo.png", size: tuple[int, int] = (64, 48)) -> Path:
        return write_png(tmp_path / "images" / name, size=size)

    return _make


@pytest.fixture
def png_file(make_png) -> Path:
    return make_png()


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    return tmp_path / "scratch"


@pytest.fixture
def fake_pngquant(tmp_path: Path, monkeypatch) -> list[str]:
    """Launcher for the fake tool; each invocation appends its argv to ``calls.log``."""
    log = tmp_path / "calls.log"
    monkeypatch.setenv("FAKE_PNGQUANT_LOG", str(log))
    return [sys.executable, str(FAKE_PNGQUANT)]
