"""Main window: conversion tab (preview + parameters) and settings tab."""

from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices, QPixmap
from PySide6.QtWidgets import (
    QFileDialog,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QStackedWidget,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from pngquant_tuner import __version__
from pngquant_tuner.app.session import EditingSession
from pngquant_tuner.app.state.view_state import TAB_CONVERT, TAB_SETTINGS, ViewState
from pngquant_tuner.conversion import ConversionParameters, ConversionResult, ConversionSuccess, PurgeReport
from pngquant_tuner.logger import get_logger
from pngquant_tuner.ui.parameter_row import FIELDS, ParameterRow
from pngquant_tuner.ui.preview_canvas import PreviewCanvas

_logger = get_logger("main_window")

ABOUT_TEXT = f"""pngquant tuner {__version__}

This application runs pngquant, © 2009-2018 Kornel Lesiński, distributed under
the GNU General Public License v3 or later: https://github.com/kornelski/pngquant

Options
  Quality: overall quality target, 10-90 (pngquant gets the range q to q+5).
  Colors: palette size; fewer colors give smaller files.
  Floyd–Steinberg dithering: 0 = off, 1 = full strength.
  S/Q (speed/quality trade-off): 1 = slow and best quality, 11 = fast and rough.
    Speed here is encoding speed, not file size.
"""


class MainWindow(QMainWindow):
    def __init__(self, session: EditingSession, parent=None):
        super().__init__(parent)
        self.session = session
        self.setWindowTitle("pngquant tuner")
        self.resize(1000, 820)

        self._stack = QStackedWidget()
        self._stack.addWidget(self._build_convert_tab())
        self._stack.addWidget(self._build_settings_tab())
        self.setCentralWidget(self._stack)

        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.open_action = toolbar.addAction("Open…", self._choose_file)
        self.tab_action = toolbar.addAction("Settings", self._toggle_tab)
        self.addToolBar(toolbar)

        session.state.sourceNameChanged.connect(self._on_source_name)
        session.state.sizeTextChanged.connect(self.size_label.setText)
        session.state.noticeChanged.connect(self._on_notice)
        session.state.convertingChanged.connect(self._on_converting)
        session.result_changed.connect(self._on_result)
        session.source_changed.connect(self._on_source_changed)
        session.view_changed.connect(self._on_view_changed)
        session.error.connect(self._on_error)
        session.commit_succeeded.connect(self._on_commit_succeeded)
        session.commit_failed.connect(self._on_commit_failed)
        session.purged.connect(self._on_purged)

        self._sync_parameters(session.parameters)
        self._on_notice(session.state._get_notice())
        self._on_view_changed(session.view)
        self._update_buttons()

    # ---- layout ---------------------------------------------------
    def _build_convert_tab(self) -> QWidget:
        self.canvas = PreviewCanvas()
        self.canvas.setStyleSheet("QGraphicsView { background: #555; border-radius: 16px; }")
        self.canvas.files_dropped.connect(lambda paths: self.session.select_file(paths[0]))
        self.canvas.wheel_zoomed.connect(self.session.zoom_by_wheel)
        self.canvas.dragged.connect(self.session.drag_by)
        self.canvas.drag_finished.connect(self.session.end_drag)

        zoom_out = QPushButton("−")
        zoom_in = QPushButton("+")
        zoom_reset = QPushButton("Reset view")
        self.scale_label = QLabel("1.0x")
        zoom_out.clicked.connect(self.session.zoom_out)
        zoom_in.clicked.connect(self.session.zoom_in)
        zoom_reset.clicked.connect(self.session.reset_view)
        zoom_row = QHBoxLayout()
        zoom_row.addStretch()
        for w in (zoom_out, self.scale_label, zoom_in, zoom_reset):
            zoom_row.addWidget(w)

        self.file_label = QLabel("")
        self.notice_label = QLabel("")
        self.notice_label.setStyleSheet("color: #d32f2f;")
        self.size_label = QLabel("")

        self.rows: dict[str, ParameterRow] = {}
        params_box = QGroupBox()
        params_layout = QVBoxLayout(params_box)
        for spec in FIELDS:
            row = ParameterRow(spec)
            row.edited.connect(self._on_row_edited)
            params_layout.addWidget(row)
            self.rows[spec.name] = row

        self.reset_btn = QPushButton("Reset")
        self.save_btn = QPushButton("Save")
        self.reset_btn.clicked.connect(self.session.reset)
        self.save_btn.clicked.connect(self._on_save)
        buttons = QHBoxLayout()
        buttons.addStretch()
        buttons.addWidget(self.reset_btn)
        buttons.addWidget(self.save_btn)

        layout = QVBoxLayout()
        layout.addWidget(self.canvas, 1)
        layout.addLayout(zoom_row)
        layout.addWidget(self.file_label)
        layout.addWidget(self.notice_label)
        layout.addWidget(self.size_label)
        layout.addWidget(params_box)
        layout.addLayout(buttons)
        page = QWidget()
        page.setLayout(layout)
        return page

    def _build_settings_tab(self) -> QWidget:
        about = QPlainTextEdit(ABOUT_TEXT)
        about.setReadOnly(True)

        self.scratch_label = QLabel(str(self.session.store.scratch_dir))
        self.scratch_label.setWordWrap(True)
        show_btn = QPushButton("Show temporary folder")
        purge_btn = QPushButton("Delete temporary files")
        show_btn.clicked.connect(self._show_scratch_dir)
        purge_btn.clicked.connect(self.session.purge_scratch)

        buttons = QHBoxLayout()
        buttons.addWidget(show_btn)
        buttons.addWidget(purge_btn)
        buttons.addStretch()

        layout = QVBoxLayout()
        layout.addWidget(about, 1)
        layout.addWidget(QLabel("Temporary folder:"))
        layout.addWidget(self.scratch_label)
        layout.addLayout(buttons)
        page = QWidget()
        page.setLayout(layout)
        return page

    # ---- user actions ---------------------------------------------
    def _choose_file(self) -> None:
        start = str(self.session.source.path.parent) if self.session.source else ""
        path, _ = QFileDialog.getOpenFileName(self, "Open PNG", start, "PNG images (*.png)")
        if path:
            self.session.select_file(path)

    def _toggle_tab(self) -> None:
        tab = TAB_SETTINGS if self.session.view.tab == TAB_CONVERT else TAB_CONVERT
        self.session.set_tab(tab)

    def _on_row_edited(self, name: str, value: float) -> None:
        params = self.session.set_parameter(name, value)
        # Entry may have been clamped/rounded; show what will actually be used.
        self._sync_parameters(params)

    def _on_save(self) -> None:
        self.session.commit()

    def _show_scratch_dir(self) -> None:
        folder = self.session.store.scratch_dir
        if not QDesktopServices.openUrl(QUrl.fromLocalFile(str(folder))):
            _logger.warning("could not open temporary folder: %s", folder)

    # ---- session → widgets ----------------------------------------
    def _sync_parameters(self, params: ConversionParameters) -> None:
        for name, value in params.to_dict().items():
            self.rows[name].set_value(value)

    def _update_buttons(self) -> None:
        has_preview = self.session.preview is not None
        self.save_btn.setEnabled(has_preview and not self.session.pipeline.is_converting)
        self.reset_btn.setEnabled(self.session.source is not None)

    def _on_source_name(self, name: str) -> None:
        self.file_label.setText(f"Selected file: {name}" if name else "")

    def _on_notice(self, text: str) -> None:
        self.notice_label.setText(text)
        self.notice_label.setVisible(bool(text))

    def _on_converting(self, _converting: bool) -> None:
        self._update_buttons()

    def _on_source_changed(self, path: str) -> None:
        if not path:
            self.canvas.set_pixmap(None)
        self._update_buttons()

    def _on_result(self, result: ConversionResult) -> None:
        if isinstance(result, ConversionSuccess):
            pixmap = QPixmap(str(result.artifact_path))
            if pixmap.isNull():
                _logger.warning("preview could not be loaded: %s", result.artifact_path)
            else:
                self.canvas.set_pixmap(pixmap)
        # On failure the previous preview stays on screen.
        self._update_buttons()

    def _on_view_changed(self, view: ViewState) -> None:
        self.canvas.apply_view(view)
        self.scale_label.setText(view.scale_text)
        self._stack.setCurrentIndex(1 if view.tab == TAB_SETTINGS else 0)
        self.tab_action.setText("Convert" if view.tab == TAB_SETTINGS else "Settings")

    def _on_error(self, message: str) -> None:
        QMessageBox.warning(self, "pngquant tuner", message)

    def _on_commit_succeeded(self, path: str) -> None:
        QMessageBox.information(self, "Saved", f"Saved over the original:\n{Path(path).name}")

    def _on_commit_failed(self, message: str) -> None:
        QMessageBox.critical(self, "Save failed", f"{message}\n\nThe original file may need to be checked.")
        self.session.acknowledge_error()

    def _on_purged(self, report: PurgeReport) -> None:
        _logger.debug("purged %d file(s), %d failed", len(report.removed), len(report.failed))
        if report.failed:
            names = ", ".join(p.name for p, _ in report.failed)
            self.notice_label.setText(f"Some temporary files could not be deleted: {names}")
            self.notice_label.setVisible(True)
        self._update_buttons()

    def closeEvent(self, event) -> None:
        self.session.close()
        super().closeEvent(event)
