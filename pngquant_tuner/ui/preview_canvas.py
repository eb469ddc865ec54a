"""Preview canvas: shows the converted PNG with the session's zoom/pan.

Gestures are forwarded to the session as commands; the canvas only renders the
ViewState it is handed.
"""

from __future__ import annotations

from PySide6.QtCore import QPointF, Qt, Signal
from PySide6.QtGui import QPainter, QPixmap, QTransform
from PySide6.QtWidgets import QFrame, QGraphicsPixmapItem, QGraphicsScene, QGraphicsView

from pngquant_tuner.app.state.view_state import ViewState
from pngquant_tuner.logger import get_logger

_logger = get_logger("preview_canvas")

# Qt reports wheel rotation in 1/8 degree units.
_ANGLE_UNITS_PER_DEGREE = 8.0


class PreviewCanvas(QGraphicsView):
    wheel_zoomed = Signal(float)  # delta in degrees
    dragged = Signal(float, float)  # translation since press
    drag_finished = Signal()
    files_dropped = Signal(list)  # list[str]

    def __init__(self, parent=None):
        super().__init__(parent)
        self._scene = QGraphicsScene(self)
        self.setScene(self._scene)
        self._pix_item = QGraphicsPixmapItem()
        self._pix_item.setTransformationMode(Qt.TransformationMode.SmoothTransformation)
        self._scene.addItem(self._pix_item)
        self._press_pos: QPointF | None = None
        self._placeholder = "Drop a PNG file here"

        self.setFrameShape(QFrame.Shape.NoFrame)
        self.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setTransformationAnchor(QGraphicsView.ViewportAnchor.AnchorViewCenter)
        self.setAcceptDrops(True)
        self.setMinimumSize(480, 240)

    def has_pixmap(self) -> bool:
        return not self._pix_item.pixmap().isNull()

    def set_pixmap(self, pixmap: QPixmap | None) -> None:
        if pixmap is None or pixmap.isNull():
            self._pix_item.setPixmap(QPixmap())
            self._scene.setSceneRect(0, 0, 1, 1)
        else:
            self._pix_item.setPixmap(pixmap)
            self._pix_item.setOffset(-pixmap.width() / 2.0, -pixmap.height() / 2.0)
            self._scene.setSceneRect(self._pix_item.sceneBoundingRect())
        self.viewport().update()

    def apply_view(self, view: ViewState) -> None:
        # Offsets are in view pixels, so divide out the scale before moving the item.
        ox, oy = view.offset
        self.setTransform(QTransform.fromScale(view.scale, view.scale))
        self._pix_item.setPos(ox / view.scale, oy / view.scale)
        self.centerOn(0.0, 0.0)

    def drawForeground(self, painter, rect):
        super().drawForeground(painter, rect)
        if self.has_pixmap():
            return
        painter.save()
        painter.resetTransform()
        painter.setPen(Qt.GlobalColor.white)
        painter.drawText(self.viewport().rect(), Qt.AlignmentFlag.AlignCenter, self._placeholder)
        painter.restore()

    # ---- gestures -------------------------------------------------
    def wheelEvent(self, event) -> None:
        if not self.has_pixmap():
            event.ignore()
            return
        degrees = event.angleDelta().y() / _ANGLE_UNITS_PER_DEGREE
        if degrees:
            self.wheel_zoomed.emit(float(degrees))
        event.accept()

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.MouseButton.LeftButton and self.has_pixmap():
            self._press_pos = event.position()
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:
        if self._press_pos is not None:
            delta = event.position() - self._press_pos
            self.dragged.emit(float(delta.x()), float(delta.y()))
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:
        if self._press_pos is not None and event.button() == Qt.MouseButton.LeftButton:
            self._press_pos = None
            self.unsetCursor()
            self.drag_finished.emit()
            event.accept()
            return
        super().mouseReleaseEvent(event)

    # ---- drag & drop ----------------------------------------------
    def dragEnterEvent(self, event) -> None:
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event) -> None:
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event) -> None:
        urls = event.mimeData().urls()
        paths = [u.toLocalFile() for u in urls if u.isLocalFile()]
        if not paths:
            event.ignore()
            return
        _logger.debug("dropped: %s", paths)
        # Single-file tool: only the first entry is used.
        self.files_dropped.emit(paths[:1])
        event.acceptProposedAction()
