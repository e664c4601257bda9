from PySide6.QtWidgets import QApplication, QWidget
from PySide6.QtGui import QPainter, QPen, QColor, QPixmap, QMouseEvent
from PySide6.QtCore import Qt, QEvent, QRectF, QPointF, Signal

from cleanpic_ui.core.comparison import SplitDrag


class CompareView(QWidget):
    """
    Original (left of the handle) versus result (right of the handle).

    While the handle is dragged an application-wide event filter follows the
    pointer, so releasing it anywhere ends the drag. The filter is removed on
    release, hide, and close.
    """

    split_changed = Signal(float)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.original = None
        self.result = None
        self.placeholder = "Waiting for a result…"
        self._draw_rect = QRectF()
        self.drag = SplitDrag(self._attach, self._detach, self._on_split)
        self.setMinimumSize(320, 240)
        self.setCursor(Qt.CursorShape.SplitHCursor)

    @property
    def position(self) -> float:
        return self.drag.position

    def set_position(self, value: float):
        self.drag.set_position(value)
        self.update()

    def set_images(self, original: QPixmap | None, result: QPixmap | None):
        self.original = original
        self.result = result
        self.update()

    def set_placeholder(self, text: str):
        self.placeholder = text
        self.update()

    def clear(self):
        self.drag.end()
        self.original = None
        self.result = None
        self.drag.set_position(50.0)
        self.update()

    def _on_split(self, value: float):
        self.split_changed.emit(value)
        self.update()

    def _attach(self):
        QApplication.instance().installEventFilter(self)

    def _detach(self):
        app = QApplication.instance()
        if app is not None:
            app.removeEventFilter(self)

    def _compute_draw_rect(self) -> QRectF:
        r = self.rect()
        ref = self.original or self.result
        if not ref:
            self._draw_rect = QRectF(r)
            return self._draw_rect
        prf = QRectF(ref.rect()).size().scaled(r.width(), r.height(), Qt.AspectRatioMode.KeepAspectRatio)
        self._draw_rect = QRectF(
            (r.width() - prf.width()) / 2, (r.height() - prf.height()) / 2, prf.width(), prf.height()
        )
        return self._draw_rect

    def _drag_to(self, global_pos: QPointF):
        local = self.mapFromGlobal(global_pos.toPoint())
        dr = self._draw_rect
        self.drag.move(local.x(), dr.x(), dr.width())

    def mousePressEvent(self, e):
        if e.button() != Qt.MouseButton.LeftButton or not (self.original and self.result):
            return
        dr = self._compute_draw_rect()
        self.drag.begin(e.position().x(), dr.x(), dr.width())

    def eventFilter(self, obj, ev):
        if self.drag.active and isinstance(ev, QMouseEvent):
            if ev.type() == QEvent.Type.MouseMove:
                self._drag_to(ev.globalPosition())
            elif ev.type() == QEvent.Type.MouseButtonRelease:
                self._drag_to(ev.globalPosition())
                self.drag.end()
        return False

    def hideEvent(self, e):
        self.drag.end()
        super().hideEvent(e)

    def closeEvent(self, e):
        self.drag.end()
        super().closeEvent(e)

    def paintEvent(self, e):
        p = QPainter(self)
        p.fillRect(self.rect(), QColor("#171717"))
        dr = self._compute_draw_rect()
        if not self.result:
            p.setPen(QColor("#737373"))
            p.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, self.placeholder)
            return
        p.drawPixmap(dr, self.result, QRectF(self.result.rect()))
        if not self.original:
            return
        cut = dr.width() * self.position / 100.0
        p.save()
        p.setClipRect(QRectF(dr.x(), dr.y(), cut, dr.height()))
        p.drawPixmap(dr, self.original, QRectF(self.original.rect()))
        p.restore()
        x = dr.x() + cut
        p.setPen(QPen(QColor("white"), 2))
        p.drawLine(QPointF(x, dr.top()), QPointF(x, dr.bottom()))
        p.setBrush(QColor("white"))
        p.drawEllipse(QPointF(x, dr.center().y()), 8, 8)
