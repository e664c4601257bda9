import logging

from PySide6.QtWidgets import QWidget
from PySide6.QtGui import QPainter, QPen, QColor, QPixmap, QImage, QPolygonF
from PySide6.QtCore import Qt, QRectF, QPointF

from cleanpic_ui.core.errors import NotReady
from cleanpic_ui.core.session import Phase

log = logging.getLogger(__name__)


class MaskCanvas(QWidget):
    """
    Image with a freehand mask overlay.

    The image is fitted into the widget keeping its aspect ratio. The overlay
    is mounted at the fitted size the first time the controller reaches
    ``EDITING``; strokes are stored in that fixed coordinate space and
    rescaled on resize.
    """

    def __init__(self, controller, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.pix = None
        self.erase_mode = False
        self.overlay_opacity = 0.6
        self._draw_rect = QRectF()
        self._current = []
        self.setMouseTracking(False)
        self.setCursor(Qt.CursorShape.CrossCursor)
        controller.mask_changed.connect(self.update)
        controller.phase_changed.connect(self._on_phase)

    def set_image(self, qpix: QPixmap | None):
        self.pix = qpix
        self._current = []
        self._compute_draw_rect()
        self.mount()
        self.update()

    def set_erase_mode(self, on: bool):
        self.erase_mode = bool(on)

    def _on_phase(self, phase):
        if phase is Phase.EMPTY or phase is Phase.LOADED:
            self.pix = None
            self._current = []
        self.mount()
        self.update()

    def mount(self):
        if not self.pix or self.controller.mask.mounted:
            return
        if self.controller.phase is not Phase.EDITING:
            return
        dr = self._compute_draw_rect()
        if dr.width() < 1 or dr.height() < 1:
            return
        self.controller.mount_surface(int(round(dr.width())), int(round(dr.height())))

    def showEvent(self, e):
        super().showEvent(e)
        self.mount()

    def resizeEvent(self, e):
        super().resizeEvent(e)
        self._compute_draw_rect()
        self.mount()

    def _compute_draw_rect(self) -> QRectF:
        r = self.rect()
        if not self.pix:
            self._draw_rect = QRectF()
            return self._draw_rect
        prf = QRectF(self.pix.rect())
        prf = prf.size().scaled(r.width(), r.height(), Qt.AspectRatioMode.KeepAspectRatio)
        x = (r.width() - prf.width()) / 2
        y = (r.height() - prf.height()) / 2
        self._draw_rect = QRectF(x, y, prf.width(), prf.height())
        return self._draw_rect

    def _widget_to_canvas(self, pt: QPointF) -> tuple[float, float] | None:
        size = self.controller.mask.canvas_size
        if self._draw_rect.isNull() or size is None:
            return None
        cw, ch = size
        sx = cw / self._draw_rect.width()
        sy = ch / self._draw_rect.height()
        cx = (pt.x() - self._draw_rect.x()) * sx
        cy = (pt.y() - self._draw_rect.y()) * sy
        return min(max(cx, 0.0), cw), min(max(cy, 0.0), ch)

    def mousePressEvent(self, e):
        if e.button() != Qt.MouseButton.LeftButton or not self.controller.can_paint():
            return
        pt = self._widget_to_canvas(e.position())
        if pt is None:
            return
        self._current = [pt]
        self.update()

    def mouseMoveEvent(self, e):
        if not self._current:
            return
        pt = self._widget_to_canvas(e.position())
        if pt is not None and pt != self._current[-1]:
            self._current.append(pt)
            self.update()

    def mouseReleaseEvent(self, e):
        if e.button() != Qt.MouseButton.LeftButton or not self._current:
            return
        points, self._current = self._current, []
        try:
            self.controller.paint_stroke(points, erase=self.erase_mode)
        except NotReady as err:
            log.warning("Stroke dropped: %s", err)
        self.update()

    def _render_overlay(self) -> QImage | None:
        size = self.controller.mask.canvas_size
        if size is None:
            return None
        overlay = QImage(size[0], size[1], QImage.Format.Format_ARGB32_Premultiplied)
        overlay.fill(Qt.GlobalColor.transparent)
        p = QPainter(overlay)
        p.setRenderHint(QPainter.RenderHint.Antialiasing)
        strokes = [(s.points, s.width, s.erase) for s in self.controller.mask.strokes]
        if self._current:
            strokes.append((self._current, self.controller.brush_size, self.erase_mode))
        for points, width, erase in strokes:
            pen = QPen(QColor("white"), width)
            pen.setCapStyle(Qt.PenCapStyle.RoundCap)
            pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
            p.setPen(pen)
            p.setCompositionMode(
                QPainter.CompositionMode.CompositionMode_Clear
                if erase
                else QPainter.CompositionMode.CompositionMode_SourceOver
            )
            if len(points) == 1:
                p.drawPoint(QPointF(*points[0]))
            else:
                p.drawPolyline(QPolygonF([QPointF(x, y) for x, y in points]))
        p.end()
        return overlay

    def paintEvent(self, e):
        p = QPainter(self)
        p.fillRect(self.rect(), QColor("#171717"))
        dr = self._compute_draw_rect()
        if not self.pix:
            return
        p.drawPixmap(dr, self.pix, QRectF(self.pix.rect()))
        overlay = self._render_overlay()
        if overlay is not None:
            p.setOpacity(self.overlay_opacity)
            p.drawImage(dr, overlay)
            p.setOpacity(1.0)
