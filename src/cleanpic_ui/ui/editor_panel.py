"""Mask editor and result panel for CleanPic."""

import logging
from pathlib import Path

from PySide6.QtWidgets import (
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QPushButton,
    QLabel,
    QFileDialog,
    QGroupBox,
    QSlider,
    QToolButton,
)
from PySide6.QtCore import Qt, QObject, Signal, Slot
from PySide6.QtGui import QKeySequence, QShortcut

from cleanpic_ui.config import BRUSH_MAX, BRUSH_MIN
from cleanpic_ui.core.errors import CleanPicError, NotReady, UpstreamError
from cleanpic_ui.core.session import Phase
from cleanpic_ui.core.tasks import submit
from cleanpic_ui.core.upload import load_image_ref, save_image_ref
from .compare_view import CompareView
from .mask_canvas import MaskCanvas
from .qt_image import pil_to_qpixmap

log = logging.getLogger(__name__)

_PRIMARY_BUTTON = """
    QPushButton {
        background-color: white;
        color: black;
        font-weight: bold;
        padding: 10px 18px;
        border-radius: 10px;
    }
    QPushButton:disabled {
        background-color: #262626;
        color: #737373;
    }
    QPushButton:hover:!disabled {
        background-color: #eef2ff;
    }
"""


def _load_result_job(ref: str):
    try:
        return ref, load_image_ref(ref), None
    except CleanPicError as e:
        return ref, None, e


class _ResultLoader(QObject):
    """Fetches a result reference in the background and hands back a PIL image."""

    loaded = Signal(str, object)
    failed = Signal(str, object)

    def __init__(self, runner=None, parent=None):
        super().__init__(parent)
        self.runner = runner or submit
        self._pending = None

    def load(self, ref: str):
        self._pending = self.runner(_load_result_job, ref, tag=ref)
        self._pending.finished.connect(self._done)
        self._pending.error.connect(self._crashed)

    @Slot(object)
    def _done(self, outcome):
        self._pending = None
        ref, img, err = outcome
        if err is not None:
            self.failed.emit(ref, err)
        else:
            self.loaded.emit(ref, img)

    @Slot(object, str)
    def _crashed(self, ref, message):
        self._pending = None
        self.failed.emit(ref, UpstreamError("Could not load result image", message))


class EditorPanel(QWidget):
    """
    Paint-the-mask editor with the before/after comparison beside it.

    Parameters
    ----------
    controller : WorkflowController
        Session state machine
    upload_source : UploadSource
        Provides the decoded bitmap of the uploaded image
    runner : callable, optional
        Background runner used for result downloads
    parent : QWidget, optional
        Parent widget
    """

    def __init__(self, controller, upload_source, runner=None, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.upload_source = upload_source
        self.original_pix = None
        self.result_loader = _ResultLoader(runner, self)
        self._setup_ui()

        controller.phase_changed.connect(self._on_phase)
        controller.mask_changed.connect(self._sync_controls)
        controller.result_ready.connect(self._on_result)
        controller.failed.connect(self._on_failed)
        controller.brush_size_changed.connect(self.brush_slider.setValue)
        upload_source.ready.connect(self._on_image_ready)
        self.result_loader.loaded.connect(self._on_result_loaded)
        self.result_loader.failed.connect(self._on_result_load_failed)
        self._on_phase(controller.phase)

    def _setup_ui(self):
        layout = QHBoxLayout(self)
        layout.addLayout(self._create_editor_column(), stretch=1)
        layout.addLayout(self._create_result_column(), stretch=1)

        QShortcut(QKeySequence.StandardKey.Undo, self, activated=self._undo)

    def _create_editor_column(self):
        col = QVBoxLayout()
        header = QHBoxLayout()
        title = QLabel("Paint over the area to remove")
        title.setStyleSheet("font-size: 16px; font-weight: 600;")
        header.addWidget(title, stretch=1)

        self.undo_btn = QToolButton()
        self.undo_btn.setText("Undo")
        self.undo_btn.clicked.connect(self._undo)
        header.addWidget(self.undo_btn)

        self.eraser_btn = QToolButton()
        self.eraser_btn.setText("Eraser")
        self.eraser_btn.setCheckable(True)
        self.eraser_btn.toggled.connect(lambda on: self.canvas.set_erase_mode(on))
        header.addWidget(self.eraser_btn)

        self.clear_btn = QToolButton()
        self.clear_btn.setText("Clear")
        self.clear_btn.clicked.connect(self._clear)
        header.addWidget(self.clear_btn)

        self.close_btn = QToolButton()
        self.close_btn.setText("Close")
        self.close_btn.setStyleSheet("color: #f87171;")
        self.close_btn.clicked.connect(self.controller.reset)
        header.addWidget(self.close_btn)
        col.addLayout(header)

        self.canvas = MaskCanvas(self.controller, self)
        self.canvas.setMinimumSize(480, 360)
        col.addWidget(self.canvas, stretch=1)

        group = QGroupBox("Brush size")
        h = QHBoxLayout()
        self.brush_slider = QSlider(Qt.Orientation.Horizontal)
        self.brush_slider.setRange(BRUSH_MIN, BRUSH_MAX)
        self.brush_slider.setValue(self.controller.brush_size)
        self.brush_slider.valueChanged.connect(self.controller.set_brush_size)
        h.addWidget(self.brush_slider, stretch=1)

        self.run_btn = QPushButton("Remove")
        self.run_btn.setStyleSheet(_PRIMARY_BUTTON)
        self.run_btn.clicked.connect(self._submit)
        h.addWidget(self.run_btn)
        group.setLayout(h)
        col.addWidget(group)
        return col

    def _create_result_column(self):
        col = QVBoxLayout()
        title = QLabel("Result")
        title.setStyleSheet("font-size: 16px; font-weight: 600; color: #a3a3a3;")
        col.addWidget(title)

        self.compare = CompareView(self)
        col.addWidget(self.compare, stretch=1)

        h = QHBoxLayout()
        self.status_label = QLabel("")
        self.status_label.setWordWrap(True)
        self.status_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        h.addWidget(self.status_label, stretch=1)

        self.download_btn = QPushButton("Download")
        self.download_btn.clicked.connect(self._download)
        self.download_btn.setEnabled(False)
        h.addWidget(self.download_btn)
        col.addLayout(h)
        return col

    def _sync_controls(self):
        editable = self.controller.can_paint()
        self.undo_btn.setEnabled(editable and len(self.controller.mask) > 0)
        self.clear_btn.setEnabled(editable and len(self.controller.mask) > 0)
        self.eraser_btn.setEnabled(editable)
        self.brush_slider.setEnabled(self.controller.phase is not Phase.EMPTY)
        self.run_btn.setEnabled(self.controller.can_submit())
        self.download_btn.setEnabled(self.controller.result is not None and self.compare.result is not None)

    def _set_status(self, text: str, error: bool = False):
        self.status_label.setStyleSheet("color: #f87171;" if error else "color: #a3a3a3;")
        self.status_label.setText(text)

    def _on_phase(self, phase):
        if phase is Phase.EMPTY:
            self.original_pix = None
            self.canvas.set_image(None)
            self.compare.clear()
            self.eraser_btn.setChecked(False)
            self._set_status("")
        elif phase is Phase.LOADED:
            self.compare.clear()
            self._set_status("Decoding image…")
        elif phase is Phase.EDITING:
            if self.controller.result is None:
                self._set_status("Paint over the watermark, then press Remove.")
        elif phase is Phase.SUBMITTING:
            self.run_btn.setText("Removing…")
            self.compare.set_placeholder("The model is computing pixels…")
            self._set_status("Sending image and mask…")
        if phase is not Phase.SUBMITTING:
            self.run_btn.setText("Remove")
            self.compare.set_placeholder("Waiting for a result…")
        self.canvas.mount()
        self._sync_controls()

    def _on_image_ready(self, img):
        self.original_pix = pil_to_qpixmap(img)
        self.canvas.set_image(self.original_pix)
        self._sync_controls()

    def _on_result(self, result):
        self._set_status("Loading result…")
        self.result_loader.load(result.ref)

    def _on_result_loaded(self, ref, img):
        current = self.controller.result
        if current is None or current.ref != ref:
            return
        self.compare.set_images(self.original_pix, pil_to_qpixmap(img))
        self._set_status("Done. Drag the handle to compare.")
        self._sync_controls()

    def _on_result_load_failed(self, ref, err):
        current = self.controller.result
        if current is None or current.ref != ref:
            return
        self._set_status(f"Could not display result:\n{err}", error=True)

    def _on_failed(self, descriptor):
        self._set_status(f"Processing failed: {descriptor.text()}", error=True)

    def _run_action(self, action):
        try:
            action()
        except NotReady as e:
            self._set_status(str(e), error=True)

    def _undo(self):
        self._run_action(self.controller.undo)

    def _clear(self):
        self._run_action(self.controller.clear_mask)

    def _submit(self):
        self._run_action(self.controller.submit)

    def _download(self):
        result = self.controller.result
        if result is None:
            return
        file_path, _ = QFileDialog.getSaveFileName(
            self, "Save Result", "clean_image.png", "PNG (*.png);;JPEG (*.jpg *.jpeg);;WEBP (*.webp)"
        )
        if not file_path:
            return
        try:
            path = save_image_ref(result.ref, Path(file_path))
        except (CleanPicError, OSError) as e:
            self._set_status(f"Could not save result:\n{e}", error=True)
            return
        self._set_status(f"Saved to {path}")
