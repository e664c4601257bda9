from pathlib import Path

from PySide6.QtWidgets import QFrame, QVBoxLayout, QLabel, QFileDialog
from PySide6.QtCore import Qt

from cleanpic_ui.config import MAX_UPLOAD_BYTES

_IDLE = "QFrame#uploadArea { border: 2px dashed #404040; border-radius: 24px; background: #1c1c1c; }"
_ACTIVE = "QFrame#uploadArea { border: 2px dashed #6366f1; border-radius: 24px; background: #262640; }"


class UploadArea(QFrame):
    """Click-to-pick and drag-and-drop target shown while no image is loaded."""

    def __init__(self, controller, upload_source, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.upload_source = upload_source
        self.setObjectName("uploadArea")
        self.setAcceptDrops(True)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setMinimumSize(600, 400)
        self._build()
        controller.drag_changed.connect(self._on_drag_changed)
        self._on_drag_changed(False)

    def _build(self):
        v = QVBoxLayout(self)
        v.addStretch(1)
        title = QLabel("Click or drag an image here")
        title.setAlignment(Qt.AlignmentFlag.AlignCenter)
        title.setStyleSheet("font-size: 22px; font-weight: 600; color: white;")
        v.addWidget(title)
        hint = QLabel(f"JPG, PNG, WEBP (max {MAX_UPLOAD_BYTES // (1024 * 1024)} MB)")
        hint.setAlignment(Qt.AlignmentFlag.AlignCenter)
        hint.setStyleSheet("color: #737373;")
        v.addWidget(hint)
        self.error_label = QLabel("")
        self.error_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.error_label.setStyleSheet("color: #f87171;")
        self.error_label.setWordWrap(True)
        v.addWidget(self.error_label)
        v.addStretch(1)

    def show_error(self, text: str):
        self.error_label.setText(text)

    def _on_drag_changed(self, active: bool):
        self.setStyleSheet(_ACTIVE if active else _IDLE)

    @staticmethod
    def _local_file(mime) -> Path | None:
        if not mime.hasUrls():
            return None
        for url in mime.urls():
            if url.isLocalFile():
                return Path(url.toLocalFile())
        return None

    def mousePressEvent(self, e):
        if e.button() != Qt.MouseButton.LeftButton:
            return
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Select Image",
            "",
            "Image Files (*.png *.jpg *.jpeg *.webp);;All Files (*)",
        )
        if file_path:
            self._open(Path(file_path))

    def dragEnterEvent(self, e):
        if self._local_file(e.mimeData()) is not None:
            e.acceptProposedAction()
            self.controller.set_drag_active(True)

    def dragLeaveEvent(self, e):
        self.controller.set_drag_active(False)

    def dropEvent(self, e):
        self.controller.set_drag_active(False)
        path = self._local_file(e.mimeData())
        if path is not None:
            e.acceptProposedAction()
            self._open(path)

    def _open(self, path: Path):
        self.error_label.setText("")
        self.upload_source.open_path(path)
