"""Main window for the CleanPic application."""

from PySide6.QtWidgets import QMainWindow, QStackedWidget, QWidget, QVBoxLayout, QHBoxLayout, QLabel
from PySide6.QtCore import Qt

from cleanpic_ui.core.session import Phase
from cleanpic_ui.core.upload import UploadSource
from cleanpic_ui.core.workflow import WorkflowController
from .editor_panel import EditorPanel
from .upload_area import UploadArea


class MainWindow(QMainWindow):
    """
    Main application window: upload page, or the editor once an image is loaded.

    Parameters
    ----------
    gateway : InferenceGateway
        Gateway used for submissions
    runner : callable, optional
        Background runner, defaults to the Qt thread pool
    parent : QWidget, optional
        Parent widget, by default None

    Attributes
    ----------
    controller : WorkflowController
        Session state machine shared by all child widgets
    stack : QStackedWidget
        Page 0 is the upload area, page 1 the editor
    """

    def __init__(self, gateway, runner=None, parent=None):
        super().__init__(parent)
        self.setWindowTitle("CleanPic AI")
        self.setMinimumSize(1200, 800)

        self.controller = WorkflowController(gateway, runner=runner, parent=self)
        self.upload_source = UploadSource(self.controller, runner=runner, parent=self)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        layout = QVBoxLayout(central_widget)
        layout.addWidget(self._create_header())

        self.stack = QStackedWidget()
        self.upload_area = UploadArea(self.controller, self.upload_source)
        self.editor = EditorPanel(self.controller, self.upload_source, runner=runner)
        self.stack.addWidget(self.upload_area)
        self.stack.addWidget(self.editor)
        layout.addWidget(self.stack, stretch=1)

        self.controller.phase_changed.connect(self._on_phase)
        self.controller.failed.connect(self._on_failed)
        self.upload_source.rejected.connect(lambda err: self.upload_area.show_error(str(err)))
        self._on_phase(self.controller.phase)

    def _create_header(self):
        widget = QWidget()
        h = QHBoxLayout(widget)
        name = QLabel("CleanPic AI")
        name.setStyleSheet("font-size: 18px; font-weight: bold;")
        h.addWidget(name)
        h.addStretch(1)
        tagline = QLabel("Free • HD • Unlimited")
        tagline.setStyleSheet("color: #a3a3a3;")
        tagline.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
        h.addWidget(tagline)
        return widget

    def _on_phase(self, phase):
        self.stack.setCurrentIndex(0 if phase is Phase.EMPTY else 1)

    def _on_failed(self, descriptor):
        if self.controller.phase is Phase.EMPTY:
            self.upload_area.show_error(descriptor.text())
