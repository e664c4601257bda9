"""
Pytest configuration and shared fixtures for CleanPic tests.

Qt runs on the offscreen platform; background work is executed by
:class:`FakeRunner` so tests control exactly when a task "completes".
"""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from io import BytesIO  # noqa: E402

import pytest  # noqa: E402
from PIL import Image  # noqa: E402
from PySide6.QtWidgets import QApplication  # noqa: E402

from cleanpic_ui.core.tasks import TaskSignals  # noqa: E402
from cleanpic_ui.core.workflow import WorkflowController  # noqa: E402


class FakeRunner:
    """Stand-in for ``core.tasks.submit`` that queues calls until ``run``."""

    def __init__(self):
        self.calls = []
        self.tags = []

    def __call__(self, fn, *args, tag=None, **kwargs):
        signals = TaskSignals()
        self.calls.append((fn, args, kwargs, signals))
        self.tags.append(tag)
        return signals

    @property
    def pending(self):
        return len(self.calls)

    def run(self, index=0):
        fn, args, kwargs, signals = self.calls.pop(index)
        tag = self.tags.pop(index)
        try:
            res = fn(*args, **kwargs)
        except Exception as e:
            signals.error.emit(tag, str(e))
            return None
        signals.finished.emit(res)
        return res

    def run_all(self):
        while self.calls:
            self.run()


class FakeGateway:
    """Gateway double returning queued references or raising queued exceptions."""

    name = "fake"

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or ["https://host/out.png"]
        self.calls = []

    def submit(self, image, mask):
        self.calls.append((image, mask))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_png(width=800, height=600, color=(200, 30, 30), mode="RGB") -> bytes:
    buf = BytesIO()
    Image.new(mode, (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """Provide the single QApplication instance for the test session."""
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def png_bytes():
    """800x600 PNG image payload."""
    return make_png()


@pytest.fixture
def controller(gateway, runner):
    return WorkflowController(gateway, runner=runner)


@pytest.fixture
def editing(controller, png_bytes):
    """Controller with a decoded 800x600 image and a mounted 800x600 canvas."""
    token = controller.load_image(png_bytes, "image/png", name="photo.png")
    controller.image_decoded(token, 800, 600)
    controller.mount_surface(800, 600)
    return controller
