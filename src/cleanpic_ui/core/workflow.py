"""
Workflow Controller
===================

State machine for the mask-authoring and submission workflow::

    EMPTY ──load_image──▶ LOADED ──image_decoded──▶ EDITING ──submit──▶ SUBMITTING
      ▲                                               ▲  │                  │
      │                                               │  │         ┌────────┴────────┐
      └──────────────── reset() from any phase ───────┘  │         ▼                 ▼
                                                     resume_editing()  SUCCEEDED    FAILED

Rules
-----
- The mask canvas may only be mounted once the image is decoded (``EDITING``)
- Only one inference request is in flight per session; ``submit`` while
  ``SUBMITTING`` raises :class:`NotReady`
- The mask is snapshotted at ``submit``; later strokes do not affect the
  in-flight request
- A failure keeps the image, the mask, and the previous successful result
- ``reset`` during ``SUBMITTING`` does not cancel the request; its reply is
  discarded when it arrives because the request token no longer matches
- Calls that are not allowed in the current phase raise :class:`NotReady`
  instead of being ignored

Classes
-------
WorkflowController
    QObject owning the :class:`WorkflowSession`
Submission
    Outcome of one background gateway call

See Also
--------
cleanpic_ui.core.session : Session data model
cleanpic_ui.core.gateway : Gateways called by ``submit``
cleanpic_ui.ui.editor_panel : Widget that drives the controller
"""

import itertools
import logging
from dataclasses import dataclass

from PySide6.QtCore import QObject, Signal, Slot

from cleanpic_ui.config import BRUSH_MAX, BRUSH_MIN, MASK_RESOLUTION, MAX_UPLOAD_BYTES
from .encoding import to_data_uri
from .errors import CleanPicError, InvalidInput, NotReady, UpstreamError
from .mask import MaskLayer, MaskSnapshot, Stroke, mime_type_for
from .session import ErrorDescriptor, InferenceResult, Phase, SourceImage, WorkflowSession
from .tasks import submit as submit_task
from .upload import validate_upload

log = logging.getLogger(__name__)

_tokens = itertools.count(1)


@dataclass(frozen=True)
class Submission:
    token: int
    ref: str | None = None
    error: CleanPicError | None = None


def _call_gateway(gateway, token: int, image: str, mask: str) -> Submission:
    try:
        return Submission(token, ref=gateway.submit(image, mask))
    except CleanPicError as e:
        return Submission(token, error=e)


class WorkflowController(QObject):
    """
    Orchestrates upload, mask painting, submission, and results.

    Parameters
    ----------
    gateway : InferenceGateway
        Gateway used for submissions
    runner : callable, optional
        Background runner with the signature of
        :func:`cleanpic_ui.core.tasks.submit`
    mask_format : str, default="png"
        Encoding of the exported mask
    mask_resolution : str, default from ``CLEANPIC_MASK_RESOLUTION``
        ``"display"`` exports at canvas size, ``"native"`` at image size
    max_upload_bytes : int
        Upload size limit
    parent : QObject, optional
        Qt parent

    Signals
    -------
    phase_changed : Signal(object)
        New :class:`Phase`
    mask_changed : Signal()
        Strokes were added, undone, or cleared
    result_ready : Signal(object)
        :class:`InferenceResult` of a successful submission
    failed : Signal(object)
        :class:`ErrorDescriptor` of a failed submission or decode
    brush_size_changed : Signal(int)
    drag_changed : Signal(bool)

    Examples
    --------
    >>> ctrl = WorkflowController(ProxyGateway())
    >>> token = ctrl.load_image(png_bytes, "image/png")
    >>> ctrl.image_decoded(token, 800, 600)
    True
    >>> ctrl.mount_surface(800, 600)
    >>> ctrl.paint_stroke([(10, 10), (50, 50)])
    >>> ctrl.submit()
    """

    phase_changed = Signal(object)
    mask_changed = Signal()
    result_ready = Signal(object)
    failed = Signal(object)
    brush_size_changed = Signal(int)
    drag_changed = Signal(bool)

    def __init__(
        self,
        gateway,
        runner=None,
        mask_format: str = "png",
        mask_resolution: str = MASK_RESOLUTION,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        parent=None,
    ):
        super().__init__(parent)
        if mask_resolution not in ("display", "native"):
            raise ValueError(f"Unknown mask resolution '{mask_resolution}'. Available: display, native")
        mime_type_for(mask_format)
        self.gateway = gateway
        self.runner = runner or submit_task
        self.mask_format = mask_format
        self.mask_resolution = mask_resolution
        self.max_upload_bytes = max_upload_bytes
        self.session = WorkflowSession()
        self.load_token: int | None = None
        self._request_token: int | None = None
        self._pending = None
        self.last_snapshot: MaskSnapshot | None = None

    # -- read-only views -------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self.session.phase

    @property
    def source(self) -> SourceImage | None:
        return self.session.source

    @property
    def mask(self) -> MaskLayer:
        return self.session.mask

    @property
    def result(self) -> InferenceResult | None:
        return self.session.result

    @property
    def error(self) -> ErrorDescriptor | None:
        return self.session.error

    @property
    def brush_size(self) -> int:
        return self.session.brush_size

    @property
    def in_flight(self) -> bool:
        return self._request_token is not None

    def can_paint(self) -> bool:
        return self.phase in (Phase.EDITING, Phase.SUCCEEDED, Phase.FAILED) and self.session.surface_mounted

    def can_submit(self) -> bool:
        return self.can_paint()

    # -- transitions -----------------------------------------------------

    def _set_phase(self, phase: Phase):
        if phase is self.session.phase:
            return
        log.debug("Phase %s -> %s", self.session.phase.value, phase.value)
        self.session.phase = phase
        self.phase_changed.emit(phase)

    def _require(self, action: str, *phases: Phase):
        if self.phase not in phases:
            raise NotReady(
                f"Cannot {action} now",
                f"current phase is '{self.phase.value}', expected one of: "
                + ", ".join(p.value for p in phases),
            )

    def load_image(self, data: bytes, mime_type: str, name: str = "") -> int:
        """
        Start a new session with an uploaded image.

        Parameters
        ----------
        data : bytes
            Encoded image
        mime_type : str
            Declared MIME type, must be ``image/*``
        name : str, optional
            Display name

        Returns
        -------
        int
            Decode token to pass back to :meth:`image_decoded`

        Raises
        ------
        NotReady
            Outside ``EMPTY`` and the terminal phases
        InvalidInput
            For empty, oversized, or non-image payloads
        """
        self._require("load an image", Phase.EMPTY, Phase.SUCCEEDED, Phase.FAILED)
        validate_upload(data, mime_type, self.max_upload_bytes)
        self.session = WorkflowSession(
            phase=self.session.phase,
            brush_size=self.session.brush_size,
            generation=self.session.generation + 1,
            source=SourceImage(data, mime_type, name=name),
        )
        self.load_token = next(_tokens)
        self._request_token = None
        self._pending = None
        self.last_snapshot = None
        log.info("Loaded %s (%s, %d bytes)", name or "image", mime_type, len(data))
        self._set_phase(Phase.LOADED)
        self.mask_changed.emit()
        return self.load_token

    def image_decoded(self, token: int, width: int, height: int) -> bool:
        """
        Readiness signal from the decoder: enables painting.

        Returns
        -------
        bool
            False if the token belongs to a superseded upload
        """
        if token != self.load_token or self.phase is not Phase.LOADED:
            log.debug("Ignoring stale decode token %s", token)
            return False
        if width <= 0 or height <= 0:
            self.decode_failed(token, InvalidInput("Could not decode image", f"invalid size {width}x{height}"))
            return False
        self.session.source = self.session.source.with_dimensions(width, height)
        log.info("Decoded image: %dx%d", width, height)
        self._set_phase(Phase.EDITING)
        return True

    def decode_failed(self, token: int, error: CleanPicError) -> bool:
        if token != self.load_token or self.phase is not Phase.LOADED:
            return False
        self.session = WorkflowSession(
            brush_size=self.session.brush_size,
            generation=self.session.generation + 1,
            error=ErrorDescriptor.from_exception(error),
        )
        self.load_token = None
        self._set_phase(Phase.EMPTY)
        self.failed.emit(self.session.error)
        return True

    def mount_surface(self, width: int, height: int):
        """Record the canvas's fixed overlay size; strokes use this space."""
        self._require("show the canvas", Phase.EDITING, Phase.SUCCEEDED, Phase.FAILED)
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid canvas size {width}x{height}")
        if self.session.mask.canvas_size is None:
            self.session.mask.canvas_size = (int(width), int(height))
            log.debug("Canvas mounted at %dx%d", width, height)

    def _enter_editing(self, action: str):
        self._require(action, Phase.EDITING, Phase.SUCCEEDED, Phase.FAILED)
        if self.phase.terminal:
            self._set_phase(Phase.EDITING)

    def paint_stroke(self, points, width: float | None = None, erase: bool = False) -> Stroke | None:
        """
        Append a stroke to the mask.

        Parameters
        ----------
        points : sequence of (x, y)
            Path in canvas coordinates
        width : float, optional
            Stroke width; defaults to the current brush size
        erase : bool, default=False
            Erase instead of paint

        Returns
        -------
        Stroke or None
            The stored stroke, or None if the canvas is not mounted yet

        Raises
        ------
        NotReady
            Before decode completes or while submitting
        """
        self._require("paint", Phase.EDITING, Phase.SUCCEEDED, Phase.FAILED)
        if not self.session.surface_mounted:
            return None
        self._enter_editing("paint")
        stroke = self.session.mask.add_stroke(points, width or self.brush_size, erase)
        self.mask_changed.emit()
        return stroke

    def undo(self) -> bool:
        """Remove the latest stroke; returns False if there was none."""
        self._require("undo", Phase.EDITING, Phase.SUCCEEDED, Phase.FAILED)
        if self.session.mask.undo() is None:
            return False
        self._enter_editing("undo")
        self.mask_changed.emit()
        return True

    def clear_mask(self):
        self._require("clear the mask", Phase.EDITING, Phase.SUCCEEDED, Phase.FAILED)
        self.session.mask.clear()
        self._enter_editing("clear the mask")
        self.mask_changed.emit()

    def set_brush_size(self, size: int) -> int:
        size = max(BRUSH_MIN, min(BRUSH_MAX, int(size)))
        if size != self.session.brush_size:
            self.session.brush_size = size
            self.brush_size_changed.emit(size)
        return size

    def set_drag_active(self, active: bool):
        if bool(active) != self.session.dragging:
            self.session.dragging = bool(active)
            self.drag_changed.emit(self.session.dragging)

    def resume_editing(self):
        """Leave ``SUCCEEDED``/``FAILED`` and go back to ``EDITING``."""
        self._require("resume editing", Phase.SUCCEEDED, Phase.FAILED)
        self._set_phase(Phase.EDITING)

    def export_mask(self, snapshot: MaskSnapshot | None = None) -> str:
        """Render the mask (current or a given snapshot) as a data URI."""
        snapshot = snapshot or self.session.mask.snapshot()
        size = None
        if self.mask_resolution == "native" and self.source is not None:
            size = self.source.size
        raster = snapshot.export_raster(self.mask_format, size)
        return to_data_uri(raster, mime_type_for(self.mask_format))

    def submit(self) -> int:
        """
        Export the mask and send image + mask to the gateway.

        Returns
        -------
        int
            Request token of the submission

        Raises
        ------
        NotReady
            While a request is in flight, before decode completes, or before
            the canvas is mounted
        """
        if self.phase is Phase.SUBMITTING or self.in_flight:
            raise NotReady("A request is already in progress")
        self._require("submit", Phase.EDITING, Phase.SUCCEEDED, Phase.FAILED)
        source = self.session.source
        if source is None or not source.decoded:
            raise NotReady("The image is not ready yet")
        if not self.session.surface_mounted:
            raise NotReady("The mask canvas is not ready yet")

        snapshot = self.session.mask.snapshot()
        image_uri = source.data_uri()
        mask_uri = self.export_mask(snapshot)
        token = next(_tokens)
        self.last_snapshot = snapshot
        self._request_token = token
        self.session.error = None
        self._set_phase(Phase.SUBMITTING)
        log.info("Submitting request %d (%d strokes) via %s", token, len(snapshot.strokes), getattr(self.gateway, "name", "gateway"))
        self._pending = self.runner(_call_gateway, self.gateway, token, image_uri, mask_uri, tag=token)
        self._pending.finished.connect(self._on_submission)
        self._pending.error.connect(self._on_task_error)
        return token

    @Slot(object)
    def _on_submission(self, outcome: Submission):
        if outcome.token != self._request_token:
            log.info("Discarding reply to superseded request %d", outcome.token)
            return
        self._request_token = None
        self._pending = None
        if outcome.error is not None:
            self.session.error = ErrorDescriptor.from_exception(outcome.error)
            log.warning("Request %d failed: %s", outcome.token, outcome.error)
            self._set_phase(Phase.FAILED)
            self.failed.emit(self.session.error)
            return
        self.session.result = InferenceResult(outcome.ref)
        log.info("Request %d succeeded", outcome.token)
        self._set_phase(Phase.SUCCEEDED)
        self.result_ready.emit(self.session.result)

    @Slot(object, str)
    def _on_task_error(self, token: int, message: str):
        self._on_submission(Submission(token, error=UpstreamError("Request failed", message)))

    def reset(self):
        """Drop the whole session and return to ``EMPTY``."""
        if self.in_flight:
            log.info("Reset while request %d is in flight; its reply will be discarded", self._request_token)
        self.session = WorkflowSession(
            phase=self.session.phase,
            brush_size=self.session.brush_size,
            generation=self.session.generation + 1,
        )
        self.load_token = None
        self._request_token = None
        self._pending = None
        self.last_snapshot = None
        self._set_phase(Phase.EMPTY)
        self.mask_changed.emit()
