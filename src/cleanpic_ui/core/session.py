"""
Workflow Session State
======================

In-memory data model for one mask-authoring session. Nothing here is
persisted; a session lives only as long as the window that owns it.

Classes
-------
Phase
    Workflow phases (``EMPTY`` → ``LOADED`` → ``EDITING`` → ``SUBMITTING``
    → ``SUCCEEDED``/``FAILED``)
SourceImage
    Uploaded image bytes, MIME type, and decoded dimensions
InferenceResult
    Reference to the model's output image
ErrorDescriptor
    User-visible description of a failure
WorkflowSession
    Aggregate of everything above plus the mask layer and brush size

Notes
-----
The session is owned and mutated exclusively by
:class:`cleanpic_ui.core.workflow.WorkflowController`. Widgets read it but
never write to it.

See Also
--------
cleanpic_ui.core.workflow : State machine that drives the session
cleanpic_ui.core.mask : Mask layer model
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from cleanpic_ui.config import BRUSH_DEFAULT
from .encoding import to_data_uri
from .errors import CleanPicError
from .mask import MaskLayer


class Phase(str, Enum):
    EMPTY = "empty"
    LOADED = "loaded"
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (Phase.SUCCEEDED, Phase.FAILED)


@dataclass(frozen=True)
class SourceImage:
    """
    Uploaded image payload.

    Attributes
    ----------
    data : bytes
        Raw encoded image
    mime_type : str
        e.g. ``"image/png"``
    width, height : int or None
        Pixel dimensions, known only after decode
    name : str
        Display name (file name) of the upload
    """

    data: bytes
    mime_type: str
    width: int | None = None
    height: int | None = None
    name: str = ""

    @property
    def decoded(self) -> bool:
        return self.width is not None and self.height is not None

    @property
    def size(self) -> tuple[int, int] | None:
        if not self.decoded:
            return None
        return self.width, self.height

    def with_dimensions(self, width: int, height: int) -> "SourceImage":
        return replace(self, width=int(width), height=int(height))

    def data_uri(self) -> str:
        return to_data_uri(self.data, self.mime_type)


@dataclass(frozen=True)
class InferenceResult:
    ref: str


@dataclass(frozen=True)
class ErrorDescriptor:
    kind: str
    message: str
    detail: str | None = None

    @classmethod
    def from_exception(cls, exc: Exception) -> "ErrorDescriptor":
        if isinstance(exc, CleanPicError):
            return cls(exc.kind, exc.message, exc.detail)
        return cls("upstream", "Unexpected error", str(exc) or type(exc).__name__)

    def text(self) -> str:
        if self.detail:
            return f"{self.message}\n{self.detail}"
        return self.message


@dataclass
class WorkflowSession:
    """
    Aggregate state of one editing session.

    Attributes
    ----------
    phase : Phase
        Current workflow phase
    source : SourceImage or None
        Uploaded image
    mask : MaskLayer
        Stroke buffer; ``mask.canvas_size`` is set once the canvas mounts
    brush_size : int
        Current brush width in canvas pixels
    result : InferenceResult or None
        Latest successful result
    error : ErrorDescriptor or None
        Latest failure, cleared on the next submission
    generation : int
        Bumped on every load and reset; stale async replies compare against it
    dragging : bool
        Whether a file is currently dragged over the upload area
    """

    phase: Phase = Phase.EMPTY
    source: SourceImage | None = None
    mask: MaskLayer = field(default_factory=MaskLayer)
    brush_size: int = BRUSH_DEFAULT
    result: InferenceResult | None = None
    error: ErrorDescriptor | None = None
    generation: int = 0
    dragging: bool = False

    @property
    def surface_mounted(self) -> bool:
        return self.mask.mounted
