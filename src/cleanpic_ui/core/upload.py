"""
Image Upload and I/O
====================

This module accepts user images (file picker or drag-and-drop), validates
them, decodes them off the GUI thread, and reports readiness back to the
workflow controller. It also loads and saves result image references.

Classes
-------
UploadSource
    Bridges file/bytes uploads to the controller's decode readiness signal

Functions
---------
guess_mime_type
    MIME type for a path, from its extension
validate_upload
    Reject empty, oversized, or non-image payloads
read_image_file
    Read and validate an image file from disk
decode_dimensions
    Decode an image payload and return its pixel size
decode_image
    Decode an image payload into an RGB(A) PIL image
load_image_ref
    Resolve a result reference (data URI, URL, or path) into a PIL image
save_image_ref
    Write a result reference to disk

Notes
-----
Readiness is explicit: ``WorkflowController.load_image`` returns a token,
the decode runs as a background task, and its outcome is handed back with the
same token to ``image_decoded``. A token from a superseded upload is ignored.

See Also
--------
cleanpic_ui.ui.upload_area : Drop zone and picker widget
cleanpic_ui.core.workflow : Consumes the readiness signal
"""

import logging
import mimetypes
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

import requests
from PIL import Image, UnidentifiedImageError
from PySide6.QtCore import QObject, Signal, Slot

from cleanpic_ui.config import MAX_DURATION, MAX_UPLOAD_BYTES
from .encoding import is_data_uri, parse_data_uri
from .errors import InvalidInput, UpstreamError
from .tasks import submit

log = logging.getLogger(__name__)

mimetypes.add_type("image/webp", ".webp")


def guess_mime_type(path: str | Path) -> str:
    mime, _ = mimetypes.guess_type(str(path))
    return mime or "application/octet-stream"


def validate_upload(data: bytes, mime_type: str | None, max_bytes: int = MAX_UPLOAD_BYTES):
    """
    Check that a payload may be loaded into the workflow.

    Parameters
    ----------
    data : bytes
        Raw file content
    mime_type : str or None
        Declared MIME type
    max_bytes : int
        Upload limit in bytes

    Raises
    ------
    InvalidInput
        If the MIME type is not ``image/*``, the payload is empty, or it
        exceeds ``max_bytes``
    """
    if not mime_type or not mime_type.lower().startswith("image/"):
        raise InvalidInput("Unsupported file type", f"expected an image, got {mime_type or 'unknown'}")
    if not data:
        raise InvalidInput("Empty file")
    if max_bytes and len(data) > max_bytes:
        raise InvalidInput(
            "File too large",
            f"{len(data) / 1024 / 1024:.1f} MB exceeds the {max_bytes / 1024 / 1024:.0f} MB limit",
        )


def read_image_file(path: str | Path, max_bytes: int = MAX_UPLOAD_BYTES) -> tuple[bytes, str]:
    """
    Read an image file and validate it for upload.

    Parameters
    ----------
    path : str or Path
        Image file path (JPG, PNG, WEBP, ...)
    max_bytes : int
        Upload limit in bytes

    Returns
    -------
    tuple of (bytes, str)
        File content and MIME type

    Raises
    ------
    InvalidInput
        If the file cannot be read or is not an acceptable image
    """
    p = Path(path)
    mime = guess_mime_type(p)
    if not mime.startswith("image/"):
        raise InvalidInput("Unsupported file type", f"{p.name} is not an image")
    try:
        data = p.read_bytes()
    except OSError as e:
        raise InvalidInput("Could not read file", str(e)) from e
    validate_upload(data, mime, max_bytes)
    return data, mime


def decode_image(data: bytes) -> Image.Image:
    """
    Decode an image payload into a fully loaded PIL image.

    Palette and greyscale images are converted to RGB; images with alpha
    keep it (RGBA).

    Raises
    ------
    InvalidInput
        If Pillow cannot identify or decode the payload, or its pixel count
        is more than twice ``Image.MAX_IMAGE_PIXELS`` (decompression bomb)
    """
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except Image.DecompressionBombError as e:
        raise InvalidInput("Image is too large to decode", str(e)) from e
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise InvalidInput("Could not decode image", str(e)) from e
    if img.mode in ("RGBA", "LA") or "transparency" in img.info:
        return img.convert("RGBA")
    return img.convert("RGB")


def decode_dimensions(data: bytes) -> tuple[int, int]:
    """Decode an image payload and return its (width, height)."""
    return decode_image(data).size


def _read_ref_bytes(ref: str, timeout: float) -> bytes:
    if is_data_uri(ref):
        data, _ = parse_data_uri(ref)
        return data
    if ref.startswith(("http://", "https://")):
        try:
            response = requests.get(ref, timeout=timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise UpstreamError("Could not download result image", str(e)) from e
        return response.content
    try:
        return Path(ref).read_bytes()
    except OSError as e:
        raise UpstreamError("Could not read result image", str(e)) from e


def load_image_ref(ref: str, timeout: float = MAX_DURATION) -> Image.Image:
    """
    Resolve a result reference into a PIL image.

    Parameters
    ----------
    ref : str
        ``data:`` URI, ``http(s)`` URL, or local file path
    timeout : float
        Download timeout in seconds for URLs

    Returns
    -------
    PIL.Image
        Decoded image
    """
    return decode_image(_read_ref_bytes(ref, timeout))


def save_image_ref(ref: str, path: str | Path, timeout: float = MAX_DURATION) -> Path:
    """
    Save a result reference to disk, converting to the extension's format.

    Parameters
    ----------
    ref : str
        ``data:`` URI, ``http(s)`` URL, or local file path
    path : str or Path
        Destination; ``.png`` is appended when no suffix is given

    Returns
    -------
    Path
        The written file
    """
    dst = Path(path)
    if not dst.suffix:
        dst = dst.with_suffix(".png")
    img = load_image_ref(ref, timeout)
    if dst.suffix.lower() in (".jpg", ".jpeg") and img.mode == "RGBA":
        img = img.convert("RGB")
    dst.parent.mkdir(parents=True, exist_ok=True)
    img.save(dst)
    log.info("Saved result to %s", dst)
    return dst


@dataclass(frozen=True)
class DecodeOutcome:
    token: int
    image: Image.Image | None = None
    error: InvalidInput | None = None


def _decode_job(token: int, data: bytes) -> DecodeOutcome:
    try:
        return DecodeOutcome(token, image=decode_image(data))
    except InvalidInput as e:
        return DecodeOutcome(token, error=e)


class UploadSource(QObject):
    """
    Feed uploads into a :class:`WorkflowController` and signal readiness.

    Parameters
    ----------
    controller : WorkflowController
        Controller receiving ``load_image`` / ``image_decoded``
    runner : callable, optional
        Background runner with the signature of :func:`submit`
    parent : QObject, optional
        Qt parent

    Signals
    -------
    ready : Signal(object)
        Emitted with the decoded PIL image once the controller accepted it
    rejected : Signal(object)
        Emitted with the :class:`InvalidInput` for a refused upload
    """

    ready = Signal(object)
    rejected = Signal(object)

    def __init__(self, controller, runner=None, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.runner = runner or submit
        self._pending = None

    def open_path(self, path: str | Path) -> int | None:
        """Load an image file chosen in the picker or dropped on the window."""
        try:
            data, mime = read_image_file(path)
        except InvalidInput as e:
            log.warning("Rejected upload %s: %s", path, e)
            self.rejected.emit(e)
            return None
        return self.accept_bytes(data, mime, name=Path(path).name)

    def accept_bytes(self, data: bytes, mime_type: str, name: str = "") -> int | None:
        """Hand a payload to the controller and start decoding it."""
        try:
            token = self.controller.load_image(data, mime_type, name=name)
        except InvalidInput as e:
            log.warning("Rejected upload %s: %s", name or "<bytes>", e)
            self.rejected.emit(e)
            return None
        self._pending = self.runner(_decode_job, token, data, tag=token)
        self._pending.finished.connect(self._on_decoded)
        self._pending.error.connect(self._on_decode_error)
        return token

    @Slot(object)
    def _on_decoded(self, outcome: DecodeOutcome):
        self._pending = None
        if outcome.error is not None:
            if self.controller.decode_failed(outcome.token, outcome.error):
                self.rejected.emit(outcome.error)
            return
        if self.controller.image_decoded(outcome.token, *outcome.image.size):
            self.ready.emit(outcome.image)

    @Slot(object, str)
    def _on_decode_error(self, token: int, message: str):
        self._pending = None
        err = InvalidInput("Could not decode image", message)
        if self.controller.decode_failed(token, err):
            self.rejected.emit(err)
