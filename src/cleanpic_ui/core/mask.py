"""
Mask Layer
==========

This module holds the stroke model behind the mask canvas and the
rasterisation that turns strokes into the mask image sent for inpainting.

- Strokes are stored in canvas coordinates (the fixed display size the
  overlay had when it was mounted)
- Strokes are composited strictly in insertion order
- Paint strokes draw opaque white, erase strokes clear what lies beneath
- Export produces white-on-transparent RGBA (or white-on-black for formats
  without an alpha channel)

Classes
-------
Stroke
    One freehand path with width, erase flag, and insertion ordinal
MaskSnapshot
    Immutable copy of the layer taken at submission time
MaskLayer
    Mutable, ordered stroke buffer backing the canvas

Functions
---------
render_strokes
    Rasterise a sequence of strokes into a PIL image

Notes
-----
Export resolution defaults to the canvas size, i.e. the coordinate space the
user painted in. Passing ``size`` rescales the stroke geometry, which is how
``native`` mask resolution is produced.

Examples
--------
>>> from cleanpic_ui.core.mask import MaskLayer
>>> layer = MaskLayer((400, 300))
>>> layer.add_stroke([(10, 10), (120, 40)], width=20)
Stroke(points=((10.0, 10.0), (120.0, 40.0)), width=20.0, erase=False, ordinal=0)
>>> png = layer.export_raster("png")

See Also
--------
cleanpic_ui.ui.mask_canvas : Widget that captures strokes
cleanpic_ui.core.workflow : Takes the snapshot on submit
"""

from dataclasses import dataclass, field
from io import BytesIO
from typing import Iterable, Sequence

from PIL import Image, ImageDraw

Point = tuple[float, float]

_FORMATS = {
    "png": "PNG",
    "jpeg": "JPEG",
    "jpg": "JPEG",
    "webp": "WEBP",
}
_MIME_TYPES = {"PNG": "image/png", "JPEG": "image/jpeg", "WEBP": "image/webp"}


@dataclass(frozen=True)
class Stroke:
    points: tuple[Point, ...]
    width: float
    erase: bool = False
    ordinal: int = 0


def _pil_format(fmt: str) -> str:
    try:
        return _FORMATS[fmt.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported mask format '{fmt}'. Available: {', '.join(sorted(_FORMATS))}"
        ) from None


def mime_type_for(fmt: str) -> str:
    return _MIME_TYPES[_pil_format(fmt)]


def _draw_stroke(draw: ImageDraw.ImageDraw, stroke: Stroke, sx: float, sy: float):
    fill = (0, 0, 0, 0) if stroke.erase else (255, 255, 255, 255)
    w = max(1.0, stroke.width * (sx + sy) / 2)
    r = w / 2
    pts = [(x * sx, y * sy) for x, y in stroke.points]
    if len(pts) > 1:
        draw.line(pts, fill=fill, width=int(round(w)), joint="curve")
    # round caps and joints, and the dot of a single-point stroke
    for x, y in pts:
        draw.ellipse((x - r, y - r, x + r, y + r), fill=fill)


def render_strokes(
    strokes: Iterable[Stroke],
    canvas_size: tuple[int, int],
    size: tuple[int, int] | None = None,
    opacity: float = 1.0,
) -> Image.Image:
    """
    Rasterise strokes into an RGBA mask image.

    Parameters
    ----------
    strokes : iterable of Stroke
        Strokes in insertion order
    canvas_size : tuple of int
        (width, height) of the coordinate space the strokes were drawn in
    size : tuple of int, optional
        Output (width, height); defaults to ``canvas_size``
    opacity : float, default=1.0
        Alpha multiplier for painted pixels, in [0, 1]

    Returns
    -------
    PIL.Image
        RGBA image, white where painted and transparent elsewhere
    """
    cw, ch = canvas_size
    w, h = size or canvas_size
    if cw <= 0 or ch <= 0 or w <= 0 or h <= 0:
        raise ValueError(f"Invalid mask size {canvas_size} -> {(w, h)}")
    sx, sy = w / cw, h / ch
    img = Image.new("RGBA", (w, h), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    for stroke in strokes:
        if stroke.points:
            _draw_stroke(draw, stroke, sx, sy)
    if opacity < 1.0:
        alpha = img.getchannel("A").point(lambda a: int(a * max(0.0, opacity)))
        img.putalpha(alpha)
    return img


def encode_raster(img: Image.Image, fmt: str = "png") -> bytes:
    pil_fmt = _pil_format(fmt)
    if pil_fmt == "JPEG":
        flat = Image.new("RGB", img.size, (0, 0, 0))
        flat.paste(img, mask=img.getchannel("A"))
        img = flat
    buf = BytesIO()
    img.save(buf, format=pil_fmt)
    return buf.getvalue()


@dataclass(frozen=True)
class MaskSnapshot:
    """
    Immutable view of the mask at one instant.

    Attributes
    ----------
    strokes : tuple of Stroke
        Strokes in insertion order
    canvas_size : tuple of int
        Coordinate space of the strokes
    opacity : float
        Layer opacity at snapshot time
    """

    strokes: tuple[Stroke, ...]
    canvas_size: tuple[int, int]
    opacity: float = 1.0

    def render(self, size: tuple[int, int] | None = None) -> Image.Image:
        return render_strokes(self.strokes, self.canvas_size, size, self.opacity)

    def export_raster(self, fmt: str = "png", size: tuple[int, int] | None = None) -> bytes:
        return encode_raster(self.render(size), fmt)


@dataclass
class MaskLayer:
    """
    Ordered stroke buffer for one editing session.

    Parameters
    ----------
    canvas_size : tuple of int, optional
        Fixed overlay size; ``None`` until the canvas is mounted
    opacity : float, default=1.0
        Alpha multiplier applied on export
    """

    canvas_size: tuple[int, int] | None = None
    opacity: float = 1.0
    _strokes: list[Stroke] = field(default_factory=list, repr=False)
    _next_ordinal: int = field(default=0, repr=False)

    @property
    def strokes(self) -> tuple[Stroke, ...]:
        return tuple(self._strokes)

    @property
    def mounted(self) -> bool:
        return self.canvas_size is not None

    def __len__(self):
        return len(self._strokes)

    def add_stroke(self, points: Sequence[Point], width: float, erase: bool = False) -> Stroke:
        if not points:
            raise ValueError("A stroke needs at least one point")
        if width <= 0:
            raise ValueError(f"Stroke width must be positive, got {width}")
        stroke = Stroke(
            points=tuple((float(x), float(y)) for x, y in points),
            width=float(width),
            erase=bool(erase),
            ordinal=self._next_ordinal,
        )
        self._next_ordinal += 1
        self._strokes.append(stroke)
        return stroke

    def undo(self) -> Stroke | None:
        """Remove and return the most recent stroke, or ``None`` if empty."""
        if not self._strokes:
            return None
        return self._strokes.pop()

    def clear(self):
        self._strokes.clear()

    def snapshot(self) -> MaskSnapshot:
        if self.canvas_size is None:
            raise ValueError("Mask layer has no canvas size yet")
        return MaskSnapshot(tuple(self._strokes), self.canvas_size, self.opacity)

    def export_raster(self, fmt: str = "png", size: tuple[int, int] | None = None) -> bytes:
        """
        Render all strokes and encode them.

        Parameters
        ----------
        fmt : str, default="png"
            One of ``png``, ``jpeg``/``jpg``, ``webp``
        size : tuple of int, optional
            Output size; defaults to the canvas size

        Returns
        -------
        bytes
            Encoded mask image
        """
        return self.snapshot().export_raster(fmt, size)
