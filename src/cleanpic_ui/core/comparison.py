"""
Before/After Comparison
=======================

Pure logic behind the split comparison view. The original image is shown
left of the split and the result right of it; the split is a percentage in
[0, 100] of the view width.

Classes
-------
SplitDrag
    Tracks one pointer drag and scopes its global listeners to the drag

Functions
---------
clamp_split
    Clamp a value to [0, 100]
split_from_x
    Convert a pointer x-coordinate into a split percentage
compose_split
    Render the comparison composite with Pillow

Notes
-----
Listener lifetime: ``SplitDrag.begin`` calls ``attach`` (e.g. installing an
application-wide event filter so moves and releases outside the view are
seen) and ``SplitDrag.end`` calls ``detach`` exactly once. ``end`` is safe to
call repeatedly, which lets widgets call it from release handlers and from
teardown alike.

See Also
--------
cleanpic_ui.ui.compare_view : Qt widget using these helpers
"""

from PIL import Image


def clamp_split(value: float) -> float:
    """
    Clamp a split position to [0, 100].

    Examples
    --------
    >>> clamp_split(-12)
    0.0
    >>> clamp_split(140)
    100.0
    """
    return float(min(100.0, max(0.0, value)))


def split_from_x(x: float, left: float, width: float) -> float:
    """
    Map a pointer x-coordinate to a split percentage.

    Parameters
    ----------
    x : float
        Pointer x-coordinate (any coordinate system shared with ``left``)
    left : float
        Left edge of the view
    width : float
        View width

    Returns
    -------
    float
        Split position clamped to [0, 100]; 50 when ``width`` is not positive
    """
    if width <= 0:
        return 50.0
    return clamp_split((x - left) / width * 100.0)


def compose_split(original: Image.Image, result: Image.Image, position: float) -> Image.Image:
    """
    Build the comparison composite.

    Parameters
    ----------
    original : PIL.Image
        Image shown left of the split
    result : PIL.Image
        Image shown right of the split; resized to the original's size
    position : float
        Split percentage, clamped to [0, 100]

    Returns
    -------
    PIL.Image
        RGBA composite the size of ``original``
    """
    base = original.convert("RGBA")
    other = result.convert("RGBA")
    if other.size != base.size:
        other = other.resize(base.size, Image.Resampling.LANCZOS)
    cut = int(round(base.width * clamp_split(position) / 100.0))
    out = other.copy()
    if cut > 0:
        out.paste(base.crop((0, 0, cut, base.height)), (0, 0))
    return out


class SplitDrag:
    """
    State of one split-handle drag.

    Parameters
    ----------
    attach : callable
        Called when a drag starts; installs global move/release listeners
    detach : callable
        Called when the drag ends; removes them
    on_change : callable, optional
        Called with every new split position
    position : float, default=50
        Initial split position
    """

    def __init__(self, attach, detach, on_change=None, position: float = 50.0):
        self._attach = attach
        self._detach = detach
        self._on_change = on_change
        self.position = clamp_split(position)
        self.active = False

    def begin(self, x: float, left: float, width: float):
        if not self.active:
            self.active = True
            self._attach()
        self.move(x, left, width)

    def move(self, x: float, left: float, width: float) -> float:
        if not self.active:
            return self.position
        return self.set_position(split_from_x(x, left, width))

    def set_position(self, value: float) -> float:
        value = clamp_split(value)
        if value != self.position:
            self.position = value
            if self._on_change is not None:
                self._on_change(value)
        return self.position

    def end(self):
        if self.active:
            self.active = False
            self._detach()
