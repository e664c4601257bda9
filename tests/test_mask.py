"""
Tests for the mask layer and stroke rendering.

Tests cover:
- Stroke bookkeeping (insertion order, undo, clear)
- Rendering (white on transparent, erase strokes, scaling)
- Raster encoding
"""

from io import BytesIO

import pytest
from PIL import Image

from cleanpic_ui.core.mask import MaskLayer, Stroke, encode_raster, mime_type_for, render_strokes


def _decode(data):
    return Image.open(BytesIO(data))


class TestMaskLayer:
    def test_strokes_keep_insertion_order(self):
        layer = MaskLayer((100, 100))
        a = layer.add_stroke([(1, 1)], 5)
        b = layer.add_stroke([(2, 2)], 5, erase=True)
        assert layer.strokes == (a, b)
        assert a.ordinal < b.ordinal
        assert b.erase

    def test_undo_removes_latest(self):
        layer = MaskLayer((100, 100))
        layer.add_stroke([(1, 1)], 5)
        last = layer.add_stroke([(2, 2)], 5)
        assert layer.undo() == last
        assert len(layer) == 1

    def test_undo_on_empty_is_noop(self):
        layer = MaskLayer((100, 100))
        assert layer.undo() is None
        assert layer.undo() is None
        assert len(layer) == 0

    def test_clear(self):
        layer = MaskLayer((100, 100))
        layer.add_stroke([(1, 1)], 5)
        layer.clear()
        assert len(layer) == 0

    def test_rejects_empty_points(self):
        with pytest.raises(ValueError):
            MaskLayer((10, 10)).add_stroke([], 5)

    def test_rejects_non_positive_width(self):
        with pytest.raises(ValueError):
            MaskLayer((10, 10)).add_stroke([(1, 1)], 0)

    def test_snapshot_requires_mount(self):
        layer = MaskLayer()
        assert not layer.mounted
        with pytest.raises(ValueError):
            layer.snapshot()

    def test_snapshot_is_frozen(self):
        layer = MaskLayer((50, 50))
        layer.add_stroke([(5, 5)], 4)
        snap = layer.snapshot()
        layer.add_stroke([(40, 40)], 4)
        layer.undo()
        layer.undo()
        assert len(snap.strokes) == 1
        assert len(layer) == 0


class TestRendering:
    def test_empty_mask_is_transparent(self):
        img = render_strokes([], (20, 10))
        assert img.mode == "RGBA"
        assert img.size == (20, 10)
        assert img.getchannel("A").getextrema() == (0, 0)

    def test_stroke_is_white_and_opaque(self):
        img = render_strokes([Stroke(((10, 10), (90, 10)), 10)], (100, 100))
        assert img.getpixel((50, 10)) == (255, 255, 255, 255)
        assert img.getpixel((50, 60))[3] == 0

    def test_round_caps(self):
        img = render_strokes([Stroke(((20, 20), (60, 20)), 20)], (100, 100))
        # the cap extends past the end point by the brush radius
        assert img.getpixel((67, 20))[3] == 255
        assert img.getpixel((75, 20))[3] == 0

    def test_erase_stroke_clears_earlier_paint(self):
        strokes = [
            Stroke(((0, 50), (100, 50)), 20, ordinal=0),
            Stroke(((50, 50),), 10, erase=True, ordinal=1),
        ]
        img = render_strokes(strokes, (100, 100))
        assert img.getpixel((50, 50))[3] == 0
        assert img.getpixel((10, 50))[3] == 255

    def test_paint_after_erase_wins(self):
        strokes = [
            Stroke(((50, 50),), 10, erase=True, ordinal=0),
            Stroke(((50, 50),), 10, ordinal=1),
        ]
        img = render_strokes(strokes, (100, 100))
        assert img.getpixel((50, 50))[3] == 255

    def test_scaled_output(self):
        img = render_strokes([Stroke(((25, 25),), 6)], (50, 50), size=(200, 200))
        assert img.size == (200, 200)
        assert img.getpixel((100, 100))[3] == 255
        assert img.getpixel((20, 20))[3] == 0

    def test_opacity(self):
        img = render_strokes([Stroke(((5, 5),), 6)], (10, 10), opacity=0.5)
        assert img.getpixel((5, 5))[3] == 127

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            render_strokes([], (0, 10))


class TestEncoding:
    def test_png_keeps_alpha(self):
        layer = MaskLayer((40, 30))
        layer.add_stroke([(20, 15)], 8)
        img = _decode(layer.export_raster("png"))
        assert img.format == "PNG"
        assert img.mode == "RGBA"
        assert img.size == (40, 30)

    def test_export_is_deterministic(self):
        layer = MaskLayer((60, 40))
        layer.add_stroke([(5, 5), (50, 30)], 8)
        layer.add_stroke([(20, 20)], 6, erase=True)
        assert layer.export_raster("png") == layer.export_raster("png")
        snap = layer.snapshot()
        assert snap.export_raster("png") == snap.export_raster("png")
        assert snap.export_raster("png") == layer.export_raster("png")

    def test_export_at_other_size(self):
        layer = MaskLayer((40, 30))
        img = _decode(layer.export_raster("png", (80, 60)))
        assert img.size == (80, 60)

    def test_jpeg_is_flattened_on_black(self):
        img = render_strokes([Stroke(((20, 20),), 20)], (40, 40))
        out = _decode(encode_raster(img, "jpeg"))
        assert out.mode == "RGB"
        assert out.getpixel((0, 0))[0] < 20
        assert out.getpixel((20, 20))[0] > 230

    @pytest.mark.parametrize(
        "fmt,mime",
        [("png", "image/png"), ("JPG", "image/jpeg"), ("jpeg", "image/jpeg"), ("webp", "image/webp")],
    )
    def test_mime_types(self, fmt, mime):
        assert mime_type_for(fmt) == mime

    def test_unsupported_format(self):
        with pytest.raises(ValueError, match="Unsupported mask format"):
            mime_type_for("bmp")
