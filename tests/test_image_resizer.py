import io

import pytest
from PIL import Image

from services.image_resizer import DEFAULT_CANVAS_TABLE, ImageResizer
from utils.errors import DecodeError


def test_resize_stretches_to_exact_dimensions(png):
    out = ImageResizer().resize(png(size=(300, 40)), 128, 64)
    with Image.open(io.BytesIO(out)) as img:
        assert img.size == (128, 64)
        assert img.format == "PNG"


def test_resize_is_deterministic(png):
    data = png(size=(50, 50), color=(10, 200, 30))
    resizer = ImageResizer()
    assert resizer.resize(data, 64, 256) == resizer.resize(data, 64, 256)


def test_resize_handles_palette_images():
    buf = io.BytesIO()
    Image.new("P", (20, 20)).save(buf, format="GIF")
    out = ImageResizer().resize(buf.getvalue(), 10, 5)
    with Image.open(io.BytesIO(out)) as img:
        assert img.size == (10, 5)


@pytest.mark.parametrize("data", [b"", b"not an image", b"\x89PNG\r\n\x1a\n broken"])
def test_resize_rejects_invalid_bytes(data):
    with pytest.raises(DecodeError):
        ImageResizer().resize(data, 10, 10)


def test_resize_rejects_non_positive_dimensions(png):
    with pytest.raises(ValueError):
        ImageResizer().resize(png(), 0, 10)


def test_canvas_table_lookup():
    assert DEFAULT_CANVAS_TABLE.dimensions("sign.small.wood") == (128, 64)
    assert DEFAULT_CANVAS_TABLE.dimensions("sign.pictureframe.xxl") == (1024, 512)
    assert DEFAULT_CANVAS_TABLE.dimensions("spinner.wheel.deployed") is None
    assert DEFAULT_CANVAS_TABLE.label("sign.post.single") == "Single Sign Post"
    assert DEFAULT_CANVAS_TABLE.label("box.wooden") == "box.wooden"
    assert "sign.hanging" in DEFAULT_CANVAS_TABLE
