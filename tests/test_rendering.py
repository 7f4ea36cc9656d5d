import base64
from io import BytesIO

import pytest
from PIL import Image

from qrgen.errors import RenderError
from qrgen.rendering import classify, render_qr_data_url

PREFIX = "data:image/png;base64,"


def _image(data_url):
    return Image.open(BytesIO(base64.b64decode(data_url[len(PREFIX):])))


@pytest.mark.parametrize(
    "text, expected",
    [
        ("https://example.com", "url"),
        ("HTTP://EXAMPLE.COM/path", "url"),
        ("hello world", "text"),
        ("ftp://example.com", "text"),
        ("see https://example.com", "text"),
    ],
)
def test_classify(text, expected):
    assert classify(text) == expected


def test_render_returns_square_png_data_url():
    data_url = render_qr_data_url("hello world")

    assert data_url.startswith(PREFIX)
    image = _image(data_url)
    assert image.format == "PNG"
    assert image.size[0] == image.size[1]


def test_render_is_deterministic():
    assert render_qr_data_url("https://shop.example/x") == render_qr_data_url("https://shop.example/x")
    assert render_qr_data_url("a") != render_qr_data_url("b")


def test_render_border_is_white_and_modules_black():
    image = _image(render_qr_data_url("margin", box_size=4, border=2)).convert("L")

    assert image.getpixel((0, 0)) == 255
    # Top-left finder pattern starts right after the quiet zone.
    assert image.getpixel((2 * 4, 2 * 4)) == 0


def test_render_fails_loudly_when_over_capacity():
    with pytest.raises(RenderError):
        render_qr_data_url("x" * 8000)
