from __future__ import annotations

import io

import pytest
from PIL import Image

from tally_check.core.exceptions import ValidationError
from tally_check.qr.images import decode_image, render_png


def test_rendered_png_is_an_image():
    buf = render_png("qr-123")

    img = Image.open(buf)
    assert img.format == "PNG"
    assert img.size[0] == img.size[1]


def test_decode_rejects_non_images():
    with pytest.raises(ValidationError, match="not an image"):
        decode_image(io.BytesIO(b"definitely not a picture"))


def test_rendered_code_decodes_back_to_prompt_id():
    assert decode_image(render_png("qr-9f1c2b7e")) == "qr-9f1c2b7e"


def test_blank_photo_has_no_code():
    buf = io.BytesIO()
    Image.new("RGB", (120, 120), "white").save(buf, format="PNG")
    buf.seek(0)

    assert decode_image(buf) is None
