import io

import numpy as np
import pytest
from PIL import Image

from vision_server.core.enums import ImageFormat
from vision_server.core.exceptions import ImageTooLargeError, ImageValidationError
from vision_server.utils.image_utils import (
    decode_image,
    detect_image_format,
    validate_image_size,
)


def encode(image: Image.Image, fmt: str) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def test_detect_format_by_signature():
    assert detect_image_format(b"\xff\xd8\xff\xe0" + b"\x00" * 8) is ImageFormat.JPEG
    assert detect_image_format(b"\x89PNG\r\n\x1a\n" + b"\x00" * 4) is ImageFormat.PNG
    assert detect_image_format(b"GIF89a" + b"\x00" * 6) is ImageFormat.GIF
    assert detect_image_format(b"\x00\x00\x00\x18ftypheic") is ImageFormat.HEIC
    assert detect_image_format(b"\x00\x00\x00\x18ftypmif1") is ImageFormat.HEIF
    assert detect_image_format(b"RIFF\x00\x00\x00\x00WEBP") is ImageFormat.WEBP
    assert detect_image_format(b"BM" + b"\x00" * 10) is ImageFormat.BMP
    assert detect_image_format(b"II*\x00" + b"\x00" * 8) is ImageFormat.TIFF


def test_detect_format_short_or_unknown():
    assert detect_image_format(b"\xff\xd8\xff") is ImageFormat.UNKNOWN
    assert detect_image_format(b"\x00" * 12) is ImageFormat.UNKNOWN


def test_decode_png():
    data = encode(Image.new("RGB", (40, 30), (255, 255, 255)), "PNG")
    image = decode_image(data)

    assert image.width == 40
    assert image.height == 30
    assert image.format is ImageFormat.PNG
    assert image.color_space == "RGB"
    assert image.pixels.shape == (30, 40, 3)
    assert image.pixels.dtype == np.uint8


def test_decoded_pixels_are_read_only():
    image = decode_image(encode(Image.new("RGB", (8, 8)), "PNG"))
    with pytest.raises(ValueError):
        image.pixels[0, 0, 0] = 1


def test_decode_grayscale_converted_to_rgb():
    image = decode_image(encode(Image.new("L", (16, 16), 128), "PNG"))
    assert image.color_space == "Gray"
    assert image.pixels.shape == (16, 16, 3)


def test_decode_garbage_fails():
    with pytest.raises(ImageValidationError) as excinfo:
        decode_image(b"\x00" * 10)
    assert "decode" in excinfo.value.message


def test_decode_empty_body():
    with pytest.raises(ImageValidationError) as excinfo:
        decode_image(b"")
    assert excinfo.value.message == "No request body"


def test_validate_image_size():
    validate_image_size(b"\x00" * 1024, max_size_mb=1)

    with pytest.raises(ImageTooLargeError):
        validate_image_size(b"\x00" * (1024 * 1024 + 1), max_size_mb=1)

    with pytest.raises(ImageValidationError):
        validate_image_size(b"", max_size_mb=1)
