"""Tests for reading and decoding avatar source images."""

import io
from pathlib import Path

import pytest
from PIL import Image
from psd_tools import PSDImage

from avatar_crop_tool import image_io
from avatar_crop_tool.image_io import (
    ImageDecodeError, decode_image, guess_mime_type, read_image_file, unique_path,
)
from helpers import encode, assert_color, RED, BLUE


def test_decode_png(png_bytes):
    source = decode_image(png_bytes, "image/png")
    assert (source.width, source.height) == (300, 200)
    assert source.image.mode == "RGBA"
    assert source.mime_type == "image/png"
    assert_color(source.image.getpixel((10, 10)), RED)


def test_decode_jpeg():
    data = encode(Image.new("RGB", (64, 48), (0, 0, 255)), "JPEG", quality=95)
    source = decode_image(data, "image/jpeg")
    assert (source.width, source.height) == (64, 48)
    assert_color(source.image.getpixel((32, 24)), BLUE, tol=8)


def test_decode_keeps_transparency():
    img = Image.new("RGBA", (20, 20), (0, 0, 0, 0))
    source = decode_image(encode(img), "image/png")
    assert source.image.getpixel((5, 5))[3] == 0


def test_decode_uses_first_gif_frame():
    frames = [Image.new("RGB", (16, 16), (255, 0, 0)), Image.new("RGB", (16, 16), (0, 0, 255))]
    data = encode(frames[0], "GIF", save_all=True, append_images=frames[1:])
    source = decode_image(data, "image/gif")
    assert_color(source.image.getpixel((8, 8)), RED)


def test_decode_applies_exif_orientation():
    img = Image.new("RGB", (40, 20), (0, 255, 0))
    exif = Image.Exif()
    exif[0x0112] = 6  # rotate 90 degrees clockwise
    source = decode_image(encode(img, "JPEG", exif=exif), "image/jpeg")
    assert (source.width, source.height) == (20, 40)


@pytest.mark.parametrize("data", [b"definitely not an image", b"\x89PNG\r\n\x1a\ntruncated"])
def test_garbage_raises_decode_error(data):
    with pytest.raises(ImageDecodeError):
        decode_image(data, "image/png")


def test_empty_data_raises_decode_error():
    with pytest.raises(ImageDecodeError):
        decode_image(b"", "image/png")


def test_guess_mime_type():
    assert guess_mime_type(Path("me.JPG")) == "image/jpeg"
    assert guess_mime_type(Path("me.webp")) == "image/webp"
    assert guess_mime_type(Path("me.psd")) == "image/vnd.adobe.photoshop"
    assert guess_mime_type(Path("notes.txt")) == "text/plain"


def test_read_image_file(tmp_path, png_bytes):
    path = tmp_path / "avatar.png"
    path.write_bytes(png_bytes)
    assert read_image_file(path) == (png_bytes, "image/png")


def test_read_image_file_rejects_unsupported_type(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(ImageDecodeError):
        read_image_file(path)


def test_read_image_file_missing_raises_oserror(tmp_path):
    with pytest.raises(OSError):
        read_image_file(tmp_path / "missing.png")


def test_unique_path(tmp_path):
    target = tmp_path / "avatar.png"
    assert unique_path(target) == target
    target.write_bytes(b"x")
    assert unique_path(target) == tmp_path / "avatar-01.png"
    (tmp_path / "avatar-01.png").write_bytes(b"x")
    assert unique_path(target) == tmp_path / "avatar-02.png"


def _psd_bytes(size):
    buffer = io.BytesIO()
    PSDImage.frompil(Image.new("RGB", size, (255, 0, 0))).save(buffer)
    return buffer.getvalue()


def test_oversized_psd_is_rejected_before_compositing(monkeypatch):
    data = _psd_bytes((24, 16))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    monkeypatch.setattr(PSDImage, "composite", lambda self, *a, **kw: pytest.fail("composited"))
    with pytest.raises(ImageDecodeError, match="too large"):
        decode_image(data, "image/vnd.adobe.photoshop")


def test_decode_buffer_is_closed_on_failure(monkeypatch):
    buffers = []

    class RecordingBytesIO(io.BytesIO):
        def __init__(self, *args):
            super().__init__(*args)
            buffers.append(self)

    monkeypatch.setattr(image_io.io, "BytesIO", RecordingBytesIO)
    with pytest.raises(ImageDecodeError):
        decode_image(b"definitely not an image", "image/png")
    assert buffers[0].closed
