"""
Qt-free image I/O utilities.

Provides helpers to read an image file with its MIME type, decode raw
bytes (including PSD) into a SourceImage, and generate unique file paths.
Safe to import in worker threads.
"""

import io
import logging
import mimetypes
import struct
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError
from psd_tools import PSDImage

from avatar_crop_tool.config import ACCEPTED_MIME_TYPES, PSD_MIME_TYPE
from avatar_crop_tool.models import SourceImage

logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """The selected file could not be decoded as an image."""


def guess_mime_type(path: Path) -> str:
    """Guess a MIME type from the file extension, falling back to our own table."""
    ext = path.suffix.lower()
    for mime, exts in ACCEPTED_MIME_TYPES.items():
        if ext in exts:
            return mime
    mime, _ = mimetypes.guess_type(path.name)
    return mime or "application/octet-stream"


def read_image_file(path: Path) -> tuple[bytes, str]:
    """Read an image file and return ``(data, mime_type)``.

    Raises ImageDecodeError for file types we do not accept; OSError from
    reading propagates unchanged.
    """
    mime = guess_mime_type(path)
    if mime not in ACCEPTED_MIME_TYPES:
        raise ImageDecodeError(f"Unsupported image type: {path.suffix or mime}")
    return path.read_bytes(), mime


def _open_bitmap(buffer: io.BytesIO, mime_type: str) -> Image.Image:
    """Open and fully load a bitmap from *buffer*, using psd-tools for PSD."""
    if mime_type == PSD_MIME_TYPE:
        psd = PSDImage.open(buffer)
        limit = Image.MAX_IMAGE_PIXELS
        # psd-tools composites without Pillow's decompression bomb check
        if limit and psd.width * psd.height > limit:
            raise ImageDecodeError(
                f"Image is too large ({psd.width}x{psd.height}, limit {limit} pixels)"
            )
        img = psd.composite()
        if img is None:
            raise ImageDecodeError("PSD file has no visible layers")
        return img
    img = Image.open(buffer)
    # Animated GIF/WebP: the first frame is the avatar
    img.seek(0)
    img.load()
    return img


def decode_image(data: bytes, mime_type: str = "") -> SourceImage:
    """
    Decode raw image bytes into an RGBA SourceImage.

    The bytes are wrapped in a temporary in-memory buffer for the duration
    of the decode only; the returned bitmap is detached from it.  EXIF
    orientation is applied so the image is upright.
    """
    if not data:
        raise ImageDecodeError("Image file is empty")
    try:
        with io.BytesIO(data) as buffer:
            raw = _open_bitmap(buffer, mime_type)
            try:
                rgba = ImageOps.exif_transpose(raw).convert("RGBA")
            finally:
                raw.close()
    except ImageDecodeError:
        raise
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError,
            ValueError, EOFError, SyntaxError, struct.error) as e:
        logger.warning("Failed to decode %s image (%d bytes): %s", mime_type or "unknown", len(data), e)
        raise ImageDecodeError(f"Could not read image: {e}") from e

    if rgba.width <= 0 or rgba.height <= 0:
        raise ImageDecodeError(f"Image has no pixels ({rgba.width}x{rgba.height})")

    logger.info("Decoded %s image %dx%d", mime_type or "unknown", rgba.width, rgba.height)
    return SourceImage.from_image(rgba, mime_type)


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
