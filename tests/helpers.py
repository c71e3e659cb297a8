"""Image builders and assertions shared by the test modules."""

import io

from PIL import Image

from avatar_crop_tool.models import SourceImage

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
YELLOW = (255, 255, 0, 255)


def encode(img: Image.Image, fmt: str = "PNG", **kwargs) -> bytes:
    buf = io.BytesIO()
    img.save(buf, fmt, **kwargs)
    return buf.getvalue()


def solid_source(width: int, height: int, color=RED) -> SourceImage:
    return SourceImage.from_image(Image.new("RGBA", (width, height), color), "image/png")


def banded_image() -> Image.Image:
    """1000x500 image: blue left quarter, green middle half, red right quarter."""
    img = Image.new("RGBA", (1000, 500), GREEN)
    img.paste(BLUE, (0, 0, 250, 500))
    img.paste(RED, (750, 0, 1000, 500))
    return img


def quadrant_image(width: int = 400, height: int = 300) -> Image.Image:
    """Four solid quadrants: red TL, green TR, blue BL, yellow BR."""
    img = Image.new("RGBA", (width, height), RED)
    img.paste(GREEN, (width // 2, 0, width, height // 2))
    img.paste(BLUE, (0, height // 2, width // 2, height))
    img.paste(YELLOW, (width // 2, height // 2, width, height))
    return img


def assert_color(actual, expected, tol: int = 3):
    assert all(abs(a - e) <= tol for a, e in zip(actual, expected)), f"{actual} != {expected}"
