"""
Preview and export renderers (Qt-free).

Both renderers draw the source bitmap once into a fresh transparent
square raster at the placement computed from the current ViewState, and
clip it to a circle.  The export path only differs by the resolution
ratio applied to scale and offset.
"""

import io
import logging
from functools import lru_cache

from PIL import Image, ImageChops, ImageDraw

from avatar_crop_tool.config import (
    PREVIEW_DIAMETER, OUTPUT_DIAMETER, PNG_COMPRESS_LEVEL, MASK_SUPERSAMPLE,
    BORDER_COLOR, BORDER_WIDTH,
)
from avatar_crop_tool.models import (
    Placement, SourceImage, ViewState, preview_placement, export_placement,
)

logger = logging.getLogger(__name__)

_TRANSPARENT = (0, 0, 0, 0)


@lru_cache(maxsize=8)
def circle_mask(diameter: int) -> Image.Image:
    """Anti-aliased circular ``L`` mask filling a *diameter* square."""
    big = diameter * MASK_SUPERSAMPLE
    mask = Image.new("L", (big, big), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, big - 1, big - 1), fill=255)
    if MASK_SUPERSAMPLE > 1:
        mask = mask.resize((diameter, diameter), Image.Resampling.LANCZOS)
    return mask


def draw_clipped(source: SourceImage, placement: Placement, diameter: int) -> Image.Image:
    """Draw *source* at *placement* on a new ``diameter`` square, clipped to a circle."""
    # Strong downscales alias under an affine transform, so pre-shrink
    # by an integer factor and draw the rest with bicubic sampling
    factor = int(1 / placement.scale) if placement.scale < 0.5 else 1
    bitmap = source.reduced(factor)
    s = placement.scale * factor

    # Affine data maps each output pixel back into the (reduced) bitmap
    inv = 1.0 / s
    out = bitmap.transform(
        (diameter, diameter),
        Image.Transform.AFFINE,
        (inv, 0.0, -placement.x * inv, 0.0, inv, -placement.y * inv),
        resample=Image.Resampling.BICUBIC,
        fillcolor=_TRANSPARENT,
    )
    out.putalpha(ImageChops.multiply(out.getchannel("A"), circle_mask(diameter)))
    return out


def render_preview(
    source: SourceImage,
    view: ViewState,
    base: float,
    diameter: int = PREVIEW_DIAMETER,
    border: bool = True,
) -> Image.Image:
    """Render the on-screen circular preview for *view*."""
    placement = preview_placement(source.width, source.height, view, base, diameter)
    out = draw_clipped(source, placement, diameter)
    if border:
        ImageDraw.Draw(out, "RGBA").ellipse(
            (0, 0, diameter - 1, diameter - 1), outline=BORDER_COLOR, width=BORDER_WIDTH,
        )
    return out


def render_export(
    source: SourceImage,
    view: ViewState,
    base: float,
    preview_diameter: int = PREVIEW_DIAMETER,
    output_diameter: int = OUTPUT_DIAMETER,
) -> Image.Image:
    """Render the final avatar, framed exactly as the preview for *view*."""
    placement = export_placement(
        source.width, source.height, view, base, preview_diameter, output_diameter,
    )
    logger.debug(
        "Export placement: origin (%.2f, %.2f) size %.2fx%.2f",
        placement.x, placement.y, placement.width, placement.height,
    )
    return draw_clipped(source, placement, output_diameter)


def encode_png(image: Image.Image) -> bytes:
    """Serialize *image* as PNG, keeping the alpha channel."""
    buf = io.BytesIO()
    image.save(buf, "PNG", compress_level=PNG_COMPRESS_LEVEL)
    return buf.getvalue()
