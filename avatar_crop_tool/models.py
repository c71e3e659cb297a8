"""
Data models and crop-transform math.

ViewState and SourceImage are the core data structures shared by the
interaction controller, the renderers and the Qt widget.  The placement
helpers turn a ViewState into the rectangle the bitmap is drawn at on a
square surface; preview and export use the same helper and differ only
by the resolution ratio, so what the user frames is what gets exported.

This module is Qt-free.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum

from PIL import Image

from avatar_crop_tool.config import ZOOM_MIN, ZOOM_MAX, ZOOM_DEFAULT


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class ViewState:
    """Current crop framing: zoom multiplier and pan offset in preview pixels."""
    zoom: float = ZOOM_DEFAULT
    offset_x: float = 0.0
    offset_y: float = 0.0

    def moved_to(self, offset_x: float, offset_y: float) -> "ViewState":
        return replace(self, offset_x=offset_x, offset_y=offset_y)

    def zoomed_to(self, zoom: float) -> "ViewState":
        return replace(self, zoom=zoom)


@dataclass
class SourceImage:
    """Decoded bitmap plus its natural dimensions. Owned by one crop session."""
    image: Image.Image
    width: int
    height: int
    mime_type: str = ""
    _reductions: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_image(cls, image: Image.Image, mime_type: str = "") -> "SourceImage":
        return cls(image=image, width=image.width, height=image.height, mime_type=mime_type)

    def reduced(self, factor: int) -> Image.Image:
        """Return the bitmap box-reduced by an integer *factor* (cached)."""
        if factor <= 1:
            return self.image
        img = self._reductions.get(factor)
        if img is None:
            img = self.image.reduce(factor)
            self._reductions[factor] = img
        return img

    def release(self) -> None:
        """Close the bitmap and any cached reductions."""
        for img in self._reductions.values():
            img.close()
        self._reductions.clear()
        self.image.close()


@dataclass(frozen=True)
class Placement:
    """Where the bitmap lands on a square drawing surface."""
    x: float
    y: float
    width: float
    height: float
    scale: float


class SessionState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    INTERACTING = "interacting"
    EXPORTING = "exporting"
    CLOSED = "closed"
    FAILED = "failed"  # image could not be decoded


# =============================================================================
# Transform math
# =============================================================================
def clamp_zoom(value: float, lo: float = ZOOM_MIN, hi: float = ZOOM_MAX) -> float:
    """Clamp a zoom multiplier into [lo, hi]. NaN falls back to the default."""
    if math.isnan(value):
        return ZOOM_DEFAULT
    return max(lo, min(float(value), hi))


def base_scale(width: int, height: int, diameter: float) -> float:
    """Scale at which the shorter image side exactly fills the circle."""
    if width <= 0 or height <= 0:
        raise ValueError(f"image dimensions must be positive, got {width}x{height}")
    return diameter / min(width, height)


def compute_placement(
    width: int, height: int,
    view: ViewState,
    base: float,
    diameter: float,
    ratio: float = 1.0,
) -> Placement:
    """
    Center the scaled image on a *diameter*-sized surface, then apply the pan.

    The offset is stored in preview pixels, so it is multiplied by *ratio*
    along with the scale when rendering at another resolution.
    """
    scale = base * view.zoom * ratio
    draw_w = width * scale
    draw_h = height * scale
    x = (diameter - draw_w) / 2 + view.offset_x * ratio
    y = (diameter - draw_h) / 2 + view.offset_y * ratio
    return Placement(x, y, draw_w, draw_h, scale)


def preview_placement(width: int, height: int, view: ViewState, base: float,
                      preview_diameter: float) -> Placement:
    return compute_placement(width, height, view, base, preview_diameter)


def export_placement(width: int, height: int, view: ViewState, base: float,
                     preview_diameter: float, output_diameter: float) -> Placement:
    ratio = output_diameter / preview_diameter
    return compute_placement(width, height, view, base, output_diameter, ratio)
