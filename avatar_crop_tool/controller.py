"""
Interaction controller: turns drag, wheel and slider input into ViewState.

The controller is the only writer of the view.  Listeners are called
synchronously after every change, before the mutating call returns, so
a repaint hooked to them never shows a stale transform.

This module is Qt-free.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from avatar_crop_tool.config import WHEEL_SENSITIVITY, ZOOM_MIN, ZOOM_MAX
from avatar_crop_tool.models import ViewState, clamp_zoom

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DragAnchor:
    """Pointer position and offset captured when a drag starts."""
    pointer_x: float
    pointer_y: float
    offset_x: float
    offset_y: float


class InteractionController:
    """Holds the mutable view and the active drag, if any."""

    def __init__(self, sensitivity: float = WHEEL_SENSITIVITY,
                 zoom_min: float = ZOOM_MIN, zoom_max: float = ZOOM_MAX):
        self._sensitivity = sensitivity
        self._zoom_min = zoom_min
        self._zoom_max = zoom_max
        self._view = ViewState()
        self._anchor: DragAnchor | None = None
        self._listeners: list[Callable[[ViewState], None]] = []

    @property
    def view(self) -> ViewState:
        return self._view

    @property
    def dragging(self) -> bool:
        return self._anchor is not None

    def add_listener(self, callback: Callable[[ViewState], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[ViewState], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _commit(self, view: ViewState) -> None:
        if view == self._view:
            return
        self._view = view
        for callback in list(self._listeners):
            callback(view)

    def _clamp(self, value: float) -> float:
        return clamp_zoom(value, self._zoom_min, self._zoom_max)

    # --- Lifecycle ---

    def reset(self) -> None:
        """Back to zoom 1, centered, with no drag in progress."""
        self._anchor = None
        self._commit(ViewState())

    # --- Drag ---

    def begin_drag(self, x: float, y: float) -> bool:
        """Start a drag at pointer (x, y). Returns False if one is already active."""
        if self._anchor is not None:
            return False
        self._anchor = DragAnchor(x, y, self._view.offset_x, self._view.offset_y)
        logger.debug("Drag started at (%.1f, %.1f)", x, y)
        return True

    def drag_to(self, x: float, y: float) -> None:
        """Move the image so it follows the pointer. Offsets are not clamped."""
        a = self._anchor
        if a is None:
            return
        self._commit(self._view.moved_to(
            a.offset_x + (x - a.pointer_x),
            a.offset_y + (y - a.pointer_y),
        ))

    def end_drag(self) -> None:
        if self._anchor is not None:
            logger.debug("Drag ended at offset (%.1f, %.1f)", self._view.offset_x, self._view.offset_y)
        self._anchor = None

    # --- Zoom ---

    def wheel(self, delta_y: float) -> None:
        """Wheel zoom; positive *delta_y* (scrolling down) zooms out."""
        self._commit(self._view.zoomed_to(self._clamp(self._view.zoom - delta_y * self._sensitivity)))

    def set_zoom(self, value: float) -> None:
        """Explicit zoom from the slider, clamped."""
        self._commit(self._view.zoomed_to(self._clamp(value)))
