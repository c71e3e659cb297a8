"""
Crop session: one image, one framing, one result.

A session walks IDLE -> LOADING -> READY (<-> INTERACTING) -> EXPORTING ->
CLOSED.  A decode error parks it in FAILED until another file is loaded
or the user cancels.  Exactly one of ``on_crop(png_bytes)`` or
``on_cancel()`` fires, once; every call after CLOSED is a no-op.

This module is Qt-free.  Decoding can happen elsewhere (the Qt dialog
decodes on a QThread) and be handed in via ``finish_load``/``fail_load``.
"""

import logging
from typing import Callable

from PIL import Image

from avatar_crop_tool.config import PREVIEW_DIAMETER, OUTPUT_DIAMETER
from avatar_crop_tool.controller import InteractionController
from avatar_crop_tool.image_io import ImageDecodeError, decode_image
from avatar_crop_tool.models import SessionState, SourceImage, base_scale
from avatar_crop_tool.render import render_preview, render_export, encode_png

logger = logging.getLogger(__name__)

_INTERACTIVE = (SessionState.READY, SessionState.INTERACTING)


class CropSession:
    """State machine tying the loader, controller and renderers together."""

    def __init__(
        self,
        on_crop: Callable[[bytes], None],
        on_cancel: Callable[[], None],
        preview_diameter: int = PREVIEW_DIAMETER,
        output_diameter: int = OUTPUT_DIAMETER,
    ):
        self._on_crop = on_crop
        self._on_cancel = on_cancel
        self.preview_diameter = preview_diameter
        self.output_diameter = output_diameter

        self.controller = InteractionController()
        self._state = SessionState.IDLE
        self._source: SourceImage | None = None
        self._base_scale = 0.0
        self.error: ImageDecodeError | None = None

    # --- Read-only state ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def source(self) -> SourceImage | None:
        return self._source

    @property
    def base_scale(self) -> float:
        return self._base_scale

    @property
    def is_ready(self) -> bool:
        return self._state in _INTERACTIVE and self._source is not None

    def _set_state(self, state: SessionState) -> None:
        if state != self._state:
            logger.debug("Crop session %s -> %s", self._state.value, state.value)
            self._state = state

    def _discard_source(self) -> None:
        if self._source is not None:
            self._source.release()
        self._source = None
        self._base_scale = 0.0

    # --- Loading ---

    def begin_load(self) -> bool:
        """Enter LOADING. Allowed from IDLE or, for re-selection, from FAILED."""
        if self._state not in (SessionState.IDLE, SessionState.FAILED):
            return False
        self.error = None
        self._set_state(SessionState.LOADING)
        return True

    def finish_load(self, source: SourceImage) -> bool:
        """Adopt a decoded image and become READY with a fresh view."""
        if self._state != SessionState.LOADING:
            # Cancelled while decoding: nobody else owns the bitmap
            source.release()
            return False
        self._source = source
        self._base_scale = base_scale(source.width, source.height, self.preview_diameter)
        self.controller.reset()
        self._set_state(SessionState.READY)
        logger.info(
            "Crop session ready: %dx%d image, base scale %.4f",
            source.width, source.height, self._base_scale,
        )
        return True

    def fail_load(self, error: ImageDecodeError) -> None:
        if self._state != SessionState.LOADING:
            return
        self.error = error
        self._set_state(SessionState.FAILED)

    def load_bytes(self, data: bytes, mime_type: str = "") -> None:
        """Decode *data* synchronously. Raises ImageDecodeError after entering FAILED."""
        if not self.begin_load():
            raise RuntimeError(f"cannot load an image while {self._state.value}")
        try:
            source = decode_image(data, mime_type)
        except ImageDecodeError as e:
            self.fail_load(e)
            raise
        self.finish_load(source)

    # --- Interaction ---

    def begin_drag(self, x: float, y: float) -> None:
        if self._state == SessionState.READY and self.controller.begin_drag(x, y):
            self._set_state(SessionState.INTERACTING)

    def drag_to(self, x: float, y: float) -> None:
        if self._state == SessionState.INTERACTING:
            self.controller.drag_to(x, y)

    def end_drag(self) -> None:
        if self._state == SessionState.INTERACTING:
            self.controller.end_drag()
            self._set_state(SessionState.READY)

    def wheel(self, delta_y: float) -> None:
        if self._state in _INTERACTIVE:
            self.controller.wheel(delta_y)

    def set_zoom(self, value: float) -> None:
        if self._state in _INTERACTIVE:
            self.controller.set_zoom(value)

    # --- Rendering ---

    def render_preview(self, border: bool = True) -> Image.Image | None:
        if not self.is_ready:
            return None
        return render_preview(
            self._source, self.controller.view, self._base_scale,
            self.preview_diameter, border=border,
        )

    # --- Completion ---

    def export(self) -> bool:
        """Render, encode and hand the PNG to ``on_crop``. False if nothing is loaded."""
        if self._state not in _INTERACTIVE:
            logger.debug("Export skipped: session is %s", self._state.value)
            return False
        self.controller.end_drag()
        self._set_state(SessionState.EXPORTING)
        if self._source is None:
            logger.debug("Export skipped: no source image")
            self._set_state(SessionState.READY)
            return False

        try:
            image = render_export(
                self._source, self.controller.view, self._base_scale,
                self.preview_diameter, self.output_diameter,
            )
            blob = encode_png(image)
        except Exception:
            self._set_state(SessionState.READY)
            raise

        logger.info("Exported %dx%d avatar (%d bytes)", image.width, image.height, len(blob))
        self._close()
        self._on_crop(blob)
        return True

    def cancel(self) -> None:
        """Discard everything and fire ``on_cancel``. No-op once closed."""
        if self._state in (SessionState.CLOSED, SessionState.EXPORTING):
            return
        logger.debug("Crop session cancelled while %s", self._state.value)
        self._close()
        self._on_cancel()

    def _close(self) -> None:
        self._discard_source()
        self.controller.reset()
        self.error = None
        self._set_state(SessionState.CLOSED)
