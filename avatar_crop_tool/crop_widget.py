"""
Interactive circular crop widget and Qt image helpers.

This module contains everything that touches both Qt **and** image display:
``pil_to_qpixmap``, the background ``ImageLoaderThread``, and the
``AvatarCropWidget`` preview surface.  The widget draws whatever the
session's preview renderer produces, so the on-screen frame and the
export share one code path.
"""

import logging

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QRectF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QPainter, QPixmap, QColor, QImage,
    QMouseEvent, QPaintEvent, QWheelEvent,
)

from avatar_crop_tool.config import WHEEL_PIXELS_PER_NOTCH
from avatar_crop_tool.image_io import ImageDecodeError, decode_image
from avatar_crop_tool.models import SessionState, ViewState
from avatar_crop_tool.session import CropSession

logger = logging.getLogger(__name__)

# Qt reports wheel rotation in eighths of a degree, 120 per notch
_ANGLE_UNITS_PER_NOTCH = 120


# =============================================================================
# Qt <-> PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    img_rgba = pil_img.convert("RGBA")
    data = img_rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgba.width, img_rgba.height, QImage.Format.Format_RGBA8888)
    # QImage does not own *data*; copy before it goes out of scope
    return QPixmap.fromImage(qimg.copy())


# =============================================================================
# Background image loader
# =============================================================================

class ImageLoaderThread(QThread):
    """Background thread for decoding the selected image file."""
    loaded = pyqtSignal(object)  # SourceImage
    failed = pyqtSignal(str)

    def __init__(self, data: bytes, mime_type: str, parent=None):
        super().__init__(parent)
        self._data = data
        self._mime_type = mime_type

    def run(self):
        try:
            source = decode_image(self._data, self._mime_type)
        except ImageDecodeError as e:
            self.failed.emit(str(e))
            return
        except Exception as e:
            logger.exception("Unexpected error while decoding image")
            self.failed.emit(f"Could not read image: {e or type(e).__name__}")
            return
        finally:
            self._data = b""
        self.loaded.emit(source)


# =============================================================================
# Avatar crop widget: circular preview with drag-to-pan and wheel zoom
# =============================================================================

class AvatarCropWidget(QWidget):
    """Fixed-size circular preview bound to a CropSession."""

    view_changed = pyqtSignal(object)  # ViewState

    def __init__(self, session: CropSession, parent=None):
        super().__init__(parent)
        self._session = session
        size = session.preview_diameter
        self.setFixedSize(size, size)
        self.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        self.setCursor(Qt.CursorShape.OpenHandCursor)

        self._pixmap: QPixmap | None = None
        self._message = "No image loaded"
        session.controller.add_listener(self._on_view_changed)

    @property
    def session(self) -> CropSession:
        return self._session

    def set_message(self, message: str):
        """Text shown while no preview is available (loading, errors)."""
        self._message = message
        self.update()

    def refresh(self):
        """Re-render the preview from the session's current view."""
        preview = self._session.render_preview()
        self._pixmap = pil_to_qpixmap(preview) if preview is not None else None
        self.update()

    def _on_view_changed(self, view: ViewState):
        self.refresh()
        self.view_changed.emit(view)

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        rect = QRectF(self.rect())

        if self._pixmap is None:
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(QColor(30, 30, 30))
            painter.drawEllipse(rect)
            painter.setPen(QColor(128, 128, 128))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter | Qt.TextFlag.TextWordWrap, self._message)
            painter.end()
            return

        painter.drawPixmap(0, 0, self._pixmap)
        painter.end()

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self._session.is_ready:
            return
        # Qt grabs the mouse for the pressed widget until release, so moves
        # keep arriving here even outside the circle
        pos = event.position()
        self._session.begin_drag(pos.x(), pos.y())
        if self._session.state == SessionState.INTERACTING:
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent):
        if self._session.state != SessionState.INTERACTING:
            return
        pos = event.position()
        self._session.drag_to(pos.x(), pos.y())
        event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton:
            return
        self._session.end_drag()
        self.setCursor(Qt.CursorShape.OpenHandCursor)
        event.accept()

    def wheelEvent(self, event: QWheelEvent):
        # Accept even when idle so the surrounding dialog never scrolls
        event.accept()
        if not self._session.is_ready:
            return
        pixel = event.pixelDelta()
        if not pixel.isNull():
            delta_y = -pixel.y()
        else:
            delta_y = -event.angleDelta().y() / _ANGLE_UNITS_PER_NOTCH * WHEEL_PIXELS_PER_NOTCH
        self._session.wheel(delta_y)
