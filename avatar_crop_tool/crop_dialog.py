"""
Avatar crop dialog.

Hosts the circular preview, a zoom slider, and Cancel/Save buttons for a
single CropSession.  Emits ``cropped(bytes)`` with the PNG and accepts,
or emits ``cancelled()`` and rejects.  Closing the window counts as
cancel.
"""

import logging
from pathlib import Path

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QPushButton, QLabel, QSlider,
    QFileDialog, QWidget,
)
from PyQt6.QtCore import Qt, pyqtSignal

from avatar_crop_tool.config import (
    ZOOM_MIN, ZOOM_MAX, ZOOM_SLIDER_SCALE, PREVIEW_DIAMETER, OUTPUT_DIAMETER, IMAGE_EXTENSIONS,
)
from avatar_crop_tool.crop_widget import AvatarCropWidget, ImageLoaderThread
from avatar_crop_tool.image_io import ImageDecodeError, read_image_file
from avatar_crop_tool.models import SessionState, ViewState
from avatar_crop_tool.session import CropSession

logger = logging.getLogger(__name__)

_STYLE_ERROR = "color: #d32f2f;"


def image_file_filter() -> str:
    patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
    return f"Images ({patterns})"


class AvatarCropDialog(QDialog):
    """Modal crop editor: exactly one of ``cropped`` or ``cancelled`` fires."""

    cropped = pyqtSignal(bytes)
    cancelled = pyqtSignal()

    def __init__(self, parent: QWidget | None = None,
                 preview_diameter: int = PREVIEW_DIAMETER,
                 output_diameter: int = OUTPUT_DIAMETER):
        super().__init__(parent)
        self.setWindowTitle("Crop Avatar")
        self.setModal(True)

        self._session = CropSession(
            on_crop=self._on_session_crop,
            on_cancel=self._on_session_cancel,
            preview_diameter=preview_diameter,
            output_diameter=output_diameter,
        )
        self._loader: ImageLoaderThread | None = None

        layout = QVBoxLayout(self)

        self._crop_widget = AvatarCropWidget(self._session)
        self._crop_widget.view_changed.connect(self._sync_slider)
        layout.addWidget(self._crop_widget, alignment=Qt.AlignmentFlag.AlignHCenter)

        # Zoom slider
        zoom_row = QHBoxLayout()
        zoom_row.addWidget(QLabel("−"))
        self._zoom_slider = QSlider(Qt.Orientation.Horizontal)
        self._zoom_slider.setRange(round(ZOOM_MIN * ZOOM_SLIDER_SCALE), round(ZOOM_MAX * ZOOM_SLIDER_SCALE))
        self._zoom_slider.setValue(ZOOM_SLIDER_SCALE)
        self._zoom_slider.valueChanged.connect(self._on_slider_changed)
        zoom_row.addWidget(self._zoom_slider, stretch=1)
        zoom_row.addWidget(QLabel("+"))
        layout.addLayout(zoom_row)

        hint = QLabel("Drag to reposition, scroll or use the slider to zoom.")
        hint.setAlignment(Qt.AlignmentFlag.AlignCenter)
        hint.setStyleSheet("color: #888; font-size: 9pt;")
        layout.addWidget(hint)

        self._error_label = QLabel("")
        self._error_label.setStyleSheet(_STYLE_ERROR)
        self._error_label.setWordWrap(True)
        self._error_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._error_label)

        # Buttons
        btn_row = QHBoxLayout()
        self._btn_reselect = QPushButton("Choose Another…")
        self._btn_reselect.clicked.connect(self._choose_another)
        self._btn_reselect.setVisible(False)
        btn_row.addWidget(self._btn_reselect)
        self._btn_cancel = QPushButton("Cancel")
        self._btn_cancel.clicked.connect(self.reject)
        btn_row.addWidget(self._btn_cancel)
        self._btn_save = QPushButton("Save")
        self._btn_save.setDefault(True)
        self._btn_save.clicked.connect(self._save)
        btn_row.addWidget(self._btn_save)
        layout.addLayout(btn_row)

        self._update_controls()

    @property
    def session(self) -> CropSession:
        return self._session

    @property
    def crop_widget(self) -> AvatarCropWidget:
        return self._crop_widget

    # --- Loading ---

    def open_file(self, path: Path) -> None:
        """Read *path* and start decoding it in the background."""
        try:
            data, mime = read_image_file(path)
        except ImageDecodeError as e:
            self._begin()
            self._on_load_failed(str(e))
            return
        except OSError as e:
            self._begin()
            self._on_load_failed(f"Could not read {path.name}: {e.strerror or e}")
            return
        self.open_bytes(data, mime)

    def open_bytes(self, data: bytes, mime_type: str) -> None:
        """Start decoding *data* on a background thread."""
        if not self._begin():
            return
        self._loader = ImageLoaderThread(data, mime_type, self)
        self._loader.loaded.connect(self._on_loaded)
        self._loader.failed.connect(self._on_load_failed)
        self._loader.start()

    def _begin(self) -> bool:
        if not self._session.begin_load():
            logger.debug("Ignoring load while session is %s", self._session.state.value)
            return False
        self._error_label.setText("")
        self._crop_widget.set_message("Loading image…")
        self._update_controls()
        return True

    def _on_loaded(self, source):
        if self._session.finish_load(source):
            self._sync_slider(self._session.controller.view)
            self._crop_widget.refresh()
        self._update_controls()

    def _on_load_failed(self, message: str):
        self._session.fail_load(ImageDecodeError(message))
        if self._session.state == SessionState.FAILED:
            logger.warning("Avatar image could not be loaded: %s", message)
            self._error_label.setText(message)
            self._crop_widget.set_message("Could not load image")
        self._update_controls()

    def _choose_another(self):
        path, _ = QFileDialog.getOpenFileName(self, "Choose Image", "", image_file_filter())
        if path:
            self.open_file(Path(path))

    # --- Zoom slider ---

    def _on_slider_changed(self, value: int):
        self._session.set_zoom(value / ZOOM_SLIDER_SCALE)

    def _sync_slider(self, view: ViewState):
        """Mirror zoom changes from the wheel without re-entering set_zoom."""
        self._zoom_slider.blockSignals(True)
        self._zoom_slider.setValue(round(view.zoom * ZOOM_SLIDER_SCALE))
        self._zoom_slider.blockSignals(False)

    # --- Buttons ---

    def _update_controls(self):
        ready = self._session.is_ready
        self._btn_save.setEnabled(ready)
        self._zoom_slider.setEnabled(ready)
        self._btn_reselect.setVisible(self._session.state == SessionState.FAILED)

    def _save(self):
        if not self._session.export():
            self._update_controls()

    def reject(self):
        # Esc, the close button and Cancel all land here
        if self._session.state == SessionState.CLOSED:
            super().reject()
            return
        self._session.cancel()

    def _on_session_crop(self, blob: bytes):
        self.cropped.emit(blob)
        self.accept()

    def _on_session_cancel(self):
        self.cancelled.emit()
        super().reject()

    def done(self, result: int):
        if self._loader is not None and self._loader.isRunning():
            # Drop the pending result; the thread must finish before the
            # dialog that parents it can go away
            self._loader.loaded.disconnect(self._on_loaded)
            self._loader.failed.disconnect(self._on_load_failed)
            self._loader.wait()
        super().done(result)
