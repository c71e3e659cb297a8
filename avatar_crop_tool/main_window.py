"""
Main application window: the avatar settings panel.

Shows the current avatar, lets the user pick a new image, crop it in
``AvatarCropDialog`` and upload the result (or save it to disk when no
API endpoint is configured), and remove the current avatar.
"""

import logging
from pathlib import Path
from typing import Callable

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLabel,
    QFileDialog, QMessageBox, QStatusBar,
)
from PyQt6.QtCore import Qt, QThread, pyqtSignal
from PyQt6.QtGui import QPixmap, QPainter, QPainterPath

from avatar_crop_tool.config import AVATAR_FILENAME
from avatar_crop_tool.crop_dialog import AvatarCropDialog, image_file_filter
from avatar_crop_tool.image_io import unique_path
from avatar_crop_tool.settings import Settings, load_settings, save_settings
from avatar_crop_tool.upload import AvatarClient, AvatarUploadError, decode_data_url

logger = logging.getLogger(__name__)

_AVATAR_DISPLAY_SIZE = 128


# =============================================================================
# Background request thread
# =============================================================================
class RequestThread(QThread):
    """Runs one avatar API call off the UI thread."""
    succeeded = pyqtSignal(object)
    failed = pyqtSignal(str)

    def __init__(self, call: Callable[[], object], parent=None):
        super().__init__(parent)
        self._call = call

    def run(self):
        try:
            result = self._call()
        except AvatarUploadError as e:
            logger.error("Avatar request failed: %s", e)
            self.failed.emit(str(e))
            return
        except Exception as e:
            logger.exception("Unexpected error in avatar request")
            self.failed.emit(f"Avatar request failed: {e or type(e).__name__}")
            return
        self.succeeded.emit(result)


def circular_pixmap(pixmap: QPixmap, size: int) -> QPixmap:
    """Scale *pixmap* to fill a *size* circle."""
    scaled = pixmap.scaled(
        size, size,
        Qt.AspectRatioMode.KeepAspectRatioByExpanding,
        Qt.TransformationMode.SmoothTransformation,
    )
    out = QPixmap(size, size)
    out.fill(Qt.GlobalColor.transparent)
    painter = QPainter(out)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    path = QPainterPath()
    path.addEllipse(0, 0, size, size)
    painter.setClipPath(path)
    painter.drawPixmap((size - scaled.width()) // 2, (size - scaled.height()) // 2, scaled)
    painter.end()
    return out


class MainWindow(QMainWindow):
    def __init__(self, settings: Settings | None = None, client: AvatarClient | None = None):
        super().__init__()
        self.setWindowTitle("Avatar")
        self.setMinimumSize(360, 320)

        self._settings = settings or load_settings()
        self._client = client if client is not None else AvatarClient.from_settings(self._settings)
        self._request: RequestThread | None = None
        self._crop_dialog: AvatarCropDialog | None = None
        self._has_avatar = False

        self._build_ui()
        self._update_button_states()

        if self._client is not None:
            self._run_request(self._client.fetch_avatar_url, self._on_avatar_fetched, "Loading avatar…")

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)

        self._avatar_label = QLabel("No avatar")
        self._avatar_label.setFixedSize(_AVATAR_DISPLAY_SIZE, _AVATAR_DISPLAY_SIZE)
        self._avatar_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._avatar_label.setStyleSheet(
            f"border: 1px solid #555; border-radius: {_AVATAR_DISPLAY_SIZE // 2}px; color: #888;"
        )
        layout.addWidget(self._avatar_label, alignment=Qt.AlignmentFlag.AlignHCenter)

        btn_row = QHBoxLayout()
        self._btn_choose = QPushButton("Choose Image…")
        self._btn_choose.clicked.connect(self._choose_image)
        btn_row.addWidget(self._btn_choose)
        self._btn_remove = QPushButton("Remove Avatar")
        self._btn_remove.clicked.connect(self._remove_avatar)
        btn_row.addWidget(self._btn_remove)
        layout.addLayout(btn_row)

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        if self._client is None:
            self._status.showMessage("No API configured: cropped avatars are saved to disk.")
        else:
            self._status.showMessage(f"Connected to {self._client.base_url}")

    def _update_button_states(self):
        busy = self._request is not None and self._request.isRunning()
        self._btn_choose.setEnabled(not busy)
        self._btn_remove.setEnabled(not busy and self._has_avatar)

    # =========================================================================
    # Avatar display
    # =========================================================================

    def show_avatar(self, png: bytes | None):
        """Display *png* as the current avatar, or the placeholder for None."""
        if png is None:
            self._has_avatar = False
            self._avatar_label.setPixmap(QPixmap())
            self._avatar_label.setText("No avatar")
        else:
            pixmap = QPixmap()
            if not pixmap.loadFromData(png):
                logger.warning("Could not display avatar image (%d bytes)", len(png))
                return
            self._has_avatar = True
            self._avatar_label.setPixmap(circular_pixmap(pixmap, _AVATAR_DISPLAY_SIZE))
        self._update_button_states()

    def _on_avatar_fetched(self, url: str | None):
        if url is None:
            self.show_avatar(None)
            self._status.showMessage("No avatar set.")
            return
        try:
            _, data = decode_data_url(url)
        except ValueError as e:
            logger.warning("Unsupported avatar URL from server: %s", e)
            self._status.showMessage("Avatar is set but cannot be previewed.")
            self._has_avatar = True
            self._update_button_states()
            return
        self.show_avatar(data)
        self._status.showMessage("Avatar loaded.")

    # =========================================================================
    # Crop flow
    # =========================================================================

    def _choose_image(self):
        start_dir = self._settings.last_directory or ""
        path, _ = QFileDialog.getOpenFileName(self, "Choose Image", start_dir, image_file_filter())
        if not path:
            return
        path = Path(path)
        self._remember_directory(path.parent)
        self.open_crop_dialog(path)

    def open_crop_dialog(self, path: Path) -> AvatarCropDialog:
        dialog = AvatarCropDialog(self, output_diameter=self._settings.output_diameter)
        dialog.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose)
        dialog.destroyed.connect(self._on_crop_dialog_destroyed)
        dialog.cropped.connect(self._on_cropped)
        dialog.cancelled.connect(lambda: self._status.showMessage("Crop cancelled."))
        self._crop_dialog = dialog
        dialog.open_file(path)
        dialog.open()
        return dialog

    def _on_crop_dialog_destroyed(self):
        self._crop_dialog = None

    def _on_cropped(self, png: bytes):
        if self._client is None:
            self._save_to_disk(png)
            return
        self._run_request(lambda: self._client.upload_avatar(png), self._on_uploaded, "Uploading avatar…")

    def _on_uploaded(self, url: str):
        self._on_avatar_fetched(url)
        self._status.showMessage("Avatar updated.")

    def _save_to_disk(self, png: bytes):
        start_dir = Path(self._settings.last_directory or Path.home())
        default = unique_path(start_dir / AVATAR_FILENAME)
        path, _ = QFileDialog.getSaveFileName(self, "Save Avatar", str(default), "PNG (*.png)")
        if not path:
            self._status.showMessage("Avatar not saved.")
            return
        try:
            Path(path).write_bytes(png)
        except OSError as e:
            QMessageBox.warning(self, "Save Failed", f"Could not save avatar:\n{e}")
            return
        self.show_avatar(png)
        self._status.showMessage(f"Saved avatar to {path}")

    def _remove_avatar(self):
        if self._client is None:
            self.show_avatar(None)
            return
        answer = QMessageBox.question(self, "Remove Avatar", "Remove your current avatar?")
        if answer != QMessageBox.StandardButton.Yes:
            return
        self._run_request(self._client.delete_avatar, lambda _: self.show_avatar(None), "Removing avatar…")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _run_request(self, call: Callable[[], object], on_success: Callable[[object], None], message: str):
        self._status.showMessage(message)
        request = RequestThread(call, self)
        request.succeeded.connect(on_success)
        request.failed.connect(self._on_request_failed)
        request.finished.connect(self._update_button_states)
        self._request = request
        request.start()
        self._update_button_states()

    def _on_request_failed(self, message: str):
        self._status.showMessage("Request failed.")
        QMessageBox.warning(self, "Avatar Error", message)

    def _remember_directory(self, directory: Path):
        self._settings.last_directory = str(directory)
        save_settings(self._settings)

    def closeEvent(self, event):
        if self._request is not None and self._request.isRunning():
            self._request.wait()
        super().closeEvent(event)
