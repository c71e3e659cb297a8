"""
Application entry point and dark-theme stylesheet.

Usage:
    python -m avatar_crop_tool
    avatar-crop-tool          (after pip install)
"""

import logging
import os
import sys

from PyQt6.QtWidgets import QApplication

from avatar_crop_tool.config import ENV_LOG_LEVEL
from avatar_crop_tool.main_window import MainWindow

DARK_STYLESHEET = """
    QMainWindow { background: #2b2b2b; }
    QWidget { background: #2b2b2b; color: #ddd; font-size: 10pt; }
    QDialog { background: #2b2b2b; }
    QPushButton { background: #3a3a3a; border: 1px solid #555; border-radius: 4px; padding: 6px 12px; }
    QPushButton:hover { background: #4a4a4a; }
    QPushButton:pressed { background: #2a2a2a; }
    QPushButton:default { background: #3a6ea5; border-color: #5a8ec5; }
    QPushButton:disabled { color: #666; }
    QSlider::groove:horizontal { height: 6px; background: #444; border-radius: 3px; }
    QSlider::handle:horizontal { background: #6366f1; width: 14px; margin: -5px 0; border-radius: 7px; }
    QStatusBar { background: #333; border-top: 1px solid #444; }
"""


def configure_logging():
    level = os.environ.get(ENV_LOG_LEVEL, "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def main():
    configure_logging()
    app = QApplication(sys.argv)
    app.setStyleSheet(DARK_STYLESHEET)

    window = MainWindow()
    window.show()

    try:
        sys.exit(app.exec())
    except (SystemExit, KeyboardInterrupt):
        pass


if __name__ == "__main__":
    main()
