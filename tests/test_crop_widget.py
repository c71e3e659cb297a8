"""Tests for the circular preview widget."""

import pytest

try:
    from PyQt6.QtCore import QEvent, QPoint, QPointF, Qt
    from PyQt6.QtGui import QMouseEvent, QWheelEvent
    from avatar_crop_tool.crop_widget import AvatarCropWidget, ImageLoaderThread, pil_to_qpixmap
    qt_available = True
except (ImportError, RuntimeError):
    qt_available = False

from PIL import Image

from avatar_crop_tool.models import SessionState, ViewState
from avatar_crop_tool.session import CropSession

pytestmark = pytest.mark.skipif(not qt_available, reason="Qt widgets not available")


def _mouse(kind, x, y, buttons=None):
    button = Qt.MouseButton.LeftButton
    return QMouseEvent(
        kind, QPointF(x, y), button,
        buttons if buttons is not None else button,
        Qt.KeyboardModifier.NoModifier,
    )


def _wheel(angle_y):
    return QWheelEvent(
        QPointF(120, 120), QPointF(120, 120),
        QPoint(0, 0), QPoint(0, angle_y),
        Qt.MouseButton.NoButton, Qt.KeyboardModifier.NoModifier,
        Qt.ScrollPhase.NoScrollPhase, False,
    )


@pytest.fixture
def session():
    return CropSession(lambda blob: None, lambda: None)


@pytest.fixture
def widget(qtbot, session):
    w = AvatarCropWidget(session)
    qtbot.addWidget(w)
    return w


def test_pil_to_qpixmap_keeps_size(qapp):
    pixmap = pil_to_qpixmap(Image.new("RGB", (33, 21), (10, 20, 30)))
    assert (pixmap.width(), pixmap.height()) == (33, 21)


def test_widget_is_preview_sized(widget):
    assert (widget.width(), widget.height()) == (240, 240)


def test_drag_pans_the_view(widget, session, png_bytes):
    session.load_bytes(png_bytes, "image/png")
    widget.refresh()

    widget.mousePressEvent(_mouse(QEvent.Type.MouseButtonPress, 100, 100))
    assert session.state == SessionState.INTERACTING
    widget.mouseMoveEvent(_mouse(QEvent.Type.MouseMove, 140, 70))
    widget.mouseReleaseEvent(_mouse(QEvent.Type.MouseButtonRelease, 140, 70, Qt.MouseButton.NoButton))

    assert session.state == SessionState.READY
    assert session.controller.view == ViewState(1.0, 40, -30)


def test_view_change_emits_and_repaints(qtbot, widget, session, png_bytes):
    session.load_bytes(png_bytes, "image/png")
    with qtbot.waitSignal(widget.view_changed, timeout=1000) as blocker:
        session.set_zoom(2.0)
    assert blocker.args[0].zoom == 2.0
    assert widget._pixmap is not None


def test_wheel_notch_down_zooms_out(widget, session, png_bytes):
    session.load_bytes(png_bytes, "image/png")
    event = _wheel(-120)  # one notch towards the user
    widget.wheelEvent(event)
    assert event.isAccepted()
    assert session.controller.view.zoom == pytest.approx(0.8)


def test_input_is_ignored_before_load(widget, session):
    widget.mousePressEvent(_mouse(QEvent.Type.MouseButtonPress, 10, 10))
    widget.wheelEvent(_wheel(120))
    assert session.state == SessionState.IDLE
    assert session.controller.view == ViewState()


def test_loader_thread_emits_source(qtbot, png_bytes):
    loader = ImageLoaderThread(png_bytes, "image/png")
    with qtbot.waitSignal(loader.loaded, timeout=5000) as blocker:
        loader.start()
    loader.wait()
    assert (blocker.args[0].width, blocker.args[0].height) == (300, 200)


def test_loader_thread_reports_decode_errors(qtbot):
    loader = ImageLoaderThread(b"not an image", "image/png")
    with qtbot.waitSignal(loader.failed, timeout=5000) as blocker:
        loader.start()
    loader.wait()
    assert "Could not read image" in blocker.args[0]


def test_loader_thread_reports_unexpected_errors(qtbot, png_bytes, monkeypatch):
    def broken(data, mime_type):
        raise RuntimeError("codec crashed")

    monkeypatch.setattr("avatar_crop_tool.crop_widget.decode_image", broken)
    loader = ImageLoaderThread(png_bytes, "image/png")
    with qtbot.waitSignal(loader.failed, timeout=5000) as blocker:
        loader.start()
    loader.wait()
    assert blocker.args == ["Could not read image: codec crashed"]
