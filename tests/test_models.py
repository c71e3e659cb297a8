"""Tests for the view state and placement math."""

import math

import pytest

from avatar_crop_tool.models import (
    ViewState, base_scale, clamp_zoom, compute_placement,
    preview_placement, export_placement,
)

PREVIEW = 240
OUTPUT = 256


def test_base_scale_fills_circle_with_shorter_side():
    assert base_scale(1000, 500, PREVIEW) == pytest.approx(240 / 500)
    assert base_scale(300, 900, PREVIEW) == pytest.approx(240 / 300)
    assert base_scale(240, 240, PREVIEW) == pytest.approx(1.0)


def test_base_scale_rejects_empty_image():
    with pytest.raises(ValueError):
        base_scale(0, 100, PREVIEW)


@pytest.mark.parametrize("value, expected", [
    (0.1, 0.5), (0.5, 0.5), (1.3, 1.3), (4.0, 4.0), (12.0, 4.0), (-3.0, 0.5),
])
def test_clamp_zoom(value, expected):
    assert clamp_zoom(value) == expected


def test_clamp_zoom_nan_falls_back_to_default():
    assert clamp_zoom(math.nan) == 1.0


def test_identity_view_centers_a_square_image():
    p = preview_placement(500, 500, ViewState(), base_scale(500, 500, PREVIEW), PREVIEW)
    assert (p.x, p.y, p.width, p.height) == pytest.approx((0, 0, 240, 240))


def test_landscape_image_is_center_cropped():
    base = base_scale(1000, 500, PREVIEW)
    p = preview_placement(1000, 500, ViewState(), base, PREVIEW)
    assert p.height == pytest.approx(PREVIEW)
    assert p.width == pytest.approx(480)
    # (1000 * base - 240) / 2 = 120 pixels cropped on each side
    assert p.x == pytest.approx(-(1000 * base - PREVIEW) / 2)
    assert p.y == pytest.approx(0)


def test_offset_is_applied_after_centering():
    base = base_scale(400, 400, PREVIEW)
    p = preview_placement(400, 400, ViewState(2.0, 15, -30), base, PREVIEW)
    assert p.width == pytest.approx(480)
    assert p.x == pytest.approx((240 - 480) / 2 + 15)
    assert p.y == pytest.approx((240 - 480) / 2 - 30)


@pytest.mark.parametrize("z1, z2", [(0.5, 1.0), (1.0, 1.25), (2.0, 4.0)])
def test_zoom_scales_draw_size_by_exact_ratio(z1, z2):
    base = base_scale(640, 480, PREVIEW)
    for place in (
        lambda v: preview_placement(640, 480, v, base, PREVIEW),
        lambda v: export_placement(640, 480, v, base, PREVIEW, OUTPUT),
    ):
        a = place(ViewState(z1, 7, 9))
        b = place(ViewState(z2, 7, 9))
        assert b.width > a.width and b.height > a.height
        assert b.width / a.width == pytest.approx(z2 / z1)
        assert b.height / a.height == pytest.approx(z2 / z1)


def test_export_scales_size_and_offset_by_resolution_ratio():
    base = base_scale(800, 600, PREVIEW)
    view = ViewState(1.6, 12.5, -40)
    pre = preview_placement(800, 600, view, base, PREVIEW)
    exp = export_placement(800, 600, view, base, PREVIEW, OUTPUT)
    ratio = OUTPUT / PREVIEW
    assert exp.x == pytest.approx(pre.x * ratio)
    assert exp.y == pytest.approx(pre.y * ratio)
    assert exp.width == pytest.approx(pre.width * ratio)
    assert exp.height == pytest.approx(pre.height * ratio)
    assert exp.scale == pytest.approx(base * 1.6 * ratio)


def test_compute_placement_with_unit_ratio_matches_preview():
    base = base_scale(320, 200, PREVIEW)
    view = ViewState(1.2, 3, 4)
    assert compute_placement(320, 200, view, base, PREVIEW) == preview_placement(320, 200, view, base, PREVIEW)


def test_view_state_is_immutable():
    view = ViewState()
    moved = view.moved_to(5, 6)
    assert view == ViewState(1.0, 0.0, 0.0)
    assert moved == ViewState(1.0, 5, 6)
    assert moved.zoomed_to(2.0) == ViewState(2.0, 5, 6)
