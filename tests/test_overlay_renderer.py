"""Tests for the draw-plan renderer and its rasterizer."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from clickseg.config import MarkerConfig
from clickseg.errors import InvalidTensorError
from clickseg.overlay_renderer import OverlayRenderer
from clickseg.session_types import BlendOverlay, DrawImage, DrawMarker, ImageFrame, Point, PointType


def _frame(width: int = 20, height: int = 10) -> ImageFrame:
    return ImageFrame(np.zeros((height, width, 3), dtype=np.uint8))


def _half_overlay(width: int = 20, height: int = 10) -> np.ndarray:
    overlay = np.zeros((height, width, 4), dtype=np.uint8)
    overlay[:, : width // 2] = (255, 0, 0, 128)
    return overlay


def test_plan_orders_base_overlay_then_points():
    renderer = OverlayRenderer()
    points = [Point(2, 3, PointType.POSITIVE), Point(15, 7, PointType.NEGATIVE)]

    plan = renderer.render(_frame(), _half_overlay(), points)

    assert isinstance(plan.ops[0], DrawImage)
    assert isinstance(plan.ops[1], BlendOverlay)
    positive, negative = plan.markers
    assert isinstance(positive, DrawMarker)
    assert (positive.x, positive.y) == (2, 3)
    assert positive.fill == (0, 128, 0)
    assert negative.fill == (255, 0, 0)
    assert positive.outline == negative.outline == (255, 255, 255)
    assert positive.radius == 5 and positive.outline_width == 2


def test_plan_without_overlay_skips_blend():
    plan = OverlayRenderer().render(_frame(), None, [])
    assert len(plan) == 1
    assert isinstance(plan.ops[0], DrawImage)


def test_overlay_size_must_match_image():
    with pytest.raises(InvalidTensorError):
        OverlayRenderer().render(_frame(20, 10), _half_overlay(10, 10), [])


def test_marker_colours_are_configurable():
    markers = MarkerConfig(radius=3, positive_color=(1, 2, 3), negative_color=(4, 5, 6))
    plan = OverlayRenderer(markers).render(_frame(), None, [Point(1, 1, PointType.NEGATIVE)])
    assert plan.markers[0].fill == (4, 5, 6)
    assert plan.markers[0].radius == 3


def test_rasterize_blends_without_touching_source():
    frame = _frame(40, 20)
    before = frame.pixels.copy()
    plan = OverlayRenderer().render(frame, _half_overlay(40, 20), [Point(30, 10, PointType.POSITIVE)])

    canvas = OverlayRenderer.rasterize(plan)

    assert canvas.shape == (20, 40, 3)
    assert np.array_equal(frame.pixels, before)
    assert tuple(canvas[0, 0]) == (128, 0, 0)
    assert tuple(canvas[0, 39]) == (0, 0, 0)
    assert tuple(canvas[10, 30]) == (0, 128, 0)
