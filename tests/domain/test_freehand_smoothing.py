from __future__ import annotations

import math
import random

import pytest

from domain.models import Point
from domain.services.freehand_smoothing import (
    chaikin_smooth,
    rdp_simplify,
    smooth_freehand_points,
    smoothing_epsilon,
    smoothing_iterations,
)

LEVELS = [0.0, 0.1, 0.25, 0.4, 0.5, 0.65, 0.8, 1.0]


def _wobbly_stroke(seed: int, count: int = 120) -> list[Point]:
    rng = random.Random(seed)
    points: list[Point] = []
    for idx in range(count):
        t = idx / (count - 1)
        points.append(
            Point(
                t * 400 + rng.uniform(-3, 3),
                math.sin(t * math.pi * 3) * 80 + rng.uniform(-3, 3),
            )
        )
    return points


def test_collinear_points_collapse_to_endpoints() -> None:
    points = [Point(x, 2 * x) for x in range(10)]
    assert rdp_simplify(points, 0.5) == [points[0], points[-1]]


def test_rdp_keeps_points_beyond_epsilon() -> None:
    points = [Point(0, 0), Point(50, 40), Point(100, 0)]
    assert rdp_simplify(points, 10) == points
    assert rdp_simplify(points, 50) == [points[0], points[-1]]


def test_chaikin_cuts_corners_at_quarter_points() -> None:
    points = [Point(0, 0), Point(100, 0), Point(100, 100)]
    assert chaikin_smooth(points, 1) == [
        Point(0, 0),
        Point(25, 0),
        Point(75, 0),
        Point(100, 25),
        Point(100, 75),
        Point(100, 100),
    ]


def test_chaikin_without_iterations_is_identity() -> None:
    points = [Point(0, 0), Point(10, 10), Point(20, 0)]
    assert chaikin_smooth(points, 0) == points


@pytest.mark.parametrize(
    ("level", "epsilon", "iterations"),
    [(0.0, 0.5, 0), (0.125, 2.3125, 1), (0.5, 7.75, 2), (0.375, 5.9375, 2), (1.0, 15.0, 4)],
)
def test_level_controls_epsilon_and_iterations(
    level: float, epsilon: float, iterations: int
) -> None:
    assert smoothing_epsilon(level) == pytest.approx(epsilon)
    assert smoothing_iterations(level) == iterations


@pytest.mark.parametrize("count", [0, 1, 2])
def test_short_strokes_pass_through(count: int) -> None:
    points = [Point(idx * 10, idx * 5) for idx in range(count)]
    assert smooth_freehand_points(points, 1.0) == points


@pytest.mark.parametrize("seed", range(5))
def test_smoothing_preserves_stroke_endpoints(seed: int) -> None:
    stroke = _wobbly_stroke(seed)
    for level in LEVELS:
        smoothed = smooth_freehand_points(stroke, level)
        assert smoothed[0] == stroke[0]
        assert smoothed[-1] == stroke[-1]


@pytest.mark.parametrize("seed", range(5))
def test_simplification_is_monotonic_in_level(seed: int) -> None:
    stroke = _wobbly_stroke(seed)
    counts = [len(rdp_simplify(stroke, smoothing_epsilon(level))) for level in LEVELS]
    assert counts == sorted(counts, reverse=True)


def test_level_zero_only_simplifies() -> None:
    stroke = _wobbly_stroke(7)
    assert smooth_freehand_points(stroke, 0.0) == rdp_simplify(stroke, 0.5)


def test_level_is_clamped() -> None:
    stroke = _wobbly_stroke(3)
    assert smooth_freehand_points(stroke, 4.0) == smooth_freehand_points(stroke, 1.0)
    assert smooth_freehand_points(stroke, -1.0) == smooth_freehand_points(stroke, 0.0)
