from __future__ import annotations

import math
from typing import List, Sequence

from domain.models import Point

MIN_EPSILON = 0.5
MAX_EPSILON = 15.0
MAX_CHAIKIN_ITERATIONS = 4


def _perpendicular_distance(point: Point, line_start: Point, line_end: Point) -> float:
    dx = line_end.x - line_start.x
    dy = line_end.y - line_start.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(point.x - line_start.x, point.y - line_start.y)
    num = abs(dy * point.x - dx * point.y + line_end.x * line_start.y - line_end.y * line_start.x)
    return num / math.sqrt(length_sq)


def rdp_simplify(points: Sequence[Point], epsilon: float) -> List[Point]:
    if len(points) <= 2:
        return list(points)

    start = points[0]
    end = points[-1]
    max_dist = 0.0
    max_idx = 0
    for idx in range(1, len(points) - 1):
        dist = _perpendicular_distance(points[idx], start, end)
        if dist > max_dist:
            max_dist = dist
            max_idx = idx

    if max_dist > epsilon:
        left = rdp_simplify(points[: max_idx + 1], epsilon)
        right = rdp_simplify(points[max_idx:], epsilon)
        return left[:-1] + right
    return [start, end]


def chaikin_smooth(points: Sequence[Point], iterations: int) -> List[Point]:
    if len(points) < 3 or iterations <= 0:
        return list(points)

    current = list(points)
    for _ in range(iterations):
        refined = [current[0]]
        for p0, p1 in zip(current, current[1:]):
            refined.append(Point(p0.x * 0.75 + p1.x * 0.25, p0.y * 0.75 + p1.y * 0.25))
            refined.append(Point(p0.x * 0.25 + p1.x * 0.75, p0.y * 0.25 + p1.y * 0.75))
        refined.append(current[-1])
        current = refined
    return current


def smoothing_epsilon(level: float) -> float:
    return MIN_EPSILON + (MAX_EPSILON - MIN_EPSILON) * level


def smoothing_iterations(level: float) -> int:
    return int(math.floor(level * MAX_CHAIKIN_ITERATIONS + 0.5))


def smooth_freehand_points(raw_points: Sequence[Point], level: float) -> List[Point]:
    """Simplify a recorded stroke and round its corners.

    ``level`` runs from 0.0 (close to raw) to 1.0 (heavy simplification plus
    four rounds of corner cutting). Strokes shorter than three points are
    returned unchanged.
    """
    if len(raw_points) < 3:
        return list(raw_points)

    level = max(0.0, min(1.0, level))
    simplified = rdp_simplify(raw_points, smoothing_epsilon(level))
    return chaikin_smooth(simplified, smoothing_iterations(level))
