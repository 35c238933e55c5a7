from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from domain.models import ARROW_HEAD, ARROW_NONE, Point
from domain.services.shape_geometry import format_number

BEZIER_BLEND = 0.5
BEZIER_PULL_BACK = 0.15
CATMULL_ROM_SCALE = 1 / 6
ARROWHEAD_SIZE = 10.0
ARROW_CONFIGS: tuple[str, ...] = ("none", "start", "end", "both")


def _move(point: Point) -> str:
    return f"M {format_number(point.x)} {format_number(point.y)}"


def _line(point: Point) -> str:
    return f"L {format_number(point.x)} {format_number(point.y)}"


def _cubic(cp1: Point, cp2: Point, to: Point) -> str:
    f = format_number
    return f"C {f(cp1.x)} {f(cp1.y)}, {f(cp2.x)} {f(cp2.y)}, {f(to.x)} {f(to.y)}"


def _quad(cp: Point, to: Point) -> str:
    f = format_number
    return f"Q {f(cp.x)} {f(cp.y)}, {f(to.x)} {f(to.y)}"


def build_path(points: Sequence[Point], curve_type: str) -> str:
    if len(points) < 2:
        return ""
    if curve_type == "bezier":
        return _bezier_path(points)
    if curve_type == "orthogonal":
        return _orthogonal_path(points)
    if curve_type == "freehand":
        return _freehand_path(points)
    return _straight_path(points)


def _straight_path(points: Sequence[Point]) -> str:
    first, *rest = points
    return " ".join([_move(first), *(_line(point) for point in rest)])


def _bezier_path(points: Sequence[Point]) -> str:
    # Two points, or a single interior waypoint, degenerate to straight segments.
    if len(points) <= 3:
        return _straight_path(points)

    first, *rest = points
    segments = [_move(first)]
    for idx, curr in enumerate(rest):
        prev = first if idx == 0 else rest[idx - 1]
        cp1 = Point(
            prev.x + (curr.x - prev.x) * BEZIER_BLEND,
            prev.y + (curr.y - prev.y) * BEZIER_BLEND,
        )
        if idx < len(rest) - 1:
            nxt = rest[idx + 1]
            cp2 = Point(
                curr.x - (nxt.x - prev.x) * BEZIER_PULL_BACK,
                curr.y - (nxt.y - prev.y) * BEZIER_PULL_BACK,
            )
            segments.append(_cubic(cp1, cp2, curr))
        else:
            segments.append(_quad(cp1, curr))
    return " ".join(segments)


def expand_orthogonal(points: Sequence[Point]) -> List[Point]:
    """Insert the implicit horizontal-then-vertical bend between consecutive points.

    Bends that coincide with either neighbour and repeated points are dropped,
    so consecutive entries are always distinct.
    """
    if not points:
        return []
    expanded = [points[0]]
    prev = points[0]
    for curr in points[1:]:
        for point in (Point(curr.x, prev.y), curr):
            if point != expanded[-1]:
                expanded.append(point)
        prev = curr
    return expanded


def _orthogonal_path(points: Sequence[Point]) -> str:
    first, *rest = points
    segments = [_move(first)]
    prev = first
    for curr in rest:
        segments.append(_line(Point(curr.x, prev.y)))
        segments.append(_line(curr))
        prev = curr
    return " ".join(segments)


def _freehand_path(points: Sequence[Point]) -> str:
    if len(points) == 2:
        return _straight_path(points)

    last = len(points) - 1
    segments = [_move(points[0])]
    for idx in range(last):
        p0 = points[max(0, idx - 1)]
        p1 = points[idx]
        p2 = points[idx + 1]
        p3 = points[min(last, idx + 2)]
        cp1 = Point(
            p1.x + (p2.x - p0.x) * CATMULL_ROM_SCALE,
            p1.y + (p2.y - p0.y) * CATMULL_ROM_SCALE,
        )
        cp2 = Point(
            p2.x - (p3.x - p1.x) * CATMULL_ROM_SCALE,
            p2.y - (p3.y - p1.y) * CATMULL_ROM_SCALE,
        )
        segments.append(_cubic(cp1, cp2, p2))
    return " ".join(segments)


def arrow_direction(points: Sequence[Point], curve_type: str) -> Tuple[Point, Point]:
    """Return (from, to) of the segment an end arrowhead should follow."""
    to = points[-1]
    if len(points) < 2:
        return to, to
    if curve_type == "orthogonal":
        expanded = expand_orthogonal(points)
        if len(expanded) < 2:
            return to, to
        return expanded[-2], to
    return points[-2], to


def arrow_start_direction(points: Sequence[Point], curve_type: str) -> Tuple[Point, Point]:
    to = points[0]
    if len(points) < 2:
        return to, to
    if curve_type == "orthogonal":
        expanded = expand_orthogonal(points)
        if len(expanded) < 2:
            return to, to
        return expanded[1], to
    return points[1], to


def build_arrowhead(from_point: Point, to_point: Point, size: float = ARROWHEAD_SIZE) -> str:
    angle = math.atan2(to_point.y - from_point.y, to_point.x - from_point.x)
    wing = math.pi / 6
    left = Point(
        to_point.x - size * math.cos(angle - wing),
        to_point.y - size * math.sin(angle - wing),
    )
    right = Point(
        to_point.x - size * math.cos(angle + wing),
        to_point.y - size * math.sin(angle + wing),
    )
    return f"{_move(left)} {_line(to_point)} {_line(right)} Z"


def arrow_config(arrow_start: str, arrow_end: str) -> str:
    has_start = arrow_start == ARROW_HEAD
    has_end = arrow_end == ARROW_HEAD
    if has_start and has_end:
        return "both"
    if has_start:
        return "start"
    if has_end:
        return "end"
    return "none"


def arrow_heads_for_config(config: str) -> Tuple[str, str]:
    if config not in ARROW_CONFIGS:
        msg = f"Unknown arrow config: {config}"
        raise ValueError(msg)
    arrow_start = ARROW_HEAD if config in {"start", "both"} else ARROW_NONE
    arrow_end = ARROW_HEAD if config in {"end", "both"} else ARROW_NONE
    return arrow_start, arrow_end
