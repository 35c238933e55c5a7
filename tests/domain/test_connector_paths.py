from __future__ import annotations

import re

import pytest

from adapters.layout.grid import GridLayoutEngine
from domain.models import Point
from domain.services.connector_paths import (
    arrow_config,
    arrow_direction,
    arrow_heads_for_config,
    arrow_start_direction,
    build_arrowhead,
    build_path,
    expand_orthogonal,
)
from tests.helpers.graph_fixtures import make_graph


def _pts(*coords: tuple[float, float]) -> list[Point]:
    return [Point(x, y) for x, y in coords]


def test_straight_path_is_polyline() -> None:
    assert build_path(_pts((0, 0), (10, 0), (10, 10)), "straight") == "M 0 0 L 10 0 L 10 10"


def test_path_needs_two_points() -> None:
    assert build_path(_pts((0, 0)), "bezier") == ""
    assert build_path([], "straight") == ""


def test_unknown_curve_type_draws_straight_segments() -> None:
    assert build_path(_pts((0, 0), (5, 5)), "spline") == "M 0 0 L 5 5"


@pytest.mark.parametrize(
    "points",
    [
        _pts((0, 0), (100, 0)),
        _pts((0, 0), (50, 40), (100, 0)),
    ],
)
def test_bezier_with_at_most_one_waypoint_is_straight(points: list[Point]) -> None:
    assert build_path(points, "bezier") == build_path(points, "straight")


def test_bezier_control_points_blend_and_pull_back() -> None:
    path = build_path(_pts((0, 0), (100, 0), (100, 100), (200, 100)), "bezier")
    assert path == (
        "M 0 0 C 50 0, 85 -15, 100 0 C 100 50, 85 85, 100 100 Q 150 100, 200 100"
    )


def test_orthogonal_path_bends_horizontally_first() -> None:
    path = build_path(_pts((0, 0), (100, 50), (150, 80)), "orthogonal")
    assert path == "M 0 0 L 100 0 L 100 50 L 150 50 L 150 80"


def test_freehand_path_passes_through_every_point() -> None:
    points = _pts((0, 0), (60, 60), (120, 0), (180, 60))
    path = build_path(points, "freehand")

    assert path.startswith("M 0 0 C 10 10, 40 60, 60 60")
    segment_ends = re.findall(r"C [^C]*?, [^C]*?, (-?[\d.]+) (-?[\d.]+)", path)
    assert [Point(float(x), float(y)) for x, y in segment_ends] == points[1:]


def test_freehand_with_two_points_is_a_line() -> None:
    assert build_path(_pts((0, 0), (30, 40)), "freehand") == "M 0 0 L 30 40"


def test_expand_orthogonal_inserts_implicit_bends() -> None:
    assert expand_orthogonal(_pts((0, 0), (100, 100), (200, 150))) == _pts(
        (0, 0), (100, 0), (100, 100), (200, 100), (200, 150)
    )


def test_expand_orthogonal_skips_bend_on_previous_point() -> None:
    assert expand_orthogonal(_pts((0, 0), (0, 100))) == _pts((0, 0), (0, 100))


def test_orthogonal_arrow_follows_final_vertical_leg() -> None:
    points = _pts((0, 0), (100, 100))
    assert arrow_direction(points, "orthogonal") == (Point(100, 0), Point(100, 100))
    assert arrow_direction(points, "straight") == (Point(0, 0), Point(100, 100))


def test_orthogonal_start_arrow_follows_first_leg() -> None:
    points = _pts((0, 0), (100, 100))
    assert arrow_start_direction(points, "orthogonal") == (Point(100, 0), Point(0, 0))
    assert arrow_start_direction(points, "bezier") == (Point(100, 100), Point(0, 0))


def test_arrow_direction_for_single_point() -> None:
    assert arrow_direction(_pts((3, 4)), "straight") == (Point(3, 4), Point(3, 4))


def test_expand_orthogonal_drops_bend_on_current_point() -> None:
    assert expand_orthogonal(_pts((200, 100), (200, 0), (0, 0))) == _pts(
        (200, 100), (200, 0), (0, 0)
    )


def test_orthogonal_arrow_follows_leftward_final_leg() -> None:
    points = _pts((200, 100), (200, 0), (0, 0))

    direction = arrow_direction(points, "orthogonal")

    assert direction == (Point(200, 0), Point(0, 0))
    assert build_arrowhead(*direction) == "M 8.66 -5 L 0 0 L 8.66 5 Z"
    assert arrow_start_direction(points, "orthogonal") == (Point(200, 0), Point(200, 100))


def test_orthogonal_arrows_on_right_to_left_layout_point_left() -> None:
    plan = GridLayoutEngine().build_plan(
        make_graph(["a", "b", "c"], [("a", "b"), ("a", "c")], direction="RL")
    )

    for edge in plan.edges:
        source, target = arrow_direction(edge.bend_points, "orthogonal")
        assert source != target
        assert target.x < source.x
        assert source.y == target.y


def test_arrowhead_has_thirty_degree_wings() -> None:
    assert build_arrowhead(Point(0, 0), Point(100, 0)) == "M 91.34 5 L 100 0 L 91.34 -5 Z"


@pytest.mark.parametrize(
    ("config", "heads"),
    [
        ("none", ("none", "none")),
        ("start", ("arrow", "none")),
        ("end", ("none", "arrow")),
        ("both", ("arrow", "arrow")),
    ],
)
def test_arrow_config_conversions(config: str, heads: tuple[str, str]) -> None:
    assert arrow_heads_for_config(config) == heads
    assert arrow_config(*heads) == config


def test_unknown_arrow_config_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown arrow config"):
        arrow_heads_for_config("sideways")
