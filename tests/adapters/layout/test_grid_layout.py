from __future__ import annotations

import asyncio

import pytest

from adapters.layout.grid import GridLayoutEngine, LayoutConfig
from domain.models import LayoutNode, LayoutResult, Point, Size
from tests.helpers.graph_fixtures import make_graph


def _node(plan: LayoutResult, node_id: str) -> LayoutNode:
    return next(node for node in plan.nodes if node.id == node_id)


def test_top_down_levels_and_centered_rows() -> None:
    plan = GridLayoutEngine().build_plan(make_graph(["a", "b", "c"], [("a", "b"), ("a", "c")]))

    a, b, c = _node(plan, "a"), _node(plan, "b"), _node(plan, "c")
    assert (a.x, a.y) == (145, 40)
    assert (b.x, b.y) == (40, 190)
    assert (c.x, c.y) == (250, 190)
    assert (a.width, a.height) == (160, 70)
    assert (plan.width, plan.height) == (450, 300)


def test_bend_points_start_and_end_on_node_boundaries() -> None:
    plan = GridLayoutEngine().build_plan(make_graph(["a", "b", "c"], [("a", "b"), ("a", "c")]))

    edge = plan.edge_map()["a->b"]
    assert edge.bend_points == [
        Point(225, 110),
        Point(225, 150),
        Point(120, 150),
        Point(120, 190),
    ]


def test_left_right_direction_places_levels_horizontally() -> None:
    plan = GridLayoutEngine().build_plan(make_graph(["a", "b"], [("a", "b")], direction="LR"))

    a, b = _node(plan, "a"), _node(plan, "b")
    assert (a.x, a.y) == (40, 40)
    assert (b.x, b.y) == (280, 40)
    assert plan.edge_map()["a->b"].bend_points == [Point(200, 75), Point(280, 75)]


def test_bottom_top_direction_reverses_levels() -> None:
    plan = GridLayoutEngine().build_plan(make_graph(["a", "b"], [("a", "b")], direction="BT"))

    assert _node(plan, "a").y == 190
    assert _node(plan, "b").y == 40
    assert plan.edge_map()["a->b"].bend_points == [Point(120, 190), Point(120, 110)]


def test_cycles_terminate_with_declared_order() -> None:
    plan = GridLayoutEngine().build_plan(
        make_graph(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")])
    )

    assert [_node(plan, node_id).y for node_id in ("a", "b", "c")] == [40, 190, 340]
    back_edge = plan.edge_map()["c->a"]
    assert back_edge.bend_points[0] == Point(120, 375)
    assert back_edge.bend_points[-1] == Point(120, 75)


def test_self_loop_has_no_bend_points() -> None:
    plan = GridLayoutEngine().build_plan(make_graph(["a"], [("a", "a")]))

    assert plan.edge_map()["a->a"].bend_points == []


def test_empty_graph_returns_empty_layout() -> None:
    plan = GridLayoutEngine().build_plan(make_graph([]))

    assert plan.nodes == []
    assert plan.edges == []
    assert (plan.width, plan.height) == (0, 0)


def test_custom_config_and_async_layout() -> None:
    engine = GridLayoutEngine(LayoutConfig(node_size=Size(100, 50), padding=0, gap_main=20))

    plan = asyncio.run(engine.layout(make_graph(["a", "b"], [("a", "b")])))

    assert (_node(plan, "b").x, _node(plan, "b").y) == (0, 70)
    assert plan.width == pytest.approx(100)
    assert plan.height == pytest.approx(120)
