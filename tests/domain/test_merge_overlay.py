from __future__ import annotations

import pytest

from domain.models import DiagramOverlay, EdgeOverlay, NodeOverlay, Point
from domain.services.merge_overlay import merge_graph_with_overlay
from domain.services.overlay_updates import (
    add_manual_edge_to_overlay,
    create_empty_overlay,
    update_edge_in_overlay,
    update_node_in_overlay,
)
from tests.helpers.graph_fixtures import make_graph, make_layout


def test_layout_with_two_bend_points_falls_back_to_bezier() -> None:
    graph = make_graph(["a", "b"], [("a", "b")])
    layout = make_layout(
        {"a": (0, 0, 160, 70), "b": (0, 150, 160, 70)},
        {"a->b": [(80, 70), (80, 150)]},
    )

    result = merge_graph_with_overlay(graph, create_empty_overlay(), layout)

    positions = {node.node_id: (node.x, node.y, node.w, node.h) for node in result.positioned_nodes}
    assert positions == {"a": (0, 0, 160, 70), "b": (0, 150, 160, 70)}
    assert len(result.edges) == 1
    assert result.edges[0].waypoints == []
    assert result.edges[0].curve_type == "bezier"
    assert result.staged_nodes == []


def test_layout_interior_bend_points_become_orthogonal_waypoints() -> None:
    graph = make_graph(["a", "b"], [("a", "b")])
    layout = make_layout(
        {"a": (0, 0, 160, 70), "b": (200, 150, 160, 70)},
        {"a->b": [(80, 70), (80, 110), (280, 110), (280, 150)]},
    )

    result = merge_graph_with_overlay(graph, create_empty_overlay(), layout)

    edge = result.edges[0]
    assert edge.curve_type == "orthogonal"
    assert edge.waypoints == [Point(80, 110), Point(280, 110)]


def test_stale_overlay_node_is_reported_for_removal() -> None:
    graph = make_graph(["a", "b"])
    overlay = update_node_in_overlay(create_empty_overlay(), "c", x=10, y=20)
    layout = make_layout({"a": (0, 0, 160, 70), "b": (0, 150, 160, 70)})

    result = merge_graph_with_overlay(graph, overlay, layout)

    assert result.removed_node_ids == ["c"]
    assert result.removed_edge_ids == []


def test_overlay_position_wins_over_layout() -> None:
    graph = make_graph(["a"])
    overlay = update_node_in_overlay(
        create_empty_overlay(), "a", x=500, y=600, w=200, h=90, color="green"
    )
    layout = make_layout({"a": (0, 0, 160, 70)})

    result = merge_graph_with_overlay(graph, overlay, layout)

    node = result.positioned_nodes[0]
    assert (node.x, node.y, node.w, node.h, node.color) == (500, 600, 200, 90, "green")


def test_layout_positioned_nodes_use_default_color() -> None:
    graph = make_graph(["a"])
    result = merge_graph_with_overlay(
        graph, create_empty_overlay(), make_layout({"a": (1, 2, 160, 70)})
    )
    assert result.positioned_nodes[0].color == "blue"


def test_nodes_without_overlay_or_layout_are_staged() -> None:
    graph = make_graph(["a", ("db", "cylinder")])
    layout = make_layout({"a": (0, 0, 160, 70)})

    result = merge_graph_with_overlay(graph, create_empty_overlay(), layout)

    assert [node.node_id for node in result.positioned_nodes] == ["a"]
    assert [node.id for node in result.staged_nodes] == ["db"]
    assert result.staged_nodes[0].shape_kind == "cylinder"


def test_overlay_edge_entry_wins_over_layout() -> None:
    graph = make_graph(["a", "b"], [("a", "b")])
    overlay = update_edge_in_overlay(
        create_empty_overlay(),
        "a->b",
        waypoints=[Point(10, 10)],
        curve_type="straight",
        arrow_start="arrow",
        color="#ff0000",
    )
    layout = make_layout(
        {"a": (0, 0, 160, 70), "b": (0, 150, 160, 70)},
        {"a->b": [(80, 70), (80, 110), (80, 150)]},
    )

    result = merge_graph_with_overlay(graph, overlay, layout)

    edge = result.edges[0]
    assert edge.waypoints == [Point(10, 10)]
    assert edge.curve_type == "straight"
    assert edge.arrow_start == "arrow"
    assert edge.arrow_end == "arrow"
    assert edge.color == "#ff0000"


def test_stale_overlay_edge_is_reported_for_removal() -> None:
    graph = make_graph(["a", "b"], [("a", "b")])
    overlay = update_edge_in_overlay(create_empty_overlay(), "b->a", waypoints=[])

    result = merge_graph_with_overlay(graph, overlay, make_layout({}))

    assert result.removed_edge_ids == ["b->a"]


def test_manual_edges_are_not_reported_for_removal() -> None:
    graph = make_graph(["a", "b"])
    overlay = add_manual_edge_to_overlay(
        create_empty_overlay(),
        "freehand::1",
        EdgeOverlay(
            waypoints=[Point(0, 0), Point(5, 5)],
            curve_type="freehand",
            source_id="a",
            target_id="b",
            raw_points=[Point(0, 0), Point(2, 3), Point(5, 5)],
            smoothing=0.25,
        ),
    )

    result = merge_graph_with_overlay(graph, overlay, make_layout({}))

    assert result.removed_edge_ids == []
    assert result.edges == []
    [manual] = result.manual_edges
    assert manual.edge_id == "freehand::1"
    assert manual.origin == "manual"
    assert manual.raw_points == [Point(0, 0), Point(2, 3), Point(5, 5)]
    assert manual.smoothing == 0.25


def test_edges_with_missing_endpoints_are_dropped() -> None:
    graph = make_graph(["a", "b"], [("a", "b")])
    dangling = graph.model_copy(
        update={"nodes": [node for node in graph.nodes if node.id != "b"]}
    )

    result = merge_graph_with_overlay(dangling, create_empty_overlay(), make_layout({}))

    assert result.edges == []


def test_duplicate_edges_get_distinct_ids() -> None:
    graph = make_graph(["a", "b"], [("a", "b"), ("a", "b")])

    result = merge_graph_with_overlay(graph, create_empty_overlay(), make_layout({}))

    assert [edge.edge_id for edge in result.edges] == ["a->b", "a->b#1"]


def test_merge_is_idempotent_and_does_not_mutate_inputs() -> None:
    graph = make_graph(["a", "b", "c"], [("a", "b"), ("b", "c")])
    overlay = update_node_in_overlay(create_empty_overlay(), "a", x=5, y=5)
    overlay = update_node_in_overlay(overlay, "gone", x=1, y=1)
    layout = make_layout(
        {"b": (0, 150, 160, 70), "c": (0, 300, 160, 70)},
        {"b->c": [(80, 220), (80, 260), (90, 260), (90, 300)]},
    )
    overlay_before = overlay.model_dump()
    graph_before = graph.model_dump()

    first = merge_graph_with_overlay(graph, overlay, layout)
    second = merge_graph_with_overlay(graph, overlay, layout)

    assert first.positioned_nodes == second.positioned_nodes
    assert first.edges == second.edges
    assert first.removed_node_ids == second.removed_node_ids == ["gone"]
    assert overlay.model_dump() == overlay_before
    assert graph.model_dump() == graph_before


@pytest.mark.parametrize("seed_ids", [["x"], ["x", "y"], ["a", "x", "y"]])
def test_every_stale_overlay_key_is_reported(seed_ids: list[str]) -> None:
    graph = make_graph(["a"])
    overlay = create_empty_overlay()
    for node_id in seed_ids:
        overlay = update_node_in_overlay(overlay, node_id, x=0, y=0)
        overlay = update_edge_in_overlay(overlay, f"{node_id}->a", waypoints=[])

    result = merge_graph_with_overlay(graph, overlay, make_layout({}))

    stale = [node_id for node_id in seed_ids if node_id != "a"]
    assert sorted(result.removed_node_ids) == sorted(stale)
    assert sorted(result.removed_edge_ids) == sorted(f"{node_id}->a" for node_id in seed_ids)


def test_overlay_rejects_unknown_version() -> None:
    with pytest.raises(ValueError):
        DiagramOverlay.model_validate({"version": 2, "nodes": {}, "edges": {}})


def test_overlay_parses_serialized_payload() -> None:
    overlay = DiagramOverlay.model_validate(
        {
            "version": 1,
            "nodes": {"a": {"x": 1, "y": 2, "w": 100, "h": 50}},
            "edges": {"a->b": {"waypoints": [{"x": 3, "y": 4}], "curve_type": "orthogonal"}},
        }
    )
    assert overlay.nodes["a"] == NodeOverlay(x=1, y=2, w=100, h=50)
    assert overlay.edges["a->b"].waypoints == [Point(3, 4)]
