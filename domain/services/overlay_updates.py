from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Dict

from domain.models import (
    DEFAULT_CURVE_TYPE,
    DEFAULT_NODE_SIZE,
    ORIGIN_MANUAL,
    DiagramOverlay,
    EdgeOverlay,
    NodeOverlay,
)

_POINT_LIST_FIELDS = ("waypoints", "raw_points")


def create_empty_overlay() -> DiagramOverlay:
    return DiagramOverlay(nodes={}, edges={})


def _copy_point_lists(changes: Dict[str, Any]) -> Dict[str, Any]:
    copied = dict(changes)
    for key in _POINT_LIST_FIELDS:
        if copied.get(key) is not None:
            copied[key] = list(copied[key])
    return copied


def update_node_in_overlay(
    overlay: DiagramOverlay, node_id: str, **changes: Any
) -> DiagramOverlay:
    existing = overlay.nodes.get(node_id) or NodeOverlay(
        x=0.0, y=0.0, w=DEFAULT_NODE_SIZE.width, h=DEFAULT_NODE_SIZE.height
    )
    nodes = dict(overlay.nodes)
    nodes[node_id] = existing.model_copy(update=changes)
    return overlay.model_copy(update={"nodes": nodes})


def update_edge_in_overlay(
    overlay: DiagramOverlay, edge_id: str, **changes: Any
) -> DiagramOverlay:
    existing = overlay.edges.get(edge_id) or EdgeOverlay(
        waypoints=[], curve_type=DEFAULT_CURVE_TYPE
    )
    edges = dict(overlay.edges)
    edges[edge_id] = existing.model_copy(update=_copy_point_lists(changes))
    return overlay.model_copy(update={"edges": edges})


def add_manual_edge_to_overlay(
    overlay: DiagramOverlay, edge_id: str, entry: EdgeOverlay
) -> DiagramOverlay:
    edges = dict(overlay.edges)
    edges[edge_id] = entry.model_copy(
        update=_copy_point_lists(
            {
                "origin": ORIGIN_MANUAL,
                "waypoints": entry.waypoints,
                "raw_points": entry.raw_points,
            }
        )
    )
    return overlay.model_copy(update={"edges": edges})


def remove_manual_edge_from_overlay(overlay: DiagramOverlay, edge_id: str) -> DiagramOverlay:
    entry = overlay.edges.get(edge_id)
    if entry is None or not entry.is_manual:
        return overlay
    edges = {key: value for key, value in overlay.edges.items() if key != edge_id}
    return overlay.model_copy(update={"edges": edges})


def hide_edge_in_overlay(
    overlay: DiagramOverlay, edge_id: str, hidden: bool = True
) -> DiagramOverlay:
    return update_edge_in_overlay(overlay, edge_id, hidden=hidden)


def remove_node_from_overlay(overlay: DiagramOverlay, node_id: str) -> DiagramOverlay:
    if node_id not in overlay.nodes:
        return overlay
    nodes = {key: value for key, value in overlay.nodes.items() if key != node_id}
    return overlay.model_copy(update={"nodes": nodes})


def cleanup_overlay(
    overlay: DiagramOverlay,
    removed_node_ids: Iterable[str],
    removed_edge_ids: Iterable[str],
) -> DiagramOverlay:
    nodes = dict(overlay.nodes)
    edges = dict(overlay.edges)
    for node_id in removed_node_ids:
        nodes.pop(node_id, None)
    for edge_id in removed_edge_ids:
        edges.pop(edge_id, None)
    return overlay.model_copy(update={"nodes": nodes, "edges": edges})
