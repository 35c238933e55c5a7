from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Dict, List, Optional, Tuple

from domain.models import CanvasEdge, CanvasNode, Point
from domain.services.shape_geometry import anchor_point


def index_nodes_by_node_id(nodes: Iterable[CanvasNode]) -> Dict[str, CanvasNode]:
    return {node.node_id: node for node in nodes}


def compute_edge_endpoints(
    edge: CanvasEdge, nodes_by_node_id: Mapping[str, CanvasNode]
) -> Optional[Tuple[Point, Point]]:
    """Anchor an edge's start/end on the outlines of its attached shapes.

    Each end aims at its adjacent waypoint, or at the opposite end when the
    edge has no waypoints. Freehand strokes always aim at the opposite end
    since their first and last waypoints sit on the recorded stroke ends.
    Unattached ends keep their current point. Returns None when neither end
    is attached to a node on the canvas.
    """
    source = nodes_by_node_id.get(edge.source_id) if edge.source_id else None
    target = nodes_by_node_id.get(edge.target_id) if edge.target_id else None
    if source is None and target is None:
        return None

    far_end = target.center if target is not None else edge.end
    far_start = source.center if source is not None else edge.start
    use_waypoints = bool(edge.waypoints) and edge.curve_type != "freehand"

    start = edge.start
    if source is not None:
        aim = edge.waypoints[0] if use_waypoints else far_end
        start = anchor_point(source, aim)

    end = edge.end
    if target is not None:
        aim = edge.waypoints[-1] if use_waypoints else far_start
        end = anchor_point(target, aim)

    return start, end


def refresh_connected_edges(
    node_id: str,
    edges: Iterable[CanvasEdge],
    nodes_by_node_id: Mapping[str, CanvasNode],
) -> List[str]:
    """Re-anchor, in place, every edge attached to ``node_id``; returns their canvas ids."""
    updated: List[str] = []
    for edge in edges:
        if node_id not in (edge.source_id, edge.target_id):
            continue
        endpoints = compute_edge_endpoints(edge, nodes_by_node_id)
        if endpoints is None:
            continue
        edge.start, edge.end = endpoints
        updated.append(edge.canvas_id)
    return updated
