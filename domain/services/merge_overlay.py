from __future__ import annotations

from typing import List

from domain.models import (
    ARROW_HEAD,
    ARROW_NONE,
    DEFAULT_CURVE_TYPE,
    DEFAULT_EDGE_COLOR,
    DEFAULT_NODE_COLOR,
    LAYOUT_CURVE_TYPE,
    ORIGIN_MANUAL,
    ORIGIN_STRUCTURAL,
    DiagramGraph,
    DiagramOverlay,
    EdgeOverlay,
    GraphEdge,
    GraphNode,
    LayoutResult,
    MergedEdge,
    MergedNode,
    MergeResult,
)


def merge_graph_with_overlay(
    graph: DiagramGraph,
    overlay: DiagramOverlay,
    layout: LayoutResult,
) -> MergeResult:
    """Combine a parsed graph, the user overlay and an auto-layout into canvas state.

    Overlay placement always wins over layout; nodes with neither are staged.
    Edges whose endpoints left the graph are dropped. Overlay keys absent from
    the graph are reported for removal, except manual edges, which never
    belong to the graph. Inputs are not mutated.
    """
    layout_nodes = layout.node_map()
    layout_edges = layout.edge_map()

    positioned_nodes: List[MergedNode] = []
    staged_nodes: List[GraphNode] = []
    for node in graph.nodes:
        node_overlay = overlay.nodes.get(node.id)
        layout_node = layout_nodes.get(node.id)
        if node_overlay is not None:
            positioned_nodes.append(
                MergedNode(
                    node_id=node.id,
                    label=node.label,
                    shape_kind=node.shape_kind,
                    x=node_overlay.x,
                    y=node_overlay.y,
                    w=node_overlay.w,
                    h=node_overlay.h,
                    color=node_overlay.color or DEFAULT_NODE_COLOR,
                )
            )
        elif layout_node is not None:
            positioned_nodes.append(
                MergedNode(
                    node_id=node.id,
                    label=node.label,
                    shape_kind=node.shape_kind,
                    x=layout_node.x,
                    y=layout_node.y,
                    w=layout_node.width,
                    h=layout_node.height,
                )
            )
        else:
            staged_nodes.append(node)

    node_ids = graph.node_ids()
    edges: List[MergedEdge] = []
    for edge in graph.edges:
        if edge.source_id not in node_ids or edge.target_id not in node_ids:
            continue
        edge_overlay = overlay.edges.get(edge.id)
        layout_edge = layout_edges.get(edge.id)
        # First and last bend points duplicate the node anchors.
        interior = layout_edge.bend_points[1:-1] if layout_edge is not None else []
        if edge_overlay is not None and not edge_overlay.is_manual:
            edges.append(_edge_from_overlay(edge, edge_overlay))
        elif interior:
            edges.append(
                MergedEdge(
                    edge_id=edge.id,
                    source_id=edge.source_id,
                    target_id=edge.target_id,
                    label=edge.label,
                    waypoints=list(interior),
                    curve_type=LAYOUT_CURVE_TYPE,
                )
            )
        else:
            edges.append(
                MergedEdge(
                    edge_id=edge.id,
                    source_id=edge.source_id,
                    target_id=edge.target_id,
                    label=edge.label,
                    waypoints=[],
                    curve_type=DEFAULT_CURVE_TYPE,
                )
            )

    edge_ids = graph.edge_ids()
    removed_node_ids = [node_id for node_id in overlay.nodes if node_id not in node_ids]
    removed_edge_ids = [
        edge_id
        for edge_id, entry in overlay.edges.items()
        if edge_id not in edge_ids and not entry.is_manual
    ]
    manual_edges = [
        _manual_edge_from_overlay(edge_id, entry)
        for edge_id, entry in overlay.edges.items()
        if entry.is_manual
    ]

    return MergeResult(
        positioned_nodes=positioned_nodes,
        staged_nodes=staged_nodes,
        edges=edges,
        removed_node_ids=removed_node_ids,
        removed_edge_ids=removed_edge_ids,
        manual_edges=manual_edges,
    )


def _edge_from_overlay(edge: GraphEdge, entry: EdgeOverlay) -> MergedEdge:
    return MergedEdge(
        edge_id=edge.id,
        source_id=edge.source_id,
        target_id=edge.target_id,
        label=edge.label,
        waypoints=list(entry.waypoints),
        curve_type=entry.curve_type,
        origin=ORIGIN_STRUCTURAL,
        arrow_start=entry.arrow_start or ARROW_NONE,
        arrow_end=entry.arrow_end or ARROW_HEAD,
        color=entry.color or DEFAULT_EDGE_COLOR,
        hidden=entry.hidden,
    )


def _manual_edge_from_overlay(edge_id: str, entry: EdgeOverlay) -> MergedEdge:
    return MergedEdge(
        edge_id=edge_id,
        source_id=entry.source_id or "",
        target_id=entry.target_id or "",
        label="",
        waypoints=list(entry.waypoints),
        curve_type=entry.curve_type,
        origin=ORIGIN_MANUAL,
        arrow_start=entry.arrow_start or ARROW_NONE,
        arrow_end=entry.arrow_end or ARROW_HEAD,
        color=entry.color or DEFAULT_EDGE_COLOR,
        hidden=entry.hidden,
        raw_points=list(entry.raw_points) if entry.raw_points is not None else None,
        smoothing=entry.smoothing,
    )
