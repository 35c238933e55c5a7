from __future__ import annotations

from collections import deque
from collections.abc import Mapping
from dataclasses import replace
from typing import Deque, List, Optional

from domain.models import (
    CanvasEdge,
    CanvasNode,
    DiagramOverlay,
    EdgeOverlay,
    HistorySnapshot,
)

DEFAULT_HISTORY_LIMIT = 50


def clone_edge_overlay(entry: EdgeOverlay) -> EdgeOverlay:
    return entry.model_copy(
        update={
            "waypoints": list(entry.waypoints),
            "raw_points": list(entry.raw_points) if entry.raw_points is not None else None,
        }
    )


def clone_overlay(overlay: DiagramOverlay) -> DiagramOverlay:
    return overlay.model_copy(
        update={
            "nodes": {key: value.model_copy() for key, value in overlay.nodes.items()},
            "edges": {key: clone_edge_overlay(value) for key, value in overlay.edges.items()},
        }
    )


def clone_canvas_node(node: CanvasNode) -> CanvasNode:
    return replace(node)


def clone_canvas_edge(edge: CanvasEdge) -> CanvasEdge:
    # Points are frozen; copying the lists is enough to detach them.
    return replace(
        edge,
        waypoints=list(edge.waypoints),
        raw_points=list(edge.raw_points) if edge.raw_points is not None else None,
    )


def clone_snapshot(
    overlay: DiagramOverlay,
    canvas_nodes: Mapping[str, CanvasNode],
    canvas_edges: Mapping[str, CanvasEdge],
) -> HistorySnapshot:
    return HistorySnapshot(
        overlay=clone_overlay(overlay),
        canvas_nodes={key: clone_canvas_node(node) for key, node in canvas_nodes.items()},
        canvas_edges={key: clone_canvas_edge(edge) for key, edge in canvas_edges.items()},
    )


def copy_snapshot(snapshot: HistorySnapshot) -> HistorySnapshot:
    return clone_snapshot(snapshot.overlay, snapshot.canvas_nodes, snapshot.canvas_edges)


class HistoryManager:
    """Linear undo/redo over copied canvas snapshots; a new push discards redo."""

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            msg = "History limit must be at least 1"
            raise ValueError(msg)
        self.limit = limit
        self._undo: Deque[HistorySnapshot] = deque(maxlen=limit)
        self._redo: List[HistorySnapshot] = []

    def push(self, snapshot: HistorySnapshot) -> None:
        self._undo.append(copy_snapshot(snapshot))
        self._redo.clear()

    def undo(self, current: HistorySnapshot) -> Optional[HistorySnapshot]:
        if not self._undo:
            return None
        previous = self._undo.pop()
        self._redo.append(copy_snapshot(current))
        return previous

    def redo(self, current: HistorySnapshot) -> Optional[HistorySnapshot]:
        if not self._redo:
            return None
        following = self._redo.pop()
        self._undo.append(copy_snapshot(current))
        return following

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
