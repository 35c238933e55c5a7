from __future__ import annotations

import logging
import math
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from domain.models import (
    ARROW_HEAD,
    ARROW_NONE,
    CURVE_TYPES,
    DEFAULT_EDGE_COLOR,
    DEFAULT_NODE_COLOR,
    DEFAULT_NODE_SIZE,
    MIN_NODE_SIZE,
    NODE_COLORS,
    ORIGIN_MANUAL,
    CanvasEdge,
    CanvasNode,
    DiagramOverlay,
    EdgeOverlay,
    HistorySnapshot,
    MergedEdge,
    MergeResult,
    Point,
    Size,
    StagedNode,
)
from domain.ports.collaborators import EditorController, TextPatcher
from domain.services.connector_paths import arrow_heads_for_config
from domain.services.edge_tracking import (
    compute_edge_endpoints,
    index_nodes_by_node_id,
    refresh_connected_edges,
)
from domain.services.freehand_smoothing import smooth_freehand_points
from domain.services.history import HistoryManager
from domain.services.overlay_updates import (
    add_manual_edge_to_overlay,
    cleanup_overlay,
    create_empty_overlay,
    hide_edge_in_overlay,
    remove_manual_edge_from_overlay,
    remove_node_from_overlay,
    update_edge_in_overlay,
    update_node_in_overlay,
)
from domain.services.staging import calculate_placement_positions, stage_nodes

logger = logging.getLogger(__name__)

FREEHAND_EDGE_PREFIX = "freehand::"


@dataclass(frozen=True)
class SessionConfig:
    default_node_size: Size = DEFAULT_NODE_SIZE
    min_node_size: Size = MIN_NODE_SIZE
    default_node_color: str = DEFAULT_NODE_COLOR
    default_edge_color: str = DEFAULT_EDGE_COLOR
    snap_threshold: float = 20.0
    max_stroke_points: int = 2000
    default_smoothing: float = 0.5
    staging_columns: int = 3
    staging_gap: float = 30.0
    place_all_origin_x: float = 50.0
    place_all_offset_y: float = 60.0


@dataclass
class ReconcileDelta:
    created_node_ids: List[str] = field(default_factory=list)
    updated_node_ids: List[str] = field(default_factory=list)
    removed_node_ids: List[str] = field(default_factory=list)
    created_edge_ids: List[str] = field(default_factory=list)
    updated_edge_ids: List[str] = field(default_factory=list)
    removed_edge_ids: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(
            (
                self.created_node_ids,
                self.updated_node_ids,
                self.removed_node_ids,
                self.created_edge_ids,
                self.updated_edge_ids,
                self.removed_edge_ids,
            )
        )


def _assign(record: object, **values: object) -> bool:
    changed = False
    for name, value in values.items():
        if getattr(record, name) != value:
            setattr(record, name, value)
            changed = True
    return changed


def _new_id() -> str:
    return uuid.uuid4().hex


class DiagramSession:
    """Live canvas state: overlay, canvas records, staging tray, selection and history.

    Every direct-manipulation operation is a single synchronous step: push a
    history snapshot, mutate the canvas records, write the overlay back and
    re-anchor dependent edges. Operations addressing an unknown canvas id are
    no-ops and return a falsy value.
    """

    def __init__(
        self,
        editor: EditorController | None = None,
        text_patcher: TextPatcher | None = None,
        history: HistoryManager | None = None,
        config: SessionConfig | None = None,
        overlay: DiagramOverlay | None = None,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.editor = editor
        self.text_patcher = text_patcher
        self.history = history or HistoryManager()
        self.config = config or SessionConfig()
        self.overlay = overlay or create_empty_overlay()
        self.canvas_nodes: Dict[str, CanvasNode] = {}
        self.canvas_edges: Dict[str, CanvasEdge] = {}
        self.staged_nodes: List[StagedNode] = []
        self.selected_node_ids: Set[str] = set()
        self.selected_edge_ids: Set[str] = set()
        self._id_factory = id_factory
        self._clock = clock
        self._node_canvas_ids: Dict[str, str] = {}
        self._edge_canvas_ids: Dict[str, str] = {}
        self._stroke: Optional[List[Point]] = None

    # ------------------------------------------------------------------ lookups

    def snapshot(self) -> HistorySnapshot:
        return HistorySnapshot(
            overlay=self.overlay,
            canvas_nodes=self.canvas_nodes,
            canvas_edges=self.canvas_edges,
        )

    def nodes_by_node_id(self) -> Dict[str, CanvasNode]:
        return index_nodes_by_node_id(self.canvas_nodes.values())

    def node_for(self, node_id: str) -> Optional[CanvasNode]:
        canvas_id = self._node_canvas_ids.get(node_id)
        return self.canvas_nodes.get(canvas_id) if canvas_id else None

    def edge_for(self, edge_id: str) -> Optional[CanvasEdge]:
        canvas_id = self._edge_canvas_ids.get(edge_id)
        return self.canvas_edges.get(canvas_id) if canvas_id else None

    def _record(self) -> None:
        self.history.push(self.snapshot())

    # ---------------------------------------------------------- reconciliation

    def apply_merge(self, result: MergeResult) -> ReconcileDelta:
        delta = ReconcileDelta()
        overlay = self.overlay

        positioned_ids: Set[str] = set()
        for merged in result.positioned_nodes:
            positioned_ids.add(merged.node_id)
            canvas_id = self._node_canvas_ids.get(merged.node_id)
            node = self.canvas_nodes.get(canvas_id) if canvas_id else None
            if node is None:
                canvas_id = self._id_factory()
                self._node_canvas_ids[merged.node_id] = canvas_id
                self.canvas_nodes[canvas_id] = CanvasNode(
                    canvas_id=canvas_id,
                    node_id=merged.node_id,
                    shape_kind=merged.shape_kind,
                    x=merged.x,
                    y=merged.y,
                    w=merged.w,
                    h=merged.h,
                    label=merged.label,
                    color=merged.color,
                )
                delta.created_node_ids.append(canvas_id)
            elif _assign(
                node,
                shape_kind=merged.shape_kind,
                x=merged.x,
                y=merged.y,
                w=merged.w,
                h=merged.h,
                label=merged.label,
                color=merged.color,
            ):
                delta.updated_node_ids.append(node.canvas_id)
            overlay = update_node_in_overlay(
                overlay, merged.node_id, x=merged.x, y=merged.y, w=merged.w, h=merged.h
            )

        removed_node_ids = set(result.removed_node_ids)
        for canvas_id, node in list(self.canvas_nodes.items()):
            if node.node_id in positioned_ids:
                continue
            del self.canvas_nodes[canvas_id]
            self._node_canvas_ids.pop(node.node_id, None)
            self.selected_node_ids.discard(canvas_id)
            removed_node_ids.add(node.node_id)
            delta.removed_node_ids.append(canvas_id)

        nodes_by_node_id = self.nodes_by_node_id()
        merged_edge_ids: Set[str] = set()
        for merged in result.edges:
            source = nodes_by_node_id.get(merged.source_id)
            target = nodes_by_node_id.get(merged.target_id)
            if source is None or target is None:
                continue
            merged_edge_ids.add(merged.edge_id)
            edge, created, changed = self._upsert_edge(merged, source.center, target.center)
            endpoints = compute_edge_endpoints(edge, nodes_by_node_id)
            if endpoints is not None:
                changed = _assign(edge, start=endpoints[0], end=endpoints[1]) or changed
            if created:
                delta.created_edge_ids.append(edge.canvas_id)
            elif changed:
                delta.updated_edge_ids.append(edge.canvas_id)
            overlay = update_edge_in_overlay(
                overlay,
                merged.edge_id,
                waypoints=merged.waypoints,
                curve_type=merged.curve_type,
            )

        for merged in result.manual_edges:
            merged_edge_ids.add(merged.edge_id)
            existing = self.edge_for(merged.edge_id)
            if existing is not None:
                endpoints = compute_edge_endpoints(existing, nodes_by_node_id)
                if endpoints is not None and _assign(
                    existing, start=endpoints[0], end=endpoints[1]
                ):
                    delta.updated_edge_ids.append(existing.canvas_id)
                continue
            first = merged.waypoints[0] if merged.waypoints else Point(0.0, 0.0)
            last = merged.waypoints[-1] if merged.waypoints else first
            edge, _, _ = self._upsert_edge(merged, first, last)
            endpoints = compute_edge_endpoints(edge, nodes_by_node_id)
            if endpoints is not None:
                edge.start, edge.end = endpoints
            delta.created_edge_ids.append(edge.canvas_id)

        removed_edge_ids = set(result.removed_edge_ids)
        for canvas_id, edge in list(self.canvas_edges.items()):
            if edge.edge_id in merged_edge_ids:
                continue
            if edge.is_manual and edge.edge_id in overlay.edges:
                continue
            del self.canvas_edges[canvas_id]
            self._edge_canvas_ids.pop(edge.edge_id, None)
            self.selected_edge_ids.discard(canvas_id)
            delta.removed_edge_ids.append(canvas_id)

        for edge in self.canvas_edges.values():
            if not edge.is_manual:
                continue
            detached = _assign(
                edge,
                source_id="" if edge.source_id in removed_node_ids else edge.source_id,
                target_id="" if edge.target_id in removed_node_ids else edge.target_id,
            )
            if detached:
                overlay = add_manual_edge_to_overlay(
                    overlay, edge.edge_id, self._manual_overlay_entry(edge)
                )
                if edge.canvas_id not in (*delta.created_edge_ids, *delta.updated_edge_ids):
                    delta.updated_edge_ids.append(edge.canvas_id)

        self.overlay = cleanup_overlay(overlay, result.removed_node_ids, removed_edge_ids)
        previous = {staged.node_id: staged for staged in self.staged_nodes}
        self.staged_nodes = stage_nodes(result.staged_nodes, self._clock(), previous)

        logger.debug(
            "Reconciled canvas: +%d/~%d/-%d nodes, +%d/~%d/-%d edges, %d staged",
            len(delta.created_node_ids),
            len(delta.updated_node_ids),
            len(delta.removed_node_ids),
            len(delta.created_edge_ids),
            len(delta.updated_edge_ids),
            len(delta.removed_edge_ids),
            len(self.staged_nodes),
        )
        return delta

    def _upsert_edge(
        self, merged: MergedEdge, start: Point, end: Point
    ) -> tuple[CanvasEdge, bool, bool]:
        canvas_id = self._edge_canvas_ids.get(merged.edge_id)
        edge = self.canvas_edges.get(canvas_id) if canvas_id else None
        values = dict(
            source_id=merged.source_id,
            target_id=merged.target_id,
            waypoints=list(merged.waypoints),
            curve_type=merged.curve_type,
            label=merged.label,
            color=merged.color,
            origin=merged.origin,
            arrow_start=merged.arrow_start,
            arrow_end=merged.arrow_end,
            hidden=merged.hidden,
            raw_points=list(merged.raw_points) if merged.raw_points is not None else None,
            smoothing=merged.smoothing,
        )
        if edge is not None:
            return edge, False, _assign(edge, **values)
        canvas_id = self._id_factory()
        self._edge_canvas_ids[merged.edge_id] = canvas_id
        edge = CanvasEdge(
            canvas_id=canvas_id, edge_id=merged.edge_id, start=start, end=end, **values
        )
        self.canvas_edges[canvas_id] = edge
        return edge, True, False

    # ------------------------------------------------------------ node editing

    def move_node(self, canvas_id: str, x: float, y: float) -> bool:
        node = self.canvas_nodes.get(canvas_id)
        if node is None:
            return False
        self._record()
        node.x, node.y = x, y
        self.overlay = update_node_in_overlay(
            self.overlay, node.node_id, x=x, y=y, w=node.w, h=node.h
        )
        self._reanchor(node.node_id)
        return True

    def resize_node(self, canvas_id: str, x: float, y: float, w: float, h: float) -> bool:
        node = self.canvas_nodes.get(canvas_id)
        if node is None:
            return False
        self._record()
        w = max(w, self.config.min_node_size.width)
        h = max(h, self.config.min_node_size.height)
        _assign(node, x=x, y=y, w=w, h=h)
        self.overlay = update_node_in_overlay(self.overlay, node.node_id, x=x, y=y, w=w, h=h)
        self._reanchor(node.node_id)
        return True

    def set_node_color(self, canvas_id: str, color: str) -> bool:
        node = self.canvas_nodes.get(canvas_id)
        if node is None:
            return False
        if color not in NODE_COLORS:
            logger.debug("Ignoring unknown node color %r", color)
            return False
        self._record()
        node.color = color
        self.overlay = update_node_in_overlay(
            self.overlay, node.node_id, x=node.x, y=node.y, w=node.w, h=node.h, color=color
        )
        return True

    def _reanchor(self, node_id: str) -> List[str]:
        return refresh_connected_edges(node_id, self.canvas_edges.values(), self.nodes_by_node_id())

    # ------------------------------------------------------------ edge editing

    def _manual_overlay_entry(self, edge: CanvasEdge) -> EdgeOverlay:
        return EdgeOverlay(
            waypoints=list(edge.waypoints),
            curve_type=edge.curve_type,
            hidden=edge.hidden,
            origin=ORIGIN_MANUAL,
            source_id=edge.source_id,
            target_id=edge.target_id,
            arrow_start=edge.arrow_start,
            arrow_end=edge.arrow_end,
            raw_points=list(edge.raw_points) if edge.raw_points is not None else None,
            smoothing=edge.smoothing,
            color=edge.color,
        )

    def _write_edge_overlay(self, edge: CanvasEdge) -> None:
        if edge.is_manual:
            self.overlay = add_manual_edge_to_overlay(
                self.overlay, edge.edge_id, self._manual_overlay_entry(edge)
            )
            return
        self.overlay = update_edge_in_overlay(
            self.overlay,
            edge.edge_id,
            waypoints=edge.waypoints,
            curve_type=edge.curve_type,
            arrow_start=edge.arrow_start,
            arrow_end=edge.arrow_end,
            color=edge.color,
            hidden=edge.hidden,
        )

    def move_waypoint(self, canvas_id: str, index: int, point: Point) -> bool:
        edge = self.canvas_edges.get(canvas_id)
        if edge is None or not 0 <= index < len(edge.waypoints):
            return False
        self._record()
        waypoints = list(edge.waypoints)
        waypoints[index] = point
        edge.waypoints = waypoints
        endpoints = compute_edge_endpoints(edge, self.nodes_by_node_id())
        if endpoints is not None:
            edge.start, edge.end = endpoints
        self._write_edge_overlay(edge)
        return True

    def move_edge_endpoint(
        self, canvas_id: str, which: str, point: Point, zoom: float = 1.0
    ) -> bool:
        """Drag one end of a manual edge; it attaches to a shape under the pointer or detaches."""
        edge = self.canvas_edges.get(canvas_id)
        if edge is None or not edge.is_manual or which not in {"start", "end"}:
            return False
        self._record()
        node = self.find_nearest_node(point, self.config.snap_threshold / zoom)
        node_id = node.node_id if node is not None else ""
        if which == "start":
            edge.source_id = node_id
            edge.start = point
        else:
            edge.target_id = node_id
            edge.end = point
        endpoints = compute_edge_endpoints(edge, self.nodes_by_node_id())
        if endpoints is not None:
            edge.start, edge.end = endpoints
        self._write_edge_overlay(edge)
        return True

    def set_curve_type(self, canvas_id: str, curve_type: str) -> bool:
        edge = self.canvas_edges.get(canvas_id)
        if edge is None:
            return False
        if curve_type not in CURVE_TYPES:
            msg = f"Unknown curve type: {curve_type}"
            raise ValueError(msg)
        self._record()
        edge.curve_type = curve_type
        self._write_edge_overlay(edge)
        return True

    def set_edge_arrows(self, canvas_id: str, config: str) -> bool:
        edge = self.canvas_edges.get(canvas_id)
        if edge is None:
            return False
        arrow_start, arrow_end = arrow_heads_for_config(config)
        self._record()
        edge.arrow_start, edge.arrow_end = arrow_start, arrow_end
        self._write_edge_overlay(edge)
        return True

    def set_edge_color(self, canvas_id: str, color: str) -> bool:
        edge = self.canvas_edges.get(canvas_id)
        if edge is None:
            return False
        self._record()
        edge.color = color
        self._write_edge_overlay(edge)
        return True

    def set_edge_smoothing(self, canvas_id: str, level: float) -> bool:
        edge = self.canvas_edges.get(canvas_id)
        if edge is None or not edge.raw_points:
            return False
        self._record()
        level = max(0.0, min(1.0, level))
        edge.smoothing = level
        edge.waypoints = smooth_freehand_points(edge.raw_points, level)
        self._write_edge_overlay(edge)
        return True

    # --------------------------------------------------------- freehand stroke

    @property
    def is_drawing(self) -> bool:
        return self._stroke is not None

    def begin_stroke(self, point: Point) -> None:
        self._stroke = [point]

    def extend_stroke(self, point: Point) -> Optional[List[Point]]:
        if self._stroke is None:
            return None
        if len(self._stroke) < self.config.max_stroke_points:
            self._stroke.append(point)
        return self._stroke

    def cancel_stroke(self) -> None:
        self._stroke = None

    def end_stroke(self, zoom: float = 1.0) -> Optional[CanvasEdge]:
        if self._stroke is None:
            return None
        raw_points, self._stroke = self._stroke, None
        if len(raw_points) < 2:
            return None

        self._record()
        snap = self.config.snap_threshold / zoom
        first, last = raw_points[0], raw_points[-1]
        source = self.find_nearest_node(first, snap)
        target = self.find_nearest_node(last, snap)
        smoothing = self.config.default_smoothing
        edge = CanvasEdge(
            canvas_id=self._id_factory(),
            edge_id=f"{FREEHAND_EDGE_PREFIX}{self._id_factory()}",
            source_id=source.node_id if source is not None else "",
            target_id=target.node_id if target is not None else "",
            start=first,
            end=last,
            waypoints=smooth_freehand_points(raw_points, smoothing),
            curve_type="freehand",
            color=self.config.default_edge_color,
            origin=ORIGIN_MANUAL,
            arrow_start=ARROW_NONE,
            arrow_end=ARROW_HEAD,
            raw_points=list(raw_points),
            smoothing=smoothing,
        )
        endpoints = compute_edge_endpoints(edge, self.nodes_by_node_id())
        if endpoints is not None:
            edge.start, edge.end = endpoints
        self.canvas_edges[edge.canvas_id] = edge
        self._edge_canvas_ids[edge.edge_id] = edge.canvas_id
        self._write_edge_overlay(edge)
        self.selected_node_ids.clear()
        self.selected_edge_ids = {edge.canvas_id}
        return edge

    def find_nearest_node(self, point: Point, max_dist: float) -> Optional[CanvasNode]:
        """Pick the shape whose box, grown by ``max_dist``, contains ``point``.

        Candidates are ranked by centre distance minus half their larger side,
        so the candidate with the closest outline wins.
        """
        nearest: Optional[CanvasNode] = None
        best_score = math.inf
        for node in self.canvas_nodes.values():
            inside = (
                node.x - max_dist <= point.x <= node.x + node.w + max_dist
                and node.y - max_dist <= point.y <= node.y + node.h + max_dist
            )
            if not inside:
                continue
            center = node.center
            score = math.hypot(point.x - center.x, point.y - center.y) - max(node.w, node.h) / 2
            if score < best_score:
                nearest = node
                best_score = score
        return nearest

    # --------------------------------------------------------------- selection

    def select_node(self, canvas_id: str, additive: bool = False) -> None:
        if canvas_id not in self.canvas_nodes:
            return
        if not additive:
            self.selected_node_ids.clear()
            self.selected_edge_ids.clear()
        self.selected_node_ids.add(canvas_id)

    def select_edge(self, canvas_id: str, additive: bool = False) -> None:
        if canvas_id not in self.canvas_edges:
            return
        if not additive:
            self.selected_node_ids.clear()
            self.selected_edge_ids.clear()
        self.selected_edge_ids.add(canvas_id)

    def deselect_all(self) -> None:
        self.selected_node_ids.clear()
        self.selected_edge_ids.clear()

    def delete_selection(self) -> bool:
        """Delete selected shapes and edges.

        Manual edges attached to a deleted shape are detached. Structural
        edges are never deleted here: those touching a deleted shape leave
        the canvas until the next reconciliation and selected ones are hidden.
        """
        nodes = [
            self.canvas_nodes[cid] for cid in self.selected_node_ids if cid in self.canvas_nodes
        ]
        edges = [
            self.canvas_edges[cid] for cid in self.selected_edge_ids if cid in self.canvas_edges
        ]
        if not nodes and not edges:
            return False

        self._record()
        deleted_node_ids = {node.node_id for node in nodes}
        for node in nodes:
            del self.canvas_nodes[node.canvas_id]
            self._node_canvas_ids.pop(node.node_id, None)
            self.overlay = remove_node_from_overlay(self.overlay, node.node_id)

        for edge in list(self.canvas_edges.values()):
            touches = edge.source_id in deleted_node_ids or edge.target_id in deleted_node_ids
            if not touches:
                continue
            if edge.is_manual:
                if edge.source_id in deleted_node_ids:
                    edge.source_id = ""
                if edge.target_id in deleted_node_ids:
                    edge.target_id = ""
                self._write_edge_overlay(edge)
            else:
                del self.canvas_edges[edge.canvas_id]
                self._edge_canvas_ids.pop(edge.edge_id, None)

        for edge in edges:
            if edge.canvas_id not in self.canvas_edges:
                continue
            if edge.is_manual:
                del self.canvas_edges[edge.canvas_id]
                self._edge_canvas_ids.pop(edge.edge_id, None)
                self.overlay = remove_manual_edge_from_overlay(self.overlay, edge.edge_id)
            else:
                edge.hidden = True
                self.overlay = hide_edge_in_overlay(self.overlay, edge.edge_id)

        self.deselect_all()
        return True

    # ----------------------------------------------------------------- staging

    def place_staged_node(self, node_id: str, x: float, y: float) -> Optional[CanvasNode]:
        staged = next((item for item in self.staged_nodes if item.node_id == node_id), None)
        if staged is None:
            return None
        self._record()
        size = self.config.default_node_size
        canvas_id = self._id_factory()
        node = CanvasNode(
            canvas_id=canvas_id,
            node_id=node_id,
            shape_kind=staged.shape_kind,
            x=x,
            y=y,
            w=size.width,
            h=size.height,
            label=staged.label,
            color=self.config.default_node_color,
        )
        self.canvas_nodes[canvas_id] = node
        self._node_canvas_ids[node_id] = canvas_id
        self.overlay = update_node_in_overlay(
            self.overlay, node_id, x=x, y=y, w=size.width, h=size.height
        )
        self.staged_nodes = [item for item in self.staged_nodes if item.node_id != node_id]
        self._reanchor(node_id)
        return node

    def place_all_staged_nodes(self) -> List[CanvasNode]:
        if not self.staged_nodes:
            return []
        bottom = max((node.y + node.h for node in self.canvas_nodes.values()), default=0.0)
        origin = Point(self.config.place_all_origin_x, bottom + self.config.place_all_offset_y)
        positions = calculate_placement_positions(
            len(self.staged_nodes),
            origin,
            columns=self.config.staging_columns,
            node_size=self.config.default_node_size,
            gap=self.config.staging_gap,
        )
        placed: List[CanvasNode] = []
        for staged, position in zip(list(self.staged_nodes), positions):
            node = self.place_staged_node(staged.node_id, position.x, position.y)
            if node is not None:
                placed.append(node)
        return placed

    # ----------------------------------------------------------------- history

    def restore(self, snapshot: HistorySnapshot) -> None:
        self.overlay = snapshot.overlay
        self.canvas_nodes = dict(snapshot.canvas_nodes)
        self.canvas_edges = dict(snapshot.canvas_edges)
        self._node_canvas_ids = {node.node_id: cid for cid, node in self.canvas_nodes.items()}
        self._edge_canvas_ids = {edge.edge_id: cid for cid, edge in self.canvas_edges.items()}
        self.selected_node_ids &= set(self.canvas_nodes)
        self.selected_edge_ids &= set(self.canvas_edges)

    def undo(self) -> bool:
        snapshot = self.history.undo(self.snapshot())
        if snapshot is None:
            return False
        self.restore(snapshot)
        return True

    def redo(self) -> bool:
        snapshot = self.history.redo(self.snapshot())
        if snapshot is None:
            return False
        self.restore(snapshot)
        return True

    # ------------------------------------------------------- text collaborators

    def open_editor(self, canvas_id: str) -> bool:
        node = self.canvas_nodes.get(canvas_id)
        if node is None or self.editor is None:
            return False
        self.editor.start_editing(node.node_id)
        return True

    def _require_patcher(self) -> TextPatcher:
        if self.text_patcher is None:
            msg = "No text patcher configured for this session"
            raise RuntimeError(msg)
        return self.text_patcher

    def commit_label(self, text: str, canvas_id: str, label: str) -> str:
        """Write an edited label back into the diagram text.

        The canvas label is not touched; it arrives with the next parse.
        """
        node = self.canvas_nodes.get(canvas_id)
        if node is None:
            return text
        return self._require_patcher().patch_label(text, node.node_id, label)

    def promote_manual_edge(self, text: str, canvas_id: str) -> str:
        edge = self.canvas_edges.get(canvas_id)
        if edge is None or not edge.is_manual or not edge.source_id or not edge.target_id:
            return text
        patched = self._require_patcher().add_edge(text, edge.source_id, edge.target_id)
        if patched == text:
            return text
        self._record()
        del self.canvas_edges[canvas_id]
        self._edge_canvas_ids.pop(edge.edge_id, None)
        self.selected_edge_ids.discard(canvas_id)
        self.overlay = remove_manual_edge_from_overlay(self.overlay, edge.edge_id)
        return patched

    def remove_structural_edge(self, text: str, canvas_id: str) -> str:
        edge = self.canvas_edges.get(canvas_id)
        if edge is None or edge.is_manual:
            return text
        return self._require_patcher().remove_edge(text, edge.source_id, edge.target_id)
