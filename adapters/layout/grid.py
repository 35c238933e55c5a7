from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from domain.models import (
    DEFAULT_NODE_SIZE,
    DiagramGraph,
    LayoutEdge,
    LayoutNode,
    LayoutResult,
    Point,
    Size,
)
from domain.ports.layout import LayoutEngine


@dataclass(frozen=True)
class LayoutConfig:
    node_size: Size = DEFAULT_NODE_SIZE
    padding: float = 40.0
    gap_main: float = 80.0
    gap_cross: float = 50.0


class GridLayoutEngine(LayoutEngine):
    """Layered layout: topological levels along the flow direction, rows across it."""

    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config or LayoutConfig()

    async def layout(self, graph: DiagramGraph) -> LayoutResult:
        return self.build_plan(graph)

    def build_plan(self, graph: DiagramGraph) -> LayoutResult:
        if not graph.nodes:
            return LayoutResult()

        levels, max_level, order, rows = self._compute_levels(graph)
        level_rows: Dict[int, int] = {}
        for node_id in order:
            level = levels[node_id]
            level_rows[level] = max(level_rows.get(level, 0), rows[node_id] + 1)
        max_rows = max(level_rows.values() or [1])

        size = self.config.node_size
        horizontal = graph.direction in {"LR", "RL"}
        reverse = graph.direction in {"RL", "BT"}
        main_extent = size.width if horizontal else size.height
        cross_extent = size.height if horizontal else size.width

        nodes: List[LayoutNode] = []
        boxes: Dict[str, LayoutNode] = {}
        for node_id in order:
            level = max_level - levels[node_id] if reverse else levels[node_id]
            # Center short levels against the widest one.
            row_offset = (max_rows - level_rows[levels[node_id]]) / 2
            main = self.config.padding + level * (main_extent + self.config.gap_main)
            cross = self.config.padding + (rows[node_id] + row_offset) * (
                cross_extent + self.config.gap_cross
            )
            x, y = (main, cross) if horizontal else (cross, main)
            placed = LayoutNode(id=node_id, x=x, y=y, width=size.width, height=size.height)
            nodes.append(placed)
            boxes[node_id] = placed

        edges = [
            LayoutEdge(
                id=edge.id,
                source_id=edge.source_id,
                target_id=edge.target_id,
                bend_points=self._route(
                    boxes[edge.source_id], boxes[edge.target_id], graph.direction
                ),
            )
            for edge in graph.edges
            if edge.source_id in boxes and edge.target_id in boxes
        ]

        width = max(node.x + node.width for node in nodes) + self.config.padding
        height = max(node.y + node.height for node in nodes) + self.config.padding
        return LayoutResult(nodes=nodes, edges=edges, width=width, height=height)

    def _route(self, source: LayoutNode, target: LayoutNode, direction: str) -> List[Point]:
        if source.id == target.id:
            return []
        if direction in {"LR", "RL"}:
            forward = (target.x >= source.x) == (direction == "LR")
            sx = source.x + source.width if direction == "LR" else source.x
            tx = target.x if direction == "LR" else target.x + target.width
            if not forward:
                sx, tx = source.x + source.width / 2, target.x + target.width / 2
            start = Point(sx, source.y + source.height / 2)
            end = Point(tx, target.y + target.height / 2)
            if start.y == end.y:
                return [start, end]
            mid_x = (start.x + end.x) / 2
            return [start, Point(mid_x, start.y), Point(mid_x, end.y), end]

        forward = (target.y >= source.y) == (direction != "BT")
        sy = source.y + source.height if direction != "BT" else source.y
        ty = target.y if direction != "BT" else target.y + target.height
        if not forward:
            sy, ty = source.y + source.height / 2, target.y + target.height / 2
        start = Point(source.x + source.width / 2, sy)
        end = Point(target.x + target.width / 2, ty)
        if start.x == end.x:
            return [start, end]
        mid_y = (start.y + end.y) / 2
        return [start, Point(start.x, mid_y), Point(end.x, mid_y), end]

    def _compute_levels(
        self, graph: DiagramGraph
    ) -> Tuple[Dict[str, int], int, List[str], Dict[str, int]]:
        node_index = {node.id: idx for idx, node in enumerate(graph.nodes)}
        indegree: Dict[str, int] = {node_id: 0 for node_id in node_index}
        adj: Dict[str, List[str]] = {node_id: [] for node_id in node_index}
        for edge in graph.edges:
            if edge.source_id not in node_index or edge.target_id not in node_index:
                continue
            if edge.source_id == edge.target_id:
                continue
            adj[edge.source_id].append(edge.target_id)
            indegree[edge.target_id] += 1

        def sort_key(node_id: str, levels: Dict[str, int] | None = None) -> Tuple[int, int]:
            level = 0 if levels is None else levels.get(node_id, 0)
            return (level, node_index[node_id])

        remaining = dict(indegree)
        levels: Dict[str, int] = {}
        order: List[str] = []
        visited: set[str] = set()
        queue = sorted((n for n in node_index if remaining[n] == 0), key=sort_key)
        while len(visited) < len(node_index):
            if not queue:
                # Cycle: release the earliest declared node that is still blocked.
                blocked = min((n for n in node_index if n not in visited), key=node_index.get)
                queue.append(blocked)
            node = queue.pop(0)
            if node in visited:
                continue
            visited.add(node)
            level = levels.setdefault(node, 0)
            order.append(node)
            for neighbor in adj[node]:
                if neighbor in visited:
                    continue
                levels[neighbor] = max(levels.get(neighbor, 0), level + 1)
                remaining[neighbor] -= 1
                if remaining[neighbor] == 0:
                    queue.append(neighbor)
                    queue.sort(key=lambda n: sort_key(n, levels))

        max_level = max(levels.values() or [0])

        # Order each level by the mean row of its parents to reduce crossings.
        parents: Dict[str, List[str]] = {node_id: [] for node_id in node_index}
        for source, targets in adj.items():
            for target in targets:
                parents[target].append(source)

        level_buckets: Dict[int, List[str]] = {lvl: [] for lvl in range(max_level + 1)}
        for node_id in order:
            level_buckets[levels[node_id]].append(node_id)

        rows: Dict[str, int] = {}
        for lvl in range(max_level + 1):
            bucket = level_buckets[lvl]

            def anchor_parent(node_id: str) -> float:
                placed = [rows[p] for p in parents[node_id] if p in rows]
                if placed:
                    return sum(placed) / len(placed)
                return float("inf")

            bucket.sort(key=lambda n: (anchor_parent(n), node_index[n]))
            for idx, node_id in enumerate(bucket):
                rows[node_id] = idx

        ordered: List[str] = []
        for lvl in range(max_level + 1):
            ordered.extend(level_buckets[lvl])
        return levels, max_level, ordered, rows
