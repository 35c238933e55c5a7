from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import List

from domain.models import DEFAULT_NODE_SIZE, GraphNode, Point, Size, StagedNode

STAGING_GAP = 30.0
STAGING_COLUMNS = 3


def stage_nodes(
    nodes: Iterable[GraphNode],
    now: float,
    previous: Mapping[str, StagedNode] | None = None,
) -> List[StagedNode]:
    """Wrap unplaced graph nodes for the staging tray.

    Nodes that were already staged keep their original ``staged_at`` so the
    tray order stays stable across reconciliation passes.
    """
    previous = previous or {}
    staged: List[StagedNode] = []
    for node in nodes:
        earlier = previous.get(node.id)
        staged.append(
            StagedNode(
                node_id=node.id,
                label=node.label,
                shape_kind=node.shape_kind,
                staged_at=earlier.staged_at if earlier is not None else now,
            )
        )
    return staged


def calculate_placement_positions(
    count: int,
    origin: Point,
    columns: int = STAGING_COLUMNS,
    node_size: Size = DEFAULT_NODE_SIZE,
    gap: float = STAGING_GAP,
) -> List[Point]:
    columns = max(columns, 1)
    gap_x = node_size.width + gap
    gap_y = node_size.height + gap
    return [
        Point(origin.x + (idx % columns) * gap_x, origin.y + (idx // columns) * gap_y)
        for idx in range(count)
    ]
