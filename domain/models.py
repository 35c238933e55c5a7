from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Set

from pydantic import BaseModel, Field, field_validator

OVERLAY_SCHEMA_VERSION = 1

ShapeKind = Literal["box", "rounded_rect", "stadium", "diamond", "cylinder", "circle"]
CurveType = Literal["straight", "bezier", "orthogonal", "freehand"]
EdgeOrigin = Literal["mermaid", "manual"]
ArrowHead = Literal["none", "arrow"]
Direction = Literal["TD", "TB", "LR", "RL", "BT"]

SHAPE_KINDS: tuple[str, ...] = ("box", "rounded_rect", "stadium", "diamond", "cylinder", "circle")
CURVE_TYPES: tuple[str, ...] = ("straight", "bezier", "orthogonal", "freehand")

# Parser shape names (and a few spelling variants) to canvas shape kinds.
PARSER_SHAPE_TO_KIND: Dict[str, str] = {
    "box": "box",
    "square": "box",
    "rect": "box",
    "round": "rounded_rect",
    "rounded_rect": "rounded_rect",
    "rounded-rect": "rounded_rect",
    "stadium": "stadium",
    "diamond": "diamond",
    "cylinder": "cylinder",
    "circle": "circle",
    "doublecircle": "circle",
}

ORIGIN_STRUCTURAL = "mermaid"
ORIGIN_MANUAL = "manual"
ARROW_NONE = "none"
ARROW_HEAD = "arrow"

DEFAULT_NODE_COLOR = "blue"
DEFAULT_EDGE_COLOR = "#374151"
DEFAULT_CURVE_TYPE = "bezier"
LAYOUT_CURVE_TYPE = "orthogonal"

NODE_COLORS: Dict[str, Dict[str, str]] = {
    "blue": {"fill": "#dbeafe", "stroke": "#2563eb", "text": "#1e40af"},
    "green": {"fill": "#dcfce7", "stroke": "#16a34a", "text": "#166534"},
    "red": {"fill": "#fecaca", "stroke": "#dc2626", "text": "#991b1b"},
    "yellow": {"fill": "#fef9c3", "stroke": "#ca8a04", "text": "#854d0e"},
    "purple": {"fill": "#f3e8ff", "stroke": "#9333ea", "text": "#6b21a8"},
    "orange": {"fill": "#ffedd5", "stroke": "#ea580c", "text": "#9a3412"},
    "gray": {"fill": "#f3f4f6", "stroke": "#6b7280", "text": "#374151"},
    "white": {"fill": "#ffffff", "stroke": "#374151", "text": "#111827"},
}


def normalize_shape_kind(value: object) -> str:
    raw = str(value or "").strip().lower()
    return PARSER_SHAPE_TO_KIND.get(raw, "box")


def compose_edge_id(source_id: str, target_id: str, ordinal: int = 0) -> str:
    base = f"{source_id}->{target_id}"
    return f"{base}#{ordinal}" if ordinal > 0 else base


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


DEFAULT_NODE_SIZE = Size(160, 70)
MIN_NODE_SIZE = Size(60, 40)


class GraphNode(BaseModel):
    id: str = Field(..., min_length=1)
    label: str = ""
    shape_kind: ShapeKind = "box"

    @field_validator("shape_kind", mode="before")
    @classmethod
    def normalize_shape(cls, value: object) -> str:
        return normalize_shape_kind(value)


class GraphEdge(BaseModel):
    id: str = ""
    source_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1)
    label: str = ""


class GraphSubgraph(BaseModel):
    id: str = Field(..., min_length=1)
    label: str = ""
    node_ids: List[str] = Field(default_factory=list)


class DiagramGraph(BaseModel):
    direction: Direction = "TD"
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)
    subgraphs: List[GraphSubgraph] = Field(default_factory=list)

    @field_validator("nodes", mode="after")
    @classmethod
    def ensure_unique_node_ids(cls, nodes: List[GraphNode]) -> List[GraphNode]:
        seen: Set[str] = set()
        for node in nodes:
            if node.id in seen:
                msg = f"Duplicate node id found: {node.id}"
                raise ValueError(msg)
            seen.add(node.id)
        return nodes

    @field_validator("edges", mode="after")
    @classmethod
    def assign_edge_ids(cls, edges: List[GraphEdge]) -> List[GraphEdge]:
        counts: Dict[str, int] = {}
        seen: Set[str] = set()
        resolved: List[GraphEdge] = []
        for edge in edges:
            edge_id = edge.id
            if not edge_id:
                base = compose_edge_id(edge.source_id, edge.target_id)
                ordinal = counts.get(base, 0)
                counts[base] = ordinal + 1
                edge_id = compose_edge_id(edge.source_id, edge.target_id, ordinal)
                edge = edge.model_copy(update={"id": edge_id})
            if edge_id in seen:
                msg = f"Duplicate edge id found: {edge_id}"
                raise ValueError(msg)
            seen.add(edge_id)
            resolved.append(edge)
        return resolved

    def node_ids(self) -> Set[str]:
        return {node.id for node in self.nodes}

    def edge_ids(self) -> Set[str]:
        return {edge.id for edge in self.edges}


class LayoutNode(BaseModel):
    id: str
    x: float
    y: float
    width: float
    height: float


class LayoutEdge(BaseModel):
    id: str
    source_id: str = ""
    target_id: str = ""
    bend_points: List[Point] = Field(default_factory=list)


class LayoutResult(BaseModel):
    nodes: List[LayoutNode] = Field(default_factory=list)
    edges: List[LayoutEdge] = Field(default_factory=list)
    width: float = 0.0
    height: float = 0.0

    def node_map(self) -> Dict[str, LayoutNode]:
        return {node.id: node for node in self.nodes}

    def edge_map(self) -> Dict[str, LayoutEdge]:
        return {edge.id: edge for edge in self.edges}


class NodeOverlay(BaseModel):
    x: float = 0.0
    y: float = 0.0
    w: float = DEFAULT_NODE_SIZE.width
    h: float = DEFAULT_NODE_SIZE.height
    color: Optional[str] = None


class EdgeOverlay(BaseModel):
    waypoints: List[Point] = Field(default_factory=list)
    curve_type: CurveType = "bezier"
    hidden: bool = False
    origin: Optional[EdgeOrigin] = None
    source_id: Optional[str] = None
    target_id: Optional[str] = None
    arrow_start: Optional[ArrowHead] = None
    arrow_end: Optional[ArrowHead] = None
    raw_points: Optional[List[Point]] = None
    smoothing: Optional[float] = None
    color: Optional[str] = None

    @property
    def is_manual(self) -> bool:
        return self.origin == ORIGIN_MANUAL


class DiagramOverlay(BaseModel):
    version: Literal[1] = OVERLAY_SCHEMA_VERSION
    nodes: Dict[str, NodeOverlay] = Field(default_factory=dict)
    edges: Dict[str, EdgeOverlay] = Field(default_factory=dict)


@dataclass
class CanvasNode:
    canvas_id: str
    node_id: str
    shape_kind: str
    x: float
    y: float
    w: float
    h: float
    label: str = ""
    color: str = DEFAULT_NODE_COLOR

    @property
    def center(self) -> Point:
        return Point(self.x + self.w / 2, self.y + self.h / 2)


@dataclass
class CanvasEdge:
    canvas_id: str
    edge_id: str
    source_id: str
    target_id: str
    start: Point
    end: Point
    waypoints: List[Point] = field(default_factory=list)
    curve_type: str = DEFAULT_CURVE_TYPE
    label: str = ""
    color: str = DEFAULT_EDGE_COLOR
    origin: str = ORIGIN_STRUCTURAL
    arrow_start: str = ARROW_NONE
    arrow_end: str = ARROW_HEAD
    raw_points: Optional[List[Point]] = None
    smoothing: Optional[float] = None
    hidden: bool = False

    @property
    def is_manual(self) -> bool:
        return self.origin == ORIGIN_MANUAL

    def path_points(self) -> List[Point]:
        return [self.start, *self.waypoints, self.end]


@dataclass(frozen=True)
class MergedNode:
    node_id: str
    label: str
    shape_kind: str
    x: float
    y: float
    w: float
    h: float
    color: str = DEFAULT_NODE_COLOR


@dataclass(frozen=True)
class MergedEdge:
    edge_id: str
    source_id: str
    target_id: str
    label: str
    waypoints: List[Point]
    curve_type: str
    origin: str = ORIGIN_STRUCTURAL
    arrow_start: str = ARROW_NONE
    arrow_end: str = ARROW_HEAD
    color: str = DEFAULT_EDGE_COLOR
    hidden: bool = False
    raw_points: Optional[List[Point]] = None
    smoothing: Optional[float] = None


@dataclass(frozen=True)
class MergeResult:
    positioned_nodes: List[MergedNode]
    staged_nodes: List[GraphNode]
    edges: List[MergedEdge]
    removed_node_ids: List[str]
    removed_edge_ids: List[str]
    manual_edges: List[MergedEdge] = field(default_factory=list)


@dataclass(frozen=True)
class StagedNode:
    node_id: str
    label: str
    shape_kind: str
    staged_at: float


@dataclass
class HistorySnapshot:
    overlay: DiagramOverlay
    canvas_nodes: Dict[str, CanvasNode]
    canvas_edges: Dict[str, CanvasEdge]
