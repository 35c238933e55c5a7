from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, List, Optional

import orjson
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from adapters.filesystem.json_utils import dump_json_bytes, load_json, load_json_value
from adapters.layout.static import StaticLayoutEngine
from app.config import load_settings
from app.wiring import (
    build_graph_repository,
    build_overlay_repository,
    build_session,
    build_sync_engine,
)
from domain.models import (
    CURVE_TYPES,
    SHAPE_KINDS,
    CanvasNode,
    DiagramGraph,
    DiagramOverlay,
    Point,
)
from domain.services.connector_paths import build_path
from domain.services.freehand_smoothing import smooth_freehand_points
from domain.services.shape_geometry import anchor_point, format_number

app = typer.Typer(no_args_is_help=True)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _parse_points(payload: Any) -> List[Point]:
    if not isinstance(payload, list):
        msg = "Expected a JSON list of points"
        raise ValueError(msg)
    points: List[Point] = []
    for item in payload:
        if isinstance(item, dict):
            points.append(Point(float(item["x"]), float(item["y"])))
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            points.append(Point(float(item[0]), float(item[1])))
        else:
            msg = f"Unsupported point: {item!r}"
            raise ValueError(msg)
    return points


def _format_point(point: Point) -> str:
    return f"{format_number(point.x)},{format_number(point.y)}"


@app.command("reconcile")
def reconcile(
    graph_path: Path = typer.Argument(..., help="Parsed graph JSON file."),
    overlay_path: Optional[Path] = typer.Option(
        None, "--overlay", help="Overlay JSON file with user placements.",
    ),
    layout_path: Optional[Path] = typer.Option(
        None, "--layout", help="Precomputed layout JSON; defaults to the grid layout.",
    ),
    output_path: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the reconciled overlay to this file.",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML settings file."),
) -> None:
    for path in (graph_path, overlay_path, layout_path):
        if path is not None and not path.exists():
            console.print(f"[red]File not found:[/] {path}")
            raise typer.Exit(code=1)

    settings = load_settings(config_path)
    try:
        graph = build_graph_repository().load(graph_path)
        overlay = build_overlay_repository().load(overlay_path) if overlay_path else None
        layout_engine = StaticLayoutEngine.from_file(layout_path) if layout_path else None
    except (ValidationError, orjson.JSONDecodeError) as exc:
        console.print(f"[red]Validation failed:[/] {exc}")
        raise typer.Exit(code=1) from exc
    session = build_session(settings, overlay=overlay)
    engine = build_sync_engine(settings, session, layout_engine=layout_engine)
    asyncio.run(engine.submit_graph(graph))

    nodes_table = Table(title="Nodes")
    for column in ("node", "shape", "x", "y", "w", "h", "color"):
        nodes_table.add_column(column)
    for node in sorted(session.canvas_nodes.values(), key=lambda item: item.node_id):
        nodes_table.add_row(
            node.node_id,
            node.shape_kind,
            format_number(node.x),
            format_number(node.y),
            format_number(node.w),
            format_number(node.h),
            node.color,
        )
    console.print(nodes_table)

    edges_table = Table(title="Edges")
    for column in ("edge", "origin", "curve", "start", "end", "waypoints"):
        edges_table.add_column(column)
    for edge in sorted(session.canvas_edges.values(), key=lambda item: item.edge_id):
        edges_table.add_row(
            edge.edge_id,
            edge.origin,
            edge.curve_type,
            _format_point(edge.start),
            _format_point(edge.end),
            str(len(edge.waypoints)),
        )
    console.print(edges_table)

    if session.staged_nodes:
        staged = ", ".join(item.node_id for item in session.staged_nodes)
        console.print(f"[yellow]Staged:[/] {staged}")

    if output_path is not None:
        build_overlay_repository().save(session.overlay, output_path)
        console.print(f"[green]Wrote[/] {output_path}")


@app.command("anchor")
def anchor(
    shape_kind: str = typer.Argument(..., help=f"One of: {', '.join(SHAPE_KINDS)}."),
    x: float = typer.Option(0.0, help="Shape left edge."),
    y: float = typer.Option(0.0, help="Shape top edge."),
    w: float = typer.Option(160.0, help="Shape width."),
    h: float = typer.Option(70.0, help="Shape height."),
    toward_x: float = typer.Option(..., "--toward-x", help="Target point X."),
    toward_y: float = typer.Option(..., "--toward-y", help="Target point Y."),
) -> None:
    if shape_kind not in SHAPE_KINDS:
        console.print(f"[red]Unknown shape kind:[/] {shape_kind}")
        raise typer.Exit(code=1)
    shape = CanvasNode(canvas_id="cli", node_id="cli", shape_kind=shape_kind, x=x, y=y, w=w, h=h)
    point = anchor_point(shape, Point(toward_x, toward_y))
    console.print(_format_point(point), soft_wrap=True)


@app.command("smooth")
def smooth(
    points_path: Path = typer.Argument(..., help="JSON list of [x, y] pairs or {x, y} objects."),
    level: float = typer.Option(0.5, min=0.0, max=1.0, help="Smoothing level."),
    curve_type: Optional[str] = typer.Option(
        None, "--path", help="Also print the SVG path for this curve type.",
    ),
) -> None:
    if not points_path.exists():
        console.print(f"[red]File not found:[/] {points_path}")
        raise typer.Exit(code=1)
    if curve_type is not None and curve_type not in CURVE_TYPES:
        console.print(f"[red]Unknown curve type:[/] {curve_type}")
        raise typer.Exit(code=1)
    try:
        points = _parse_points(load_json_value(points_path))
    except (ValueError, KeyError, orjson.JSONDecodeError) as exc:
        console.print(f"[red]Invalid points file:[/] {exc}")
        raise typer.Exit(code=1) from exc

    smoothed = smooth_freehand_points(points, level)
    payload = [[point.x, point.y] for point in smoothed]
    console.print(dump_json_bytes(payload).decode("utf-8"), highlight=False, soft_wrap=True)
    if curve_type is not None:
        console.print(build_path(smoothed, curve_type), highlight=False, soft_wrap=True)


@app.command("validate")
def validate(
    input_path: Path = typer.Argument(..., help="Graph or overlay file to validate."),
) -> None:
    if not input_path.exists():
        console.print(f"[red]File not found:[/] {input_path}")
        raise typer.Exit(code=1)

    try:
        data = load_json(input_path)
        if "version" in data or isinstance(data.get("nodes"), dict):
            DiagramOverlay.model_validate(data)
            console.print(f"[green]Valid overlay file:[/] {input_path}")
        else:
            DiagramGraph.model_validate(data)
            console.print(f"[green]Valid graph file:[/] {input_path}")
    except (ValidationError, orjson.JSONDecodeError) as exc:
        console.print(f"[red]Validation failed:[/] {exc}")
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()
