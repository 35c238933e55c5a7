from __future__ import annotations

from pathlib import Path

from adapters.filesystem.json_utils import load_json
from domain.models import DiagramGraph, LayoutResult
from domain.ports.layout import LayoutEngine


class StaticLayoutEngine(LayoutEngine):
    """Serves a precomputed layout, e.g. one exported from an external layout service."""

    def __init__(self, result: LayoutResult) -> None:
        self.result = result

    @classmethod
    def from_file(cls, path: Path) -> StaticLayoutEngine:
        return cls(LayoutResult.model_validate(load_json(path)))

    async def layout(self, graph: DiagramGraph) -> LayoutResult:
        return self.result
