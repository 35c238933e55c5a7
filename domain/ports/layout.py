from __future__ import annotations

from typing import Protocol

from domain.models import DiagramGraph, LayoutResult


class LayoutEngine(Protocol):
    async def layout(self, graph: DiagramGraph) -> LayoutResult:
        ...
