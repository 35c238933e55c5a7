from __future__ import annotations

from pathlib import Path
from typing import Protocol

from domain.models import DiagramGraph, DiagramOverlay


class GraphRepository(Protocol):
    def load(self, path: Path) -> DiagramGraph: ...


class OverlayRepository(Protocol):
    def load(self, path: Path) -> DiagramOverlay: ...

    def save(self, overlay: DiagramOverlay, path: Path) -> None: ...
