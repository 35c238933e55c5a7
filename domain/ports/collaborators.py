from __future__ import annotations

from typing import Protocol

from domain.models import DiagramGraph


class GraphParser(Protocol):
    """Turns diagram source text into a graph; returns None when the text does not parse."""

    def parse(self, text: str) -> DiagramGraph | None: ...


class TextPatcher(Protocol):
    def patch_label(self, text: str, node_id: str, label: str) -> str: ...

    def add_edge(self, text: str, source_id: str, target_id: str) -> str: ...

    def remove_edge(self, text: str, source_id: str, target_id: str) -> str: ...


class EditorController(Protocol):
    def start_editing(self, node_id: str) -> None: ...
