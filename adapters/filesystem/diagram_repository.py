from __future__ import annotations

from pathlib import Path
from typing import List

import orjson
from filelock import FileLock

from adapters.filesystem.json_utils import load_json, write_json_atomic
from domain.models import DiagramGraph, DiagramOverlay
from domain.ports.repositories import GraphRepository, OverlayRepository
from domain.services.overlay_updates import create_empty_overlay


class FileSystemGraphRepository(GraphRepository):
    """Reads parsed graphs stored as JSON; ``//`` line comments are allowed."""

    def load(self, path: Path) -> DiagramGraph:
        text = path.read_text(encoding="utf-8")
        content = orjson.loads(self._strip_comments(text))
        return DiagramGraph.model_validate(content)

    def _strip_comments(self, content: str) -> str:
        result_lines: List[str] = []
        for line in content.splitlines():
            in_string = False
            escaped = False
            cleaned = []
            for idx, char in enumerate(line):
                if not escaped and char == '"':
                    in_string = not in_string
                if not in_string and char == "/" and idx + 1 < len(line) and line[idx + 1] == "/":
                    break
                cleaned.append(char)
                escaped = char == "\\" and not escaped
            result_lines.append("".join(cleaned))
        return "\n".join(result_lines)


class FileSystemOverlayRepository(OverlayRepository):
    def load(self, path: Path) -> DiagramOverlay:
        if not path.exists():
            return create_empty_overlay()
        return DiagramOverlay.model_validate(load_json(path))

    def save(self, overlay: DiagramOverlay, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = path.with_suffix(f"{path.suffix}.lock")
        with FileLock(str(lock_path)):
            write_json_atomic(path, overlay.model_dump(mode="json"))
