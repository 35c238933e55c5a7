from __future__ import annotations

from adapters.filesystem.diagram_repository import (
    FileSystemGraphRepository,
    FileSystemOverlayRepository,
)
from adapters.layout.grid import GridLayoutEngine
from app.config import AppSettings
from domain.models import DiagramOverlay
from domain.ports.collaborators import EditorController, GraphParser, TextPatcher
from domain.ports.layout import LayoutEngine
from domain.ports.repositories import GraphRepository, OverlayRepository
from domain.services.diagram_session import DiagramSession
from domain.services.history import HistoryManager
from domain.services.sync_engine import DiagramSyncEngine


def build_layout_engine(settings: AppSettings) -> LayoutEngine:
    return GridLayoutEngine(settings.layout.to_layout_config())


def build_session(
    settings: AppSettings,
    overlay: DiagramOverlay | None = None,
    editor: EditorController | None = None,
    text_patcher: TextPatcher | None = None,
) -> DiagramSession:
    return DiagramSession(
        editor=editor,
        text_patcher=text_patcher,
        history=HistoryManager(settings.canvas.history_limit),
        config=settings.canvas.to_session_config(),
        overlay=overlay,
    )


def build_sync_engine(
    settings: AppSettings,
    session: DiagramSession,
    parser: GraphParser | None = None,
    layout_engine: LayoutEngine | None = None,
) -> DiagramSyncEngine:
    return DiagramSyncEngine(
        session,
        layout_engine or build_layout_engine(settings),
        parser=parser,
    )


def build_graph_repository() -> GraphRepository:
    return FileSystemGraphRepository()


def build_overlay_repository() -> OverlayRepository:
    return FileSystemOverlayRepository()
