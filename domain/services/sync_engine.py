from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from domain.models import DiagramGraph
from domain.ports.collaborators import GraphParser
from domain.ports.layout import LayoutEngine
from domain.services.diagram_session import DiagramSession, ReconcileDelta
from domain.services.merge_overlay import merge_graph_with_overlay

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    LAYING_OUT = "laying_out"
    RECONCILING = "reconciling"
    ERROR = "error"


class DiagramSyncEngine:
    """Drives text -> graph -> layout -> merge -> canvas, one pass at a time.

    A graph submitted while a pass is in flight is queued; only the latest
    queued graph is kept and it runs as soon as the current pass finishes.
    The merge reads the session overlay after the layout resolves, so user
    edits made while the layout was pending are never overwritten.
    """

    def __init__(
        self,
        session: DiagramSession,
        layout_engine: LayoutEngine,
        parser: GraphParser | None = None,
    ) -> None:
        self.session = session
        self.layout_engine = layout_engine
        self.parser = parser
        self.status = SyncStatus.IDLE
        self.graph: Optional[DiagramGraph] = None
        self.last_error: Optional[str] = None
        self.passes_completed = 0
        self._busy = False
        self._pending: Optional[DiagramGraph] = None

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def parse(self, text: str) -> Optional[DiagramGraph]:
        if self.parser is None:
            msg = "No graph parser configured"
            raise RuntimeError(msg)
        if not self._busy:
            self.status = SyncStatus.PARSING
        try:
            graph = self.parser.parse(text)
        except ValueError as exc:
            graph = None
            self.last_error = str(exc)
        else:
            if graph is None:
                self.last_error = "Diagram text could not be parsed"
        if graph is None:
            logger.warning("Parse failed, keeping last good graph: %s", self.last_error)
            if not self._busy:
                self.status = SyncStatus.ERROR
            return None
        self.last_error = None
        if not self._busy:
            self.status = SyncStatus.IDLE
        return graph

    async def submit_text(self, text: str) -> Optional[ReconcileDelta]:
        graph = self.parse(text)
        if graph is None:
            return None
        return await self.submit_graph(graph)

    async def submit_graph(self, graph: DiagramGraph) -> Optional[ReconcileDelta]:
        if self._busy:
            logger.debug("Reconciliation in flight, queueing graph with %d nodes", len(graph.nodes))
            self._pending = graph
            return None

        self._busy = True
        delta: Optional[ReconcileDelta] = None
        next_graph: Optional[DiagramGraph] = graph
        try:
            while next_graph is not None:
                self._pending = None
                delta = await self._reconcile(next_graph)
                next_graph = self._pending
        except Exception:
            self._pending = None
            self.status = SyncStatus.ERROR
            raise
        else:
            self.status = SyncStatus.IDLE
        finally:
            self._busy = False
        return delta

    async def _reconcile(self, graph: DiagramGraph) -> ReconcileDelta:
        self.status = SyncStatus.LAYING_OUT
        try:
            layout = await self.layout_engine.layout(graph)
        except Exception:
            logger.exception("Layout failed; reconciliation pass abandoned")
            raise
        self.status = SyncStatus.RECONCILING
        result = merge_graph_with_overlay(graph, self.session.overlay, layout)
        delta = self.session.apply_merge(result)
        self.graph = graph
        self.passes_completed += 1
        return delta
