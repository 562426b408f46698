"""Debounced diagram rebuilds driven by source change notifications."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from structuregram import config
from structuregram.diagram.model import DiagramNode
from structuregram.source.document import Snapshot, SourceChange, SourceDocument

logger = logging.getLogger(__name__)


class RefreshController:
    """Rebuilds the diagram once a burst of source edits settles.

    Each change notification restarts the delay timer, so only the last
    edit of a burst triggers a rebuild. A rebuild reads one snapshot and
    publishes its tree with a single attribute assignment, and only if no
    newer change arrived while it ran. Readers therefore always see either
    the old tree or the new one. Pan and zoom state lives elsewhere and is
    never touched here.
    """

    def __init__(
        self,
        document: SourceDocument,
        rebuild: Callable[[Snapshot], DiagramNode],
        delay: float | None = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self._document = document
        self._rebuild = rebuild
        self._delay = config.REFRESH_DELAY_MS / 1000 if delay is None else delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._request_id = 0
        self._closed = False
        self._listeners: list[Callable[[DiagramNode], None]] = []

        self.diagram: DiagramNode | None = None
        self.generation = -1
        self.rebuild_count = 0

        document.subscribe(self._on_change)

    def add_listener(self, listener: Callable[[DiagramNode], None]) -> None:
        self._listeners.append(listener)

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _on_change(self, change: SourceChange) -> None:
        logger.debug("Source changed (generation %d), scheduling rebuild", change.generation)
        self.request()

    def request(self) -> None:
        """Schedule a rebuild, replacing any pending one."""
        with self._lock:
            if self._closed:
                return
            self._request_id += 1
            request_id = self._request_id
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self._delay, self._fire, args=(request_id,))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def _fire(self, request_id: int) -> None:
        with self._lock:
            if self._closed or request_id != self._request_id:
                return
            self._timer = None
        self._run(request_id)

    def flush(self) -> bool:
        """Run a pending rebuild now. Returns False if nothing was pending."""
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            self._timer = None
            request_id = self._request_id
        return self._run(request_id)

    def refresh_now(self) -> DiagramNode | None:
        """Rebuild synchronously, bypassing the debounce."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._request_id += 1
            request_id = self._request_id
        self._run(request_id)
        return self.diagram

    def _run(self, request_id: int) -> bool:
        snapshot = self._document.snapshot()
        try:
            diagram = self._rebuild(snapshot)
        except Exception:
            logger.exception("Rebuild at generation %d failed, keeping previous diagram", snapshot.generation)
            return False

        with self._lock:
            if request_id != self._request_id:
                logger.debug("Discarding rebuild %d, superseded by %d", request_id, self._request_id)
                return False
            self.diagram = diagram
            self.generation = snapshot.generation
            self.rebuild_count += 1
        logger.info("Diagram rebuilt at generation %d", snapshot.generation)

        for listener in list(self._listeners):
            listener(diagram)
        return True

    def close(self) -> None:
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._document.unsubscribe(self._on_change)
