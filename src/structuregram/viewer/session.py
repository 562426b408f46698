"""Interactive viewer session: the piece a host UI drives.

A session owns the current diagram (through its refresh controller), the
view transform and the hit index of the last render. Click, drag, wheel and
edit requests arrive in screen coordinates. Stale references and rejected
edits come back as unsuccessful results with a message rather than raising.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from structuregram.diagram.builder import build
from structuregram.diagram.geometry import Point
from structuregram.diagram.hittest import HitIndex
from structuregram.diagram.layout import LayoutMetrics, Placed, TextMeasurer, layout
from structuregram.diagram.model import DiagramNode, Leaf, Sequence, label_of
from structuregram.diagram.render import Surface, Theme, get_theme, render
from structuregram.diagram.view import ViewTransform
from structuregram.errors import EditError, StaleReferenceError
from structuregram.render.fonts import PillowMeasurer
from structuregram.render.raster import RasterSurface
from structuregram.render.svg import SvgSurface
from structuregram.source.document import Snapshot, SourceDocument, SourceRef, find_method
from structuregram.viewer.refresh import RefreshController

logger = logging.getLogger(__name__)

STALE_MESSAGE = "The code changed since the diagram was drawn. Refreshing, please try again."


@dataclass(frozen=True)
class Navigation:
    line: int
    column: int
    end_line: int
    kind: str
    label: str


@dataclass(frozen=True)
class InteractionResult:
    ok: bool
    message: str = ""
    node: DiagramNode | None = None
    navigation: Navigation | None = None


def _kind(node: DiagramNode) -> str:
    return type(node).__name__


class Session:
    def __init__(
        self,
        document: SourceDocument,
        method_name: str | None = None,
        ordinal: int = 0,
        measurer: TextMeasurer | None = None,
        theme: str | Theme | None = None,
        metrics: LayoutMetrics = LayoutMetrics(),
        delay: float | None = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self.document = document
        # Raises MethodNotFoundError before any rebuild can swallow it
        info, _node = find_method(document.snapshot(), method_name, ordinal)
        self.method_name = info.name
        self.ordinal = info.ordinal
        self.measurer = measurer or PillowMeasurer()
        self.theme = theme if isinstance(theme, Theme) else get_theme(theme)
        self.metrics = metrics
        self.view = ViewTransform(padding=metrics.outer_padding)
        self.hits = HitIndex()
        self._placed: Placed | None = None

        self.controller = RefreshController(document, self._rebuild, delay, timer_factory)
        self.controller.refresh_now()

    def _rebuild(self, snapshot: Snapshot) -> DiagramNode:
        _info, method = find_method(snapshot, self.method_name, self.ordinal)
        return build(snapshot, method)

    @property
    def diagram(self) -> DiagramNode:
        diagram = self.controller.diagram
        if diagram is None:
            # The unit vanished before the first build could finish
            return Sequence()
        return diagram

    # ── Rendering ──

    def layout(self) -> Placed:
        return layout(self.diagram, self.measurer, self.metrics)

    def render(self, surface: Surface) -> Placed:
        placed = self.layout()
        render(placed, surface, self.hits, self.theme, self.metrics)
        self._placed = placed
        return placed

    def preferred_size(self) -> tuple[int, int]:
        placed = self._placed or self.layout()
        pad = self.metrics.outer_padding
        return int(placed.rect.width + 2 * pad), int(placed.rect.height + 2 * pad)

    def export_svg(self) -> str:
        surface = SvgSurface(line_height=self.metrics.line_height)
        self.render(surface)
        return surface.getvalue()

    def export_png(self, path: Path, scale: float = 1.0) -> None:
        fonts = self.measurer if isinstance(self.measurer, PillowMeasurer) else None
        surface = RasterSurface(fonts=fonts, scale=scale, line_height=self.metrics.line_height)
        self.render(surface)
        surface.save(path)

    # ── Interaction ──

    def drag(self, dx: float, dy: float) -> None:
        self.view.pan(dx, dy)

    def wheel(self, x: float, y: float, delta: float) -> None:
        self.view.zoom_at(Point(x, y), delta)

    def node_at(self, x: float, y: float) -> DiagramNode | None:
        """Resolve a screen point against the last render."""
        if self._placed is None:
            self.render(SvgSurface(line_height=self.metrics.line_height))
        return self.hits.resolve(self.view.to_logical(Point(x, y)))

    def _target(self, x: float, y: float) -> tuple[DiagramNode | None, SourceRef | None, str]:
        node = self.node_at(x, y)
        if node is None:
            return None, None, "Nothing here"
        ref = node.source_ref
        if ref is None:
            return node, None, "This block has no source statement"
        if not self.document.is_valid(ref):
            self.controller.request()
            return node, None, STALE_MESSAGE
        return node, ref, ""

    def click(self, x: float, y: float) -> InteractionResult:
        node, ref, message = self._target(x, y)
        if ref is None:
            return InteractionResult(False, message, node)
        nav = Navigation(ref.line, ref.column, ref.end_line, _kind(node), label_of(node))
        logger.debug("Navigate to %s at line %d", nav.kind, nav.line)
        return InteractionResult(True, node=node, navigation=nav)

    def source_text_at(self, x: float, y: float) -> str | None:
        _node, ref, _message = self._target(x, y)
        if ref is None:
            return None
        return self.document.text_of(ref)

    def _mutate(self, x: float, y: float, action: Callable[[SourceRef], object], verb: str) -> InteractionResult:
        node, ref, message = self._target(x, y)
        if ref is None:
            return InteractionResult(False, message, node)
        try:
            action(ref)
        except StaleReferenceError:
            self.controller.request()
            return InteractionResult(False, STALE_MESSAGE, node)
        except EditError as e:
            logger.info("%s rejected: %s", verb, e)
            return InteractionResult(False, f"Could not {verb.lower()}: {e.text!r} does not parse", node)
        return InteractionResult(True, f"{verb} applied", node)

    def edit_at(self, x: float, y: float, text: str) -> InteractionResult:
        return self._mutate(x, y, lambda ref: self.document.replace(ref, text), "Edit")

    def insert_after(self, x: float, y: float, text: str) -> InteractionResult:
        return self._mutate(x, y, lambda ref: self.document.insert_after(ref, text), "Insert")

    def delete_at(self, x: float, y: float) -> InteractionResult:
        node = self.node_at(x, y)
        if isinstance(node, Leaf) and node.source_ref is None:
            return InteractionResult(False, "Nothing to delete", node)
        return self._mutate(x, y, self.document.delete, "Delete")

    def close(self) -> None:
        self.controller.close()
