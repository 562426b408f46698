"""Draw a placed diagram onto a surface and fill the hit index.

The renderer walks the placed tree parent-first, in the same order the
placement pass produced it. Text arrives already wrapped by placement, so
what is painted always matches what was measured.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from structuregram import config
from structuregram.diagram.geometry import Rect
from structuregram.diagram.hittest import HitIndex
from structuregram.diagram.layout import BOLD, PLAIN, FontSpec, LayoutMetrics, Placed
from structuregram.diagram.model import Branch, Guarded, Leaf, Loop, MultiwayBranch, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Theme:
    name: str
    background: str
    stroke: str
    text: str
    header_fill: str
    caption: str


THEMES = {
    "light": Theme("light", "#ffffff", "#000000", "#000000", "#f2f4f7", "#555555"),
    "dark": Theme("dark", "#1e1f22", "#bcbec4", "#dfe1e5", "#2b2d30", "#8c8f94"),
}


def get_theme(name: str | None = None) -> Theme:
    return THEMES[config.resolve_theme(name)]


class Surface(Protocol):
    def begin(self, width: int, height: int, theme: Theme) -> None:
        ...

    def rect(self, rect: Rect, fill: str | None = None) -> None:
        ...

    def line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        ...

    def text(self, lines: tuple[str, ...] | list[str], rect: Rect, font: FontSpec, align: str = "center") -> None:
        """Draw lines vertically centered in `rect`; align is left, center or right."""
        ...

    def finish(self) -> None:
        ...


class Renderer:
    def __init__(
        self,
        surface: Surface,
        hit_index: HitIndex,
        theme: Theme | None = None,
        metrics: LayoutMetrics = LayoutMetrics(),
    ) -> None:
        self.surface = surface
        self.hits = hit_index
        self.theme = theme or get_theme()
        self.metrics = metrics
        self._offset = metrics.outer_padding

    def _at(self, rect: Rect) -> Rect:
        return Rect(rect.x + self._offset, rect.y + self._offset, rect.width, rect.height)

    def render(self, root: Placed) -> None:
        self.hits.clear()
        pad = self.metrics.outer_padding
        self.surface.begin(int(root.rect.width + 2 * pad), int(root.rect.height + 2 * pad), self.theme)
        self.surface.rect(self._at(root.rect))
        self._draw(root)
        self.surface.finish()
        logger.debug("Rendered %d hit regions", len(self.hits))

    def _draw(self, placed: Placed) -> None:
        node = placed.node
        self.hits.record(placed.rect, node)

        if isinstance(node, Leaf):
            self.surface.rect(self._at(placed.rect))
            self.surface.text(placed.lines, self._at(placed.rect), PLAIN)
        elif isinstance(node, Sequence):
            if not placed.children:
                self.surface.rect(self._at(placed.rect))
        elif isinstance(node, Branch):
            self._branch(placed)
        elif isinstance(node, MultiwayBranch):
            self._multiway(placed)
        elif isinstance(node, Loop):
            self._loop(placed)
        elif isinstance(node, Guarded):
            self._guarded(placed)
        else:
            raise TypeError(f"Not a diagram node: {node!r}")

        for child in placed.children:
            self._draw(child)

    def _caption(self, text: str, x: float, bottom: float, width: float, align: str) -> None:
        lh = self.metrics.line_height
        self.surface.text((text,), self._at(Rect(x + 5, bottom - lh, width - 10, lh)), PLAIN, align)

    def _branch(self, placed: Placed) -> None:
        r = placed.rect
        header = placed.band("header").rect
        mid_x = r.x + placed.band("then").rect.width
        bottom = header.bottom
        o = self._offset

        self.surface.rect(self._at(header), fill=self.theme.header_fill)
        # Two diagonals converging where the then and else columns meet
        self.surface.line(r.x + o, r.y + o, mid_x + o, bottom + o)
        self.surface.line(r.right + o, r.y + o, mid_x + o, bottom + o)

        lines = placed.band("header").lines
        text_h = max(header.height - self.metrics.line_height, self.metrics.line_height)
        self.surface.text(lines, self._at(Rect(r.x, r.y, r.width, text_h)), BOLD)
        half = r.width / 2
        self._caption("True", r.x, bottom, half, "left")
        self._caption("False", r.x + half, bottom, half, "right")

        for role in ("then", "else"):
            self.surface.rect(self._at(placed.band(role).rect))

    def _multiway(self, placed: Placed) -> None:
        r = placed.rect
        header = placed.band("header")
        bottom = header.rect.bottom
        mid_x = r.x + r.width / 2
        o = self._offset

        self.surface.rect(self._at(r))
        self.surface.rect(self._at(header.rect), fill=self.theme.header_fill)
        text_h = max(header.rect.height - self.metrics.line_height, self.metrics.line_height)
        self.surface.text(header.lines, self._at(Rect(r.x, r.y, r.width, text_h)), BOLD)

        # Fan: the outer V plus one ray per column boundary, all meeting below the label
        self.surface.line(r.x + o, r.y + o, mid_x + o, bottom + o)
        self.surface.line(r.right + o, r.y + o, mid_x + o, bottom + o)
        for i, band in enumerate(b for b in placed.bands if b.role == "case"):
            c = band.rect
            if i > 0:
                self.surface.line(mid_x + o, bottom + o, c.x + o, r.y + o)
                self.surface.line(c.x + o, c.y + o, c.x + o, c.bottom + o)
            self._caption(band.lines[0], c.x, bottom, c.width, "left")

    def _loop(self, placed: Placed) -> None:
        header = placed.band("header")
        bar = placed.band("bar")
        # The L: header across the top, bar down the leading edge
        self.surface.rect(self._at(placed.rect))
        self.surface.rect(self._at(header.rect), fill=self.theme.header_fill)
        self.surface.text(header.lines, self._at(header.rect), BOLD)
        self.surface.rect(self._at(bar.rect), fill=self.theme.header_fill)

    def _guarded(self, placed: Placed) -> None:
        self.surface.rect(self._at(placed.rect))
        for band in placed.bands:
            self.surface.rect(self._at(band.rect), fill=self.theme.header_fill)
            inset = Rect(band.rect.x + 5, band.rect.y, band.rect.width - 10, band.rect.height)
            self.surface.text(band.lines, self._at(inset), BOLD, "left")


def render(
    placed: Placed,
    surface: Surface,
    hit_index: HitIndex,
    theme: Theme | None = None,
    metrics: LayoutMetrics = LayoutMetrics(),
) -> None:
    """Draw `placed` onto `surface`, replacing the contents of `hit_index`."""
    Renderer(surface, hit_index, theme, metrics).render(placed)
