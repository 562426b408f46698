"""Two-pass layout: measure bottom-up, then place top-down.

The measure pass computes one `Box` per node (fractional, never rounded) and
the header heights that depend on wrapped labels. The placement pass takes
that measured tree and the width the parent allots, and produces integer
rectangles plus the wrapped text lines the renderer draws. Widths flow
down from the parent, so a wide parent stretches its children.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol

from structuregram import config
from structuregram.diagram.geometry import Box, Rect
from structuregram.diagram.model import (
    Branch,
    DiagramNode,
    Guarded,
    Leaf,
    Loop,
    MultiwayBranch,
    Sequence,
)


@dataclass(frozen=True)
class FontSpec:
    family: str = config.FONT_FAMILY
    size: int = config.FONT_SIZE
    bold: bool = False


PLAIN = FontSpec()
BOLD = FontSpec(bold=True)


class TextMeasurer(Protocol):
    def measure(self, text: str, font: FontSpec) -> Box:
        """Size of `text` drawn on a single line."""
        ...


@dataclass(frozen=True)
class LayoutMetrics:
    line_height: float = config.LINE_HEIGHT
    block_padding: float = 10
    # Horizontal room reserved around leaf text
    text_inset: float = 20
    min_block_width: float = config.MIN_BLOCK_WIDTH
    max_block_width: float = config.MAX_BLOCK_WIDTH
    branch_header_factor: float = 2.5
    loop_bar_width: int = 30
    empty_height: float = 20
    min_column_width: int = 60
    outer_padding: int = config.OUTER_PADDING

    @property
    def branch_header(self) -> float:
        return self.line_height * self.branch_header_factor

    @property
    def row_height(self) -> float:
        """Height of single-line headers: loop header, guarded strip rows."""
        return self.line_height + self.block_padding


def wrap_text(text: str, max_width: float, measurer: TextMeasurer, font: FontSpec) -> list[str]:
    """Greedy word wrap. A single word wider than `max_width` gets its own line."""
    if not text:
        return []
    lines: list[str] = []
    current = ""
    for word in text.split(" "):
        if not word:
            continue
        candidate = word if not current else current + " " + word
        if measurer.measure(candidate, font).width <= max_width:
            current = candidate
        else:
            if current:
                lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


# ── Measure pass ──


@dataclass(frozen=True)
class Measured:
    node: DiagramNode
    box: Box
    children: tuple[Measured, ...] = ()
    # Height of the node's own header band, 0 for nodes without one
    header_height: float = 0


def _header_height(base: float, lines: int, metrics: LayoutMetrics) -> float:
    return base + (max(1, lines) - 1) * metrics.line_height


def _label_span(text: str, cap: float, measurer: TextMeasurer, metrics: LayoutMetrics) -> float:
    """Width a bold header label asks for, independent of the node's children."""
    if not text:
        return 0
    return min(measurer.measure(text, BOLD).width + metrics.text_inset, cap)


def measure(node: DiagramNode, measurer: TextMeasurer, metrics: LayoutMetrics = LayoutMetrics()) -> Measured:
    """Bottom-up minimum size of `node` and everything below it.

    Header labels wrap against a width derived from the label alone, never
    from the children, so growing a child can only grow its ancestors.
    That guarantee is about measured heights. A placed Branch splits its
    width evenly, so widening one arm can unwrap the other and shorten it.
    """
    m = metrics

    if isinstance(node, Leaf):
        text_width = measurer.measure(node.label, PLAIN).width if node.label else 0
        width = max(m.min_block_width, min(text_width + m.text_inset, m.max_block_width))
        lines = wrap_text(node.label, width - m.text_inset, measurer, PLAIN)
        height = max(m.empty_height, len(lines) * m.line_height + m.block_padding)
        return Measured(node, Box(width, height))

    if isinstance(node, Sequence):
        kids = tuple(measure(c, measurer, m) for c in node.children)
        width = max([m.min_block_width] + [k.box.width for k in kids])
        height = max(m.empty_height, sum(k.box.height for k in kids))
        return Measured(node, Box(width, height), kids)

    if isinstance(node, Branch):
        then_m = measure(node.then_node, measurer, m)
        else_m = measure(node.else_node, measurer, m)
        # The condition sits in the upper half-width triangle
        span = _label_span(node.condition_label, m.max_block_width / 2, measurer, m)
        width = max(then_m.box.width + else_m.box.width, m.min_block_width, 2 * span)
        lines = len(wrap_text(node.condition_label, span, measurer, BOLD))
        header = _header_height(m.branch_header, lines, m)
        height = max(then_m.box.height, else_m.box.height) + header
        return Measured(node, Box(width, height), (then_m, else_m), header)

    if isinstance(node, MultiwayBranch):
        kids = tuple(measure(c.body, measurer, m) for c in node.cases)
        span = _label_span(node.expression_label, m.max_block_width / 2, measurer, m)
        width = max(sum(k.box.width for k in kids), m.min_block_width, 2 * span)
        lines = len(wrap_text(node.expression_label, span, measurer, BOLD))
        header = _header_height(m.branch_header, lines, m)
        body = max([k.box.height for k in kids], default=m.empty_height)
        return Measured(node, Box(width, body + header), kids, header)

    if isinstance(node, Loop):
        body_m = measure(node.body, measurer, m)
        span = _label_span(node.header_label, m.max_block_width, measurer, m)
        width = max(body_m.box.width + m.loop_bar_width, m.min_block_width, span)
        lines = len(wrap_text(node.header_label, span - m.block_padding, measurer, BOLD))
        header = _header_height(m.row_height, lines, m)
        return Measured(node, Box(width, body_m.box.height + header), (body_m,), header)

    if isinstance(node, Guarded):
        try_m = measure(node.try_body, measurer, m)
        catch_ms = tuple(measure(c.body, measurer, m) for c in node.catches)
        finally_m = measure(node.finally_body, measurer, m) if node.finally_body is not None else None

        widths = [try_m.box.width, sum(k.box.width for k in catch_ms)]
        height = try_m.box.height + m.row_height
        if catch_ms:
            height += max(k.box.height for k in catch_ms) + m.row_height
        kids = (try_m,) + catch_ms
        if finally_m is not None:
            widths.append(finally_m.box.width)
            height += finally_m.box.height + m.row_height
            kids += (finally_m,)
        width = max(max(widths), m.min_block_width)
        return Measured(node, Box(width, height), kids, m.row_height)

    raise TypeError(f"Not a diagram node: {node!r}")


# ── Placement pass ──


@dataclass(frozen=True)
class Band:
    """A labelled sub-rectangle of a node: headers, strip rows, bars."""

    role: str
    rect: Rect
    lines: tuple[str, ...] = ()


@dataclass(frozen=True)
class Placed:
    node: DiagramNode
    rect: Rect
    children: tuple[Placed, ...] = ()
    bands: tuple[Band, ...] = ()
    # Wrapped label lines for leaves
    lines: tuple[str, ...] = ()

    def band(self, role: str) -> Band | None:
        for b in self.bands:
            if b.role == role:
                return b
        return None


def split_columns(total: int, weights: list[float], min_width: int) -> list[int]:
    """Divide `total` into columns proportional to `weights`.

    Each column gets at least `min_width` when that is feasible, and the last
    column absorbs the rounding remainder, so the result always sums to
    exactly `total`.
    """
    n = len(weights)
    if n == 0:
        return []
    if min_width * n > total:
        min_width = total // n
    weight_sum = sum(weights)
    widths = []
    remaining = total
    for i, w in enumerate(weights[:-1]):
        share = math.floor(total * w / weight_sum) if weight_sum > 0 else total // n
        # Leave room for the columns still to come
        cap = remaining - min_width * (n - 1 - i)
        share = min(max(share, min_width), cap)
        widths.append(share)
        remaining -= share
    widths.append(remaining)
    return widths


class _Placer:
    def __init__(self, measurer: TextMeasurer, metrics: LayoutMetrics) -> None:
        self.measurer = measurer
        self.metrics = metrics

    def _header(self, measured: Measured, base: float, lines: list[str]) -> int:
        # A squeezed column can wrap into more lines than were measured
        return math.ceil(max(measured.header_height, _header_height(base, len(lines), self.metrics)))

    def place(self, measured: Measured, x: int, y: int, width: int) -> Placed:
        node = measured.node
        m = self.metrics

        if isinstance(node, Leaf):
            lines = wrap_text(node.label, width - m.text_inset, self.measurer, PLAIN)
            height = math.ceil(max(measured.box.height, len(lines) * m.line_height + m.block_padding))
            return Placed(node, Rect(x, y, width, height), lines=tuple(lines))

        if isinstance(node, Sequence):
            kids = []
            cy = y
            for child in measured.children:
                placed = self.place(child, x, cy, width)
                kids.append(placed)
                cy += placed.rect.height
            height = max(cy - y, math.ceil(m.empty_height))
            return Placed(node, Rect(x, y, width, height), tuple(kids))

        if isinstance(node, Branch):
            lines = wrap_text(node.condition_label, width / 2, self.measurer, BOLD)
            header_h = self._header(measured, m.branch_header, lines)
            then_w = width // 2
            body_y = y + header_h
            then_p = self.place(measured.children[0], x, body_y, then_w)
            else_p = self.place(measured.children[1], x + then_w, body_y, width - then_w)
            body_h = max(then_p.rect.height, else_p.rect.height)
            bands = (
                Band("header", Rect(x, y, width, header_h), tuple(lines)),
                Band("then", Rect(x, body_y, then_w, body_h), ("True",)),
                Band("else", Rect(x + then_w, body_y, width - then_w, body_h), ("False",)),
            )
            return Placed(node, Rect(x, y, width, header_h + body_h), (then_p, else_p), bands)

        if isinstance(node, MultiwayBranch):
            lines = wrap_text(node.expression_label, width / 2, self.measurer, BOLD)
            header_h = self._header(measured, m.branch_header, lines)
            body_y = y + header_h
            kids, columns = self._columns(
                measured.children, [c.label for c in node.cases], x, body_y, width
            )
            body_h = max([k.rect.height for k in kids], default=math.ceil(m.empty_height))
            bands = [Band("header", Rect(x, y, width, header_h), tuple(lines))]
            bands.extend(
                Band("case", Rect(rect.x, body_y, rect.width, body_h), (label,)) for rect, label in columns
            )
            return Placed(node, Rect(x, y, width, header_h + body_h), tuple(kids), tuple(bands))

        if isinstance(node, Loop):
            lines = wrap_text(node.header_label, width - m.block_padding, self.measurer, BOLD)
            header_h = self._header(measured, m.row_height, lines)
            bar = min(m.loop_bar_width, width)
            body_p = self.place(measured.children[0], x + bar, y + header_h, width - bar)
            bands = (
                Band("header", Rect(x, y, width, header_h), tuple(lines)),
                Band("bar", Rect(x, y + header_h, bar, body_p.rect.height)),
            )
            return Placed(node, Rect(x, y, width, header_h + body_p.rect.height), (body_p,), bands)

        if isinstance(node, Guarded):
            return self._guarded(measured, x, y, width)

        raise TypeError(f"Not a diagram node: {node!r}")

    def _columns(
        self, measured: tuple[Measured, ...], labels: list[str], x: int, y: int, width: int
    ) -> tuple[list[Placed], list[tuple[Rect, str]]]:
        widths = split_columns(width, [k.box.width for k in measured], self.metrics.min_column_width)
        kids = []
        columns = []
        cx = x
        for child, w, label in zip(measured, widths, labels):
            placed = self.place(child, cx, y, w)
            kids.append(placed)
            columns.append((Rect(cx, y, w, placed.rect.height), label))
            cx += w
        return kids, columns

    def _guarded(self, measured: Measured, x: int, y: int, width: int) -> Placed:
        node = measured.node
        row_h = math.ceil(self.metrics.row_height)
        bands = [Band("try", Rect(x, y, width, row_h), (node.try_label,))]
        try_p = self.place(measured.children[0], x, y + row_h, width)
        kids = [try_p]
        cy = try_p.rect.bottom

        if node.catches:
            catch_ms = measured.children[1:1 + len(node.catches)]
            body_y = cy + row_h
            catch_kids, columns = self._columns(
                catch_ms, [c.type_label for c in node.catches], x, body_y, width
            )
            bands.extend(Band("catch", Rect(rect.x, cy, rect.width, row_h), (label,)) for rect, label in columns)
            kids.extend(catch_kids)
            cy = body_y + max(k.rect.height for k in catch_kids)

        if node.finally_body is not None:
            bands.append(Band("finally", Rect(x, cy, width, row_h), ("Finally",)))
            finally_p = self.place(measured.children[-1], x, cy + row_h, width)
            kids.append(finally_p)
            cy = finally_p.rect.bottom

        return Placed(node, Rect(x, y, width, cy - y), tuple(kids), tuple(bands))


def place(
    measured: Measured,
    x: int,
    y: int,
    width: int,
    measurer: TextMeasurer,
    metrics: LayoutMetrics = LayoutMetrics(),
) -> Placed:
    """Top-down placement of a measured tree into `width` logical units."""
    return _Placer(measurer, metrics).place(measured, x, y, width)


def layout(
    node: DiagramNode,
    measurer: TextMeasurer,
    metrics: LayoutMetrics = LayoutMetrics(),
    width: int | None = None,
) -> Placed:
    """Measure and place a whole diagram at the origin.

    The root gets its measured width, or `width` if that is larger.
    """
    measured = measure(node, measurer, metrics)
    root_width = math.ceil(measured.box.width)
    if width is not None:
        root_width = max(root_width, width)
    return place(measured, 0, 0, root_width, measurer, metrics)
