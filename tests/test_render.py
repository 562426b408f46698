"""Tests for drawing placed diagrams onto surfaces."""

from __future__ import annotations

from structuregram.diagram.builder import build_for_document
from structuregram.diagram.geometry import Rect
from structuregram.diagram.hittest import HitIndex
from structuregram.diagram.layout import PLAIN, FontSpec, LayoutMetrics, layout
from structuregram.diagram.model import Branch, Leaf, Loop, walk
from structuregram.diagram.render import THEMES, get_theme, render
from structuregram.render.fonts import FixedWidthMeasurer, PillowMeasurer
from structuregram.render.raster import RasterSurface
from structuregram.render.svg import SvgSurface
from tests.conftest import JAVA_SOURCE
from tests.helpers import RecordingSurface, line_of

METRICS = LayoutMetrics()


def _render(node, measurer, surface=None, theme=None):
    surface = surface or RecordingSurface()
    hits = HitIndex()
    placed = layout(node, measurer)
    render(placed, surface, hits, theme)
    return placed, surface, hits


class TestRenderer:
    def test_canvas_includes_padding(self, measurer):
        placed, surface, _ = _render(Leaf("a"), measurer)
        pad = METRICS.outer_padding
        assert surface.size == (placed.rect.width + 2 * pad, placed.rect.height + 2 * pad)
        assert surface.finished

    def test_every_node_recorded(self, measurer, java_doc):
        root = build_for_document(java_doc, "sum")
        _, _, hits = _render(root, measurer)
        assert len(hits) == sum(1 for _ in walk(root))

    def test_parent_recorded_before_children(self, measurer, java_doc):
        root = build_for_document(java_doc, "max")
        _, _, hits = _render(root, measurer)
        nodes = [n for _, n in hits.entries()]
        assert nodes[0] is root

    def test_branch_draws_diagonals_and_captions(self, measurer):
        _, surface, _ = _render(Branch("a > b?", Leaf("x"), Leaf("y")), measurer)
        assert len(surface.lines) == 2
        text = surface.drawn_text()
        assert "a > b?" in text
        assert "True" in text
        assert "False" in text

    def test_drawing_is_offset_by_padding(self, measurer):
        _, surface, hits = _render(Leaf("a"), measurer)
        pad = METRICS.outer_padding
        logical, _node = hits.entries()[0]
        drawn = [r for r, _fill in surface.rects]
        assert Rect(logical.x + pad, logical.y + pad, logical.width, logical.height) in drawn

    def test_loop_header_uses_header_fill(self, measurer):
        theme = THEMES["dark"]
        _, surface, _ = _render(Loop("While c", Leaf("x")), measurer, theme=theme)
        assert any(fill == theme.header_fill for _r, fill in surface.rects)
        assert surface.theme is theme

    def test_text_is_exactly_the_placed_lines(self, measurer):
        label = "word " * 30
        placed, surface, _ = _render(Leaf(label), measurer)
        assert surface.drawn_text() == list(placed.lines)

    def test_multiway_draws_case_labels(self, measurer, java_doc):
        _, surface, _ = _render(build_for_document(java_doc, "grade"), measurer)
        text = surface.drawn_text()
        assert "1, 2" in text
        assert "3" in text


class TestNavigation:
    def test_round_trip_every_leaf(self, measurer, java_doc):
        for info in java_doc.methods():
            root = build_for_document(java_doc, info.name)
            _, _, hits = _render(root, measurer)
            for rect, node in hits.entries():
                if not isinstance(node, Leaf) or node.source_ref is None:
                    continue
                assert hits.resolve(rect.center) is node
                text = java_doc.text_of(node.source_ref)
                assert node.source_ref.line == line_of(JAVA_SOURCE, text.splitlines()[0])

    def test_header_resolves_to_construct(self, measurer, java_doc):
        root = build_for_document(java_doc, "max")
        placed, _, hits = _render(root, measurer)
        header = placed.band("header").rect
        assert hits.resolve(header.center) is root


class TestThemes:
    def test_auto_resolves(self):
        assert get_theme("auto").name in ("light", "dark")

    def test_named(self):
        assert get_theme("dark") is THEMES["dark"]


class TestSvgSurface:
    def test_document_shape(self, java_doc):
        surface = SvgSurface()
        _render(build_for_document(java_doc, "max"), FixedWidthMeasurer(), surface, THEMES["light"])
        svg = surface.getvalue()
        assert svg.startswith("<svg")
        assert svg.endswith("</svg>")
        assert "Return a" in svg
        assert "a &gt; b?" in svg

    def test_size_attributes_scaled(self):
        surface = SvgSurface(scale=2.0)
        placed, _, _ = _render(Leaf("a"), FixedWidthMeasurer(), surface)
        pad = METRICS.outer_padding
        assert f'width="{(placed.rect.width + 2 * pad) * 2}"' in surface.getvalue()


class TestRaster:
    def test_png_export(self, java_doc):
        fonts = PillowMeasurer()
        surface = RasterSurface(fonts=fonts)
        placed, _, _ = _render(build_for_document(java_doc, "guarded"), fonts, surface)
        data = surface.to_png()
        assert data.startswith(b"\x89PNG")
        pad = METRICS.outer_padding
        assert surface.image.size == (placed.rect.width + 2 * pad, placed.rect.height + 2 * pad)

    def test_scaled_png(self, tmp_path):
        fonts = PillowMeasurer()
        surface = RasterSurface(fonts=fonts, scale=2.0)
        placed, _, _ = _render(Leaf("hello"), fonts, surface)
        out = tmp_path / "d.png"
        surface.save(out)
        assert out.read_bytes().startswith(b"\x89PNG")
        pad = METRICS.outer_padding
        assert surface.image.size[0] == 2 * (placed.rect.width + 2 * pad)

    def test_pillow_measurer(self):
        fonts = PillowMeasurer()
        short = fonts.measure("ab", PLAIN)
        long = fonts.measure("abababab", PLAIN)
        assert long.width > short.width > 0
        assert fonts.line_height(PLAIN) > 0

    def test_missing_font_falls_back_to_sized_default(self, tmp_path):
        fonts = PillowMeasurer(family="NoSuchFamily", path=tmp_path / "missing.ttf")
        fonts._candidates = lambda bold: [str(tmp_path / "missing.ttf")]
        small = fonts.measure("abcdef", FontSpec(size=10))
        large = fonts.measure("abcdef", FontSpec(size=30))
        assert large.width > small.width > 0
