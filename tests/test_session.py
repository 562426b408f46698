"""Tests for the interactive viewer session."""

from __future__ import annotations

import pytest

from structuregram.diagram.geometry import Point
from structuregram.diagram.model import Branch, MultiwayBranch
from structuregram.errors import MethodNotFoundError
from structuregram.viewer.session import STALE_MESSAGE, Session
from tests.conftest import JAVA_SOURCE
from tests.helpers import RecordingSurface, leaf_rect, line_of


@pytest.fixture
def session(java_doc, measurer, timer_factory):
    s = Session(java_doc, measurer=measurer, theme="light", timer_factory=timer_factory)
    yield s
    s.close()


def _screen_point(session, label) -> Point:
    session.render(RecordingSurface())
    return session.view.to_screen(leaf_rect(session.hits, label)).center


class TestSessionSetup:
    def test_defaults_to_first_method(self, session):
        assert session.method_name == "max"
        assert isinstance(session.diagram, Branch)

    def test_named_method(self, java_doc, measurer, timer_factory):
        s = Session(java_doc, "grade", measurer=measurer, timer_factory=timer_factory)
        assert isinstance(s.diagram, MultiwayBranch)
        s.close()

    def test_unknown_method(self, java_doc, measurer, timer_factory):
        with pytest.raises(MethodNotFoundError):
            Session(java_doc, "nope", measurer=measurer, timer_factory=timer_factory)

    def test_unknown_overload(self, java_doc, measurer, timer_factory):
        with pytest.raises(MethodNotFoundError):
            Session(java_doc, "max", 1, measurer=measurer, timer_factory=timer_factory)

    def test_method_renamed_later_keeps_last_diagram(self, session, java_doc):
        java_doc.set_text(JAVA_SOURCE.replace("int max(", "int maximum("))
        session.controller.flush()
        assert isinstance(session.diagram, Branch)
        assert session.diagram.condition_label == "a > b?"

    def test_preferred_size(self, session):
        session.render(RecordingSurface())
        assert session.preferred_size() == (540, 120)


class TestClick:
    def test_click_navigates_to_statement(self, session):
        p = _screen_point(session, "Return a")
        result = session.click(p.x, p.y)
        assert result.ok
        assert result.navigation.line == line_of(JAVA_SOURCE, "return a;")
        assert result.navigation.kind == "Leaf"
        assert result.navigation.label == "Return a"

    def test_click_header(self, session):
        session.render(RecordingSurface())
        result = session.click(40, 30)
        assert result.ok
        assert result.navigation.kind == "Branch"
        assert result.navigation.line == line_of(JAVA_SOURCE, "if (a > b)")

    def test_click_after_zoom_and_pan(self, session):
        session.render(RecordingSurface())
        session.wheel(100, 80, 3)
        session.drag(-25, 40)
        p = session.view.to_screen(leaf_rect(session.hits, "Return b")).center
        result = session.click(p.x, p.y)
        assert result.ok
        assert result.navigation.label == "Return b"

    def test_click_on_margin(self, session):
        result = session.click(5, 5)
        assert not result.ok
        assert result.message == "Nothing here"

    def test_source_text_at(self, session):
        p = _screen_point(session, "Return a")
        assert session.source_text_at(p.x, p.y) == "return a;"

    def test_stale_click_reports_message(self, session, java_doc):
        a = _screen_point(session, "Return a")
        b = _screen_point(session, "Return b")
        assert session.edit_at(a.x, a.y, "return a + 1;").ok
        # The hit index still holds the old tree
        result = session.click(b.x, b.y)
        assert not result.ok
        assert result.message == STALE_MESSAGE
        assert session.controller.pending


class TestEditing:
    def test_edit_then_refresh(self, session, java_doc):
        p = _screen_point(session, "Return a")
        result = session.edit_at(p.x, p.y, "return a + 1;")
        assert result.ok
        assert "return a + 1;" in java_doc.text
        assert session.controller.pending
        session.controller.flush()
        assert session.diagram.then_node.label == "Return a + 1"

    def test_rejected_edit(self, session, java_doc):
        p = _screen_point(session, "Return a")
        result = session.edit_at(p.x, p.y, "return (;")
        assert not result.ok
        assert "does not parse" in result.message
        assert java_doc.text == JAVA_SOURCE
        assert not session.controller.pending

    def test_insert_after(self, session, java_doc):
        p = _screen_point(session, "Return b")
        assert session.insert_after(p.x, p.y, "log(b);").ok
        assert "return b;\n            log(b);" in java_doc.text

    def test_delete(self, session, java_doc):
        p = _screen_point(session, "Return b")
        assert session.delete_at(p.x, p.y).ok
        assert "return b;" not in java_doc.text
        session.controller.flush()
        assert session.diagram.else_node.children == ()

    def test_view_survives_rebuild(self, session):
        p = _screen_point(session, "Return a")
        session.wheel(p.x, p.y, 2)
        scale, pan = session.view.scale, (session.view.pan_x, session.view.pan_y)
        p = session.view.to_screen(leaf_rect(session.hits, "Return a")).center
        session.edit_at(p.x, p.y, "return b;")
        session.controller.flush()
        assert session.view.scale == scale
        assert (session.view.pan_x, session.view.pan_y) == pan

    def test_tracks_method_across_edits(self, java_doc, measurer, timer_factory):
        s = Session(java_doc, "grade", measurer=measurer, timer_factory=timer_factory)
        java_doc.set_text(JAVA_SOURCE.replace("return a;", "return 0;"))
        s.controller.flush()
        assert isinstance(s.diagram, MultiwayBranch)
        s.close()


class TestExport:
    def test_svg(self, session):
        svg = session.export_svg()
        assert svg.startswith("<svg")
        assert "a &gt; b?" in svg

    def test_png(self, session, tmp_path):
        out = tmp_path / "max.png"
        session.export_png(out)
        assert out.read_bytes().startswith(b"\x89PNG")
