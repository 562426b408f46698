"""Tests for building diagram trees from parsed functions."""

from __future__ import annotations

from structuregram.diagram.builder import (
    NO_BODY_LABEL,
    ORPHAN_CASE_LABEL,
    build,
    build_for_document,
)
from structuregram.diagram.model import (
    DEFAULT_LABEL,
    INVALID_LABEL,
    Branch,
    Guarded,
    Leaf,
    Loop,
    LoopKind,
    MultiwayBranch,
    Sequence,
    walk,
)
from structuregram.source.document import SourceDocument, find_method
from structuregram.source.languages import SwitchLabel
from tests.conftest import JAVA_SOURCE
from tests.helpers import line_of


class TestJavaConstructs:
    def test_if_else_becomes_branch(self, java_doc):
        root = build_for_document(java_doc, "max")
        assert isinstance(root, Branch)
        assert root.condition_label == "a > b?"
        assert root.then_node == Leaf("Return a", root.then_node.source_ref)
        assert root.else_node.label == "Return b"

    def test_branch_carries_source_ref(self, java_doc):
        root = build_for_document(java_doc, "max")
        assert root.source_ref.kind == "if_statement"
        assert root.source_ref.line == line_of(JAVA_SOURCE, "if (a > b)")
        assert root.then_node.source_ref.line == line_of(JAVA_SOURCE, "return a;")

    def test_fallthrough_cases_are_grouped(self, java_doc):
        root = build_for_document(java_doc, "grade")
        assert isinstance(root, MultiwayBranch)
        assert root.expression_label == "g"
        assert len(root.cases) == 2
        assert root.cases[0].label == "1, 2"
        assert root.cases[1].label == "3"

    def test_break_is_not_drawn(self, java_doc):
        root = build_for_document(java_doc, "grade")
        first = root.cases[0].body
        assert isinstance(first, Sequence)
        assert [c.label for c in first.children] == ['Print "low"']

    def test_counted_loop(self, java_doc):
        root = build_for_document(java_doc, "sum")
        assert isinstance(root, Sequence)
        decl, loop, ret = root.children
        assert decl.label == "total := 0"
        assert isinstance(loop, Loop)
        assert loop.kind == LoopKind.COUNTED
        assert loop.header_label == "For i := 0 to i < 10"
        assert loop.body.label == "increase total by i"
        assert ret.label == "Return total"

    def test_other_loops(self, java_doc):
        root = build_for_document(java_doc, "loops")
        while_loop, do_loop, each_loop = root.children
        assert while_loop.header_label == "While running"
        assert while_loop.kind == LoopKind.PRE_TEST
        assert while_loop.body.label == "step()"
        assert do_loop.header_label == "Do ... While count > 0"
        assert do_loop.kind == LoopKind.POST_TEST
        assert do_loop.body.label == "decrement count"
        assert each_loop.header_label == "For each item in items"
        assert each_loop.kind == LoopKind.ITERATOR
        assert each_loop.body.label == "process(item)"

    def test_try_catch_finally(self, java_doc):
        root = build_for_document(java_doc, "guarded")
        assert isinstance(root, Guarded)
        assert root.try_label == "Try"
        assert root.try_body.label == "open()"
        assert len(root.catches) == 1
        assert root.catches[0].type_label == "Catch IOException"
        assert root.catches[0].body.label == "log(e)"
        assert root.finally_body.label == "close()"

    def test_method_without_body(self, java_doc):
        root = build_for_document(java_doc, "hook")
        assert root == Leaf(NO_BODY_LABEL)

    def test_empty_method(self):
        doc = SourceDocument("class A { void f() {} }", "java")
        root = build_for_document(doc, "f")
        assert root == Sequence()

    def test_comments_are_skipped(self):
        doc = SourceDocument("class A { void f() { // note\n a(); /* more */ b(); } }", "java")
        root = build_for_document(doc, "f")
        assert [c.label for c in root.children] == ["a()", "b()"]

    def test_multiple_declarators(self):
        doc = SourceDocument("class A { void f() { int a = 1, b; } }", "java")
        root = build_for_document(doc, "f")
        assert root.label == "a := 1, b"

    def test_default_label(self):
        src = "class A { void f(int x) { switch (x) { case 1: a(); break; default: b(); } } }"
        root = build_for_document(SourceDocument(src, "java"), "f")
        assert [c.label for c in root.cases] == ["1", DEFAULT_LABEL]

    def test_arrow_rules_never_merge(self):
        src = "class A { void f(int x) { switch (x) { case 1 -> a(); case 2 -> { b(); c(); } } } }"
        root = build_for_document(SourceDocument(src, "java"), "f")
        assert [c.label for c in root.cases] == ["1", "2"]
        assert [n.label for n in root.cases[1].body.children] == ["b()", "c()"]

    def test_else_if_chain_nests(self):
        src = "class A { void f(int x) { if (x > 0) { a(); } else if (x < 0) { b(); } else { c(); } } }"
        root = build_for_document(SourceDocument(src, "java"), "f")
        assert isinstance(root.else_node, Branch)
        assert root.else_node.condition_label == "x < 0?"
        assert root.else_node.else_node.label == "c()"

    def test_missing_else_is_empty_leaf(self):
        src = "class A { void f(int x) { if (x == 0) { a(); } } }"
        root = build_for_document(SourceDocument(src, "java"), "f")
        assert root.condition_label == "x ≡ 0?"
        assert root.else_node == Leaf("")


class TestQuirksAndDiagnostics:
    def test_statement_before_first_label_gets_fallback_case(self, java_doc, monkeypatch):
        dialect = java_doc.dialect
        real_items = dialect.switch_items

        def items(node):
            found = list(real_items(node))
            stray = next(i for i in found if not isinstance(i, SwitchLabel))
            return iter([stray] + found)

        monkeypatch.setattr(dialect, "switch_items", items)
        root = build_for_document(java_doc, "grade")
        assert root.cases[0].label == ORPHAN_CASE_LABEL
        assert root.cases[0].source_ref is None
        assert len(root.cases) == 3

    def test_broken_construct_becomes_invalid_leaf(self, java_doc, monkeypatch):
        dialect = java_doc.dialect

        def broken(node):
            raise AttributeError("no condition")

        monkeypatch.setattr(dialect, "condition", broken)
        root = build_for_document(java_doc, "max")
        assert root.label == INVALID_LABEL
        assert root.source_ref.kind == "if_statement"

    def test_syntax_errors_do_not_raise(self):
        doc = SourceDocument("class A { void f() { a(); if (x { b(); } c(); } }", "java")
        root = build_for_document(doc, "f")
        assert any(isinstance(n, Leaf) for n in walk(root))

    def test_sibling_statements_survive_error(self):
        doc = SourceDocument("class A { void f() { a(); int = ; c(); } }", "java")
        root = build_for_document(doc, "f")
        labels = [n.label for n in walk(root) if isinstance(n, Leaf)]
        assert "a()" in labels


class TestTypeScript:
    def test_function_body(self, ts_doc):
        root = build_for_document(ts_doc, "classify")
        branch, loop, switch = root.children
        assert branch.condition_label == "n < 0?"
        assert branch.then_node.label == 'Return "negative"'
        assert branch.else_node == Leaf("")
        assert loop.header_label == "For i := 0 to i < n"
        assert loop.body.label == "Print i"
        assert switch.expression_label == "n"
        assert [c.label for c in switch.cases] == ["0", DEFAULT_LABEL]

    def test_expression_bodied_arrow(self, ts_doc):
        root = build_for_document(ts_doc, "double")
        assert root.label == "Return x * 2"

    def test_method_definition(self, ts_doc):
        root = build_for_document(ts_doc, "increment")
        assert root.label == "increase count by 1"

    def test_abstract_signature(self, ts_doc):
        assert build_for_document(ts_doc, "area") == Leaf(NO_BODY_LABEL)

    def test_for_of_and_try(self):
        src = """\
function run(xs) {
  for (const x of xs) {
    handle(x);
  }
  try {
    risky();
  } catch (err) {
    report(err);
  } finally {
    done();
  }
}
"""
        root = build_for_document(SourceDocument(src, "typescript"), "run")
        each, guarded = root.children
        assert each.header_label == "For each x in xs"
        assert guarded.catches[0].type_label == "Catch err"
        assert guarded.finally_body.label == "done()"


class TestBuildFromSnapshot:
    def test_build_uses_snapshot_generation(self, java_doc):
        snapshot = java_doc.snapshot()
        _info, method = find_method(snapshot, "max")
        root = build(snapshot, method)
        assert all(
            n.source_ref.generation == snapshot.generation
            for n in walk(root)
            if n.source_ref is not None
        )
