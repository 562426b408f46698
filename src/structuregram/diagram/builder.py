"""Build a diagram tree from a function body in a source snapshot."""

from __future__ import annotations

import logging

from tree_sitter import Node

from structuregram.diagram.model import (
    DEFAULT_LABEL,
    INVALID_LABEL,
    Branch,
    Case,
    CatchClause,
    DiagramNode,
    Guarded,
    Leaf,
    Loop,
    LoopKind,
    MultiwayBranch,
    Sequence,
)
from structuregram.naturalize import ASSIGN, naturalize
from structuregram.source.document import SourceDocument, Snapshot, find_method
from structuregram.source.languages import StatementKind, SwitchLabel

logger = logging.getLogger(__name__)

NO_BODY_LABEL = "Abstract/Native Method"
# Label for statements that appear in a switch before any case label
ORPHAN_CASE_LABEL = "?"


class _CaseAccumulator:
    def __init__(self, labels: list[str], node: Node | None, arrow: bool = False) -> None:
        self.labels = labels
        self.node = node
        self.arrow = arrow
        self.items: list[DiagramNode] = []
        self.terminated = False

    def accepts_label(self) -> bool:
        return not self.items and not self.terminated and not self.arrow


class DiagramBuilder:
    """Recursive descent over one snapshot.

    Never raises for a parsed tree: unrecognised or broken statements turn
    into `Leaf("Invalid")` so the rest of the body still renders.
    """

    def __init__(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot
        self.dialect = snapshot.dialect

    def build_method(self, method: Node) -> DiagramNode:
        body = self.dialect.method_body(method)
        if body is None:
            return Leaf(NO_BODY_LABEL)
        if self.dialect.kind(body) != StatementKind.BLOCK:
            # Expression-bodied arrow function
            return Leaf("Return " + self._natural(body), self.snapshot.ref(body))
        # The top-level wrapper has no source ref of its own
        return self._block(body, top_level=True)

    # ── Helpers ──

    def _natural(self, node: Node | None) -> str:
        return naturalize(self.snapshot.text(node))

    def _block(self, node: Node, top_level: bool = False) -> DiagramNode:
        items = self._statements(self.dialect.statements(node))
        if len(items) == 1:
            return items[0]
        return Sequence(tuple(items), None if top_level else self.snapshot.ref(node))

    def _statements(self, nodes: list[Node]) -> list[DiagramNode]:
        result = []
        for node in nodes:
            kind = self.dialect.kind(node)
            if kind in (StatementKind.COMMENT, StatementKind.EMPTY):
                continue
            result.append(self.statement(node))
        return result

    def _body(self, node: Node | None) -> DiagramNode:
        if node is None:
            return Leaf("")
        return self.statement(node)

    # ── Dispatch ──

    def statement(self, node: Node) -> DiagramNode:
        kind = self.dialect.kind(node)
        try:
            if kind == StatementKind.BLOCK:
                return self._block(node)
            if kind == StatementKind.IF:
                return self._if(node)
            if kind == StatementKind.SWITCH:
                return self._switch(node)
            if kind in (StatementKind.WHILE, StatementKind.DO_WHILE, StatementKind.FOR, StatementKind.FOR_EACH):
                return self._loop(node, kind)
            if kind == StatementKind.TRY:
                return self._try(node)
            if kind == StatementKind.RETURN:
                value = self._natural(self.dialect.return_value(node))
                return Leaf(f"Return {value}".strip(), self.snapshot.ref(node))
            if kind == StatementKind.BREAK:
                return Leaf("Break", self.snapshot.ref(node))
            if kind == StatementKind.CONTINUE:
                return Leaf("Continue", self.snapshot.ref(node))
            if kind == StatementKind.DECLARATION:
                return self._declaration(node)
            if kind == StatementKind.INVALID:
                return Leaf(INVALID_LABEL, self.snapshot.ref(node))
            if kind in (StatementKind.COMMENT, StatementKind.EMPTY):
                return Leaf("", self.snapshot.ref(node))
            return Leaf(self._natural(node), self.snapshot.ref(node))
        except (AttributeError, IndexError, TypeError, ValueError):
            logger.warning("Could not build %s at line %d", node.type, node.start_point[0] + 1, exc_info=True)
            return Leaf(INVALID_LABEL, self.snapshot.ref(node))

    # ── Constructs ──

    def _if(self, node: Node) -> DiagramNode:
        condition = self.dialect.condition(node)
        label = (self._natural(condition) if condition is not None else "?") + "?"
        return Branch(
            condition_label=label,
            then_node=self._body(self.dialect.then_branch(node)),
            else_node=self._body(self.dialect.else_branch(node)),
            source_ref=self.snapshot.ref(node),
        )

    def _switch(self, node: Node) -> DiagramNode:
        subject = self.dialect.switch_subject(node)
        expression = self._natural(subject) if subject is not None else "?"

        cases: list[Case] = []
        current: _CaseAccumulator | None = None

        def flush() -> None:
            if current is None:
                return
            ref = self.snapshot.ref(current.node) if current.node is not None else None
            cases.append(Case(", ".join(current.labels), Sequence(tuple(current.items)), ref))

        for item in self.dialect.switch_items(node):
            if isinstance(item, SwitchLabel):
                label = self._case_label(item)
                if current is not None and current.accepts_label() and not item.arrow:
                    current.labels.append(label)
                    continue
                flush()
                current = _CaseAccumulator([label], item.node, arrow=item.arrow)
                continue

            kind = self.dialect.kind(item)
            if kind in (StatementKind.COMMENT, StatementKind.EMPTY):
                continue
            if current is None:
                logger.debug("Statement before first case label at line %d", item.start_point[0] + 1)
                current = _CaseAccumulator([ORPHAN_CASE_LABEL], None)
            if kind == StatementKind.BREAK:
                current.terminated = True
                continue
            current.items.append(self.statement(item))
        flush()

        return MultiwayBranch(expression, tuple(cases), self.snapshot.ref(node))

    def _case_label(self, label: SwitchLabel) -> str:
        if label.is_default:
            return DEFAULT_LABEL
        values = [self._natural(v) for v in label.values]
        text = ", ".join(v for v in values if v)
        return text or "?"

    def _loop(self, node: Node, kind: StatementKind) -> DiagramNode:
        body = self._body(self.dialect.loop_body(node))
        ref = self.snapshot.ref(node)

        if kind == StatementKind.WHILE:
            cond = self.dialect.condition(node)
            header = "While " + (self._natural(cond) if cond is not None else "True")
            return Loop(header, body, LoopKind.PRE_TEST, ref)

        if kind == StatementKind.DO_WHILE:
            cond = self.dialect.condition(node)
            header = "Do ... While " + (self._natural(cond) if cond is not None else "True")
            return Loop(header, body, LoopKind.POST_TEST, ref)

        if kind == StatementKind.FOR:
            init, cond = self.dialect.for_parts(node)
            header = "Loop"
            if init and cond is not None:
                init_text = ", ".join(self._natural(n) for n in init)
                header = f"For {init_text} to {self._natural(cond)}"
            return Loop(header, body, LoopKind.COUNTED, ref)

        binding, iterable = self.dialect.foreach_parts(node)
        name = self._natural(binding) or "?"
        value = self._natural(iterable) or "?"
        return Loop(f"For each {name} in {value}", body, LoopKind.ITERATOR, ref)

    def _try(self, node: Node) -> DiagramNode:
        parts = self.dialect.try_parts(node)
        try_label = "Try"
        if parts.resources is not None:
            try_label = "Try " + self._natural(parts.resources)

        catches = []
        for catch in parts.catches:
            type_text = self._natural(catch.type_node).lstrip(":").strip()
            label = f"Catch {type_text}" if type_text else "Catch"
            catches.append(CatchClause(label, self._body(catch.body), self.snapshot.ref(catch.node)))

        finally_body = self._body(parts.finally_body) if parts.finally_body is not None else None
        return Guarded(
            try_body=self._body(parts.body),
            catches=tuple(catches),
            finally_body=finally_body,
            try_label=try_label,
            source_ref=self.snapshot.ref(node),
        )

    def _declaration(self, node: Node) -> DiagramNode:
        parts = []
        for name, value in self.dialect.declarators(node):
            if name is None:
                continue
            text = self.snapshot.text(name)
            if value is not None:
                text += f" {ASSIGN} {self._natural(value)}"
            parts.append(text)
        if not parts:
            return Leaf(self._natural(node), self.snapshot.ref(node))
        return Leaf(", ".join(parts), self.snapshot.ref(node))


def build(snapshot: Snapshot, method: Node) -> DiagramNode:
    """Build the diagram for one function-like node of `snapshot`."""
    return DiagramBuilder(snapshot).build_method(method)


def build_for_document(
    document: SourceDocument,
    name: str | None = None,
    ordinal: int = 0,
) -> DiagramNode:
    """Snapshot `document` and build the diagram of the named unit."""
    snapshot = document.snapshot()
    _info, method = find_method(snapshot, name, ordinal)
    return build(snapshot, method)
