"""Diagram node types.

A diagram is a strict tree of frozen nodes. Each node may carry the
`SourceRef` of the statement it was built from; synthetic placeholders carry
none. Geometry is never stored here: layout derives it on every pass.

The node set is closed. Adding a shape means updating the builder, the
measure and placement passes, and the renderer.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union

from structuregram.source.document import SourceRef


class LoopKind(enum.Enum):
    PRE_TEST = "pre_test"
    POST_TEST = "post_test"
    COUNTED = "counted"
    ITERATOR = "iterator"


@dataclass(frozen=True)
class Leaf:
    label: str
    source_ref: SourceRef | None = None


@dataclass(frozen=True)
class Sequence:
    children: tuple[DiagramNode, ...] = ()
    source_ref: SourceRef | None = None


@dataclass(frozen=True)
class Branch:
    condition_label: str
    then_node: DiagramNode = field(default_factory=lambda: Leaf(""))
    else_node: DiagramNode = field(default_factory=lambda: Leaf(""))
    source_ref: SourceRef | None = None


@dataclass(frozen=True)
class Case:
    label: str
    body: Sequence
    source_ref: SourceRef | None = None


@dataclass(frozen=True)
class MultiwayBranch:
    expression_label: str
    cases: tuple[Case, ...] = ()
    source_ref: SourceRef | None = None


@dataclass(frozen=True)
class Loop:
    header_label: str
    body: DiagramNode
    kind: LoopKind = LoopKind.PRE_TEST
    source_ref: SourceRef | None = None


@dataclass(frozen=True)
class CatchClause:
    type_label: str
    body: DiagramNode
    source_ref: SourceRef | None = None


@dataclass(frozen=True)
class Guarded:
    try_body: DiagramNode
    catches: tuple[CatchClause, ...] = ()
    finally_body: DiagramNode | None = None
    try_label: str = "Try"
    source_ref: SourceRef | None = None


DiagramNode = Union[Leaf, Sequence, Branch, MultiwayBranch, Loop, Guarded]

DEFAULT_LABEL = "Default"
INVALID_LABEL = "Invalid"


def children(node: DiagramNode) -> list[DiagramNode]:
    """Direct child nodes in placement order."""
    if isinstance(node, Leaf):
        return []
    if isinstance(node, Sequence):
        return list(node.children)
    if isinstance(node, Branch):
        return [node.then_node, node.else_node]
    if isinstance(node, MultiwayBranch):
        return [case.body for case in node.cases]
    if isinstance(node, Loop):
        return [node.body]
    if isinstance(node, Guarded):
        result = [node.try_body] + [c.body for c in node.catches]
        if node.finally_body is not None:
            result.append(node.finally_body)
        return result
    raise TypeError(f"Not a diagram node: {node!r}")


def walk(node: DiagramNode):
    """Yield every node of the tree, parents before children."""
    yield node
    for child in children(node):
        yield from walk(child)


def label_of(node: DiagramNode) -> str:
    if isinstance(node, Leaf):
        return node.label
    if isinstance(node, Branch):
        return node.condition_label
    if isinstance(node, MultiwayBranch):
        return node.expression_label
    if isinstance(node, Loop):
        return node.header_label
    if isinstance(node, Guarded):
        return node.try_label
    return ""
