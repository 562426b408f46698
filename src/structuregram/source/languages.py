"""Tree-sitter dialects: statement classification and construct accessors.

Each dialect maps its grammar's node types onto a small closed set of
statement kinds and exposes the pieces of each construct (condition, bodies,
case labels, catch clauses) so the diagram builder never touches grammar
specifics.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

import tree_sitter_java as ts_java
import tree_sitter_typescript as ts_typescript
from tree_sitter import Language, Node, Query

from structuregram.errors import UnsupportedLanguageError

TS_LANGUAGE = Language(ts_typescript.language_typescript())
TSX_LANGUAGE = Language(ts_typescript.language_tsx())
JAVA_LANGUAGE = Language(ts_java.language())


class StatementKind(enum.Enum):
    BLOCK = "block"
    IF = "if"
    SWITCH = "switch"
    WHILE = "while"
    DO_WHILE = "do_while"
    FOR = "for"
    FOR_EACH = "for_each"
    TRY = "try"
    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"
    DECLARATION = "declaration"
    EXPRESSION = "expression"
    COMMENT = "comment"
    EMPTY = "empty"
    INVALID = "invalid"
    OTHER = "other"


@dataclass
class SwitchLabel:
    """One `case`/`default` label inside a switch body."""

    node: Node
    values: list[Node] = field(default_factory=list)
    is_default: bool = False
    # Arrow-style rules (`case X -> ...`) never fall through
    arrow: bool = False


@dataclass
class CatchPart:
    node: Node
    type_node: Node | None
    body: Node | None


@dataclass
class TryParts:
    body: Node | None
    resources: Node | None = None
    catches: list[CatchPart] = field(default_factory=list)
    finally_body: Node | None = None


def _unwrap_parens(node: Node | None) -> Node | None:
    while node is not None and node.type == "parenthesized_expression":
        inner = [c for c in node.named_children if c.type not in ("comment", "line_comment", "block_comment")]
        if not inner:
            return None
        node = inner[0]
    return node


def _first_named(node: Node | None, *types: str) -> Node | None:
    if node is None:
        return None
    for child in node.named_children:
        if not types or child.type in types:
            return child
    return None


class Dialect:
    """Grammar adapter shared by all supported languages."""

    name: str = ""
    language: Language
    kinds: dict[str, StatementKind] = {}
    comment_types: frozenset[str] = frozenset()
    # Query capturing function-like units as @definition with an optional @name
    method_query_src: str = ""

    def __init__(self) -> None:
        self.method_query = Query(self.language, self.method_query_src)

    def kind(self, node: Node) -> StatementKind:
        if node.type == "ERROR" or node.is_missing:
            return StatementKind.INVALID
        if node.type in self.comment_types:
            return StatementKind.COMMENT
        return self.kinds.get(node.type, StatementKind.OTHER)

    def statements(self, block: Node) -> list[Node]:
        """Statements directly inside a block, comments included."""
        return list(block.named_children)

    def method_body(self, method: Node) -> Node | None:
        return method.child_by_field_name("body")

    def condition(self, node: Node) -> Node | None:
        return _unwrap_parens(node.child_by_field_name("condition"))

    def then_branch(self, node: Node) -> Node | None:
        return node.child_by_field_name("consequence")

    def else_branch(self, node: Node) -> Node | None:
        return node.child_by_field_name("alternative")

    def loop_body(self, node: Node) -> Node | None:
        return node.child_by_field_name("body")

    def return_value(self, node: Node) -> Node | None:
        for child in node.named_children:
            if child.type not in self.comment_types:
                return child
        return None

    # Subclasses provide the rest
    def for_parts(self, node: Node) -> tuple[list[Node], Node | None]:
        raise NotImplementedError

    def foreach_parts(self, node: Node) -> tuple[Node | None, Node | None]:
        raise NotImplementedError

    def switch_subject(self, node: Node) -> Node | None:
        raise NotImplementedError

    def switch_items(self, node: Node) -> Iterator[SwitchLabel | Node]:
        raise NotImplementedError

    def declarators(self, node: Node) -> list[tuple[Node | None, Node | None]]:
        raise NotImplementedError

    def try_parts(self, node: Node) -> TryParts:
        raise NotImplementedError


class JavaDialect(Dialect):
    name = "java"
    language = JAVA_LANGUAGE
    comment_types = frozenset({"line_comment", "block_comment"})
    kinds = {
        "block": StatementKind.BLOCK,
        "constructor_body": StatementKind.BLOCK,
        "if_statement": StatementKind.IF,
        "switch_expression": StatementKind.SWITCH,
        "switch_statement": StatementKind.SWITCH,
        "while_statement": StatementKind.WHILE,
        "do_statement": StatementKind.DO_WHILE,
        "for_statement": StatementKind.FOR,
        "enhanced_for_statement": StatementKind.FOR_EACH,
        "try_statement": StatementKind.TRY,
        "try_with_resources_statement": StatementKind.TRY,
        "return_statement": StatementKind.RETURN,
        "break_statement": StatementKind.BREAK,
        "continue_statement": StatementKind.CONTINUE,
        "local_variable_declaration": StatementKind.DECLARATION,
        "expression_statement": StatementKind.EXPRESSION,
    }
    method_query_src = """
(method_declaration
  name: (identifier) @name) @definition

(constructor_declaration
  name: (identifier) @name) @definition
"""

    def for_parts(self, node: Node) -> tuple[list[Node], Node | None]:
        init = node.children_by_field_name("init")
        return init, node.child_by_field_name("condition")

    def foreach_parts(self, node: Node) -> tuple[Node | None, Node | None]:
        return node.child_by_field_name("name"), node.child_by_field_name("value")

    def switch_subject(self, node: Node) -> Node | None:
        return _unwrap_parens(node.child_by_field_name("condition"))

    def switch_items(self, node: Node) -> Iterator[SwitchLabel | Node]:
        body = node.child_by_field_name("body")
        if body is None:
            return
        for group in body.named_children:
            if group.type == "switch_block_statement_group":
                for child in group.named_children:
                    if child.type == "switch_label":
                        yield self._label(child)
                    else:
                        yield child
            elif group.type == "switch_rule":
                label = _first_named(group, "switch_label")
                if label is None:
                    continue
                yield self._label(label, arrow=True)
                for child in group.named_children:
                    if child.id == label.id:
                        continue
                    if child.type == "block":
                        yield from child.named_children
                    else:
                        yield child
            elif group.type in self.comment_types:
                yield group

    def _label(self, label: Node, arrow: bool = False) -> SwitchLabel:
        is_default = any(c.type == "default" for c in label.children)
        values = [c for c in label.named_children if c.type not in self.comment_types]
        return SwitchLabel(node=label, values=values, is_default=is_default, arrow=arrow)

    def declarators(self, node: Node) -> list[tuple[Node | None, Node | None]]:
        return [
            (d.child_by_field_name("name"), d.child_by_field_name("value"))
            for d in node.children_by_field_name("declarator")
        ]

    def try_parts(self, node: Node) -> TryParts:
        parts = TryParts(
            body=node.child_by_field_name("body"),
            resources=node.child_by_field_name("resources"),
        )
        for child in node.named_children:
            if child.type == "catch_clause":
                param = _first_named(child, "catch_formal_parameter")
                type_node = _first_named(param, "catch_type")
                parts.catches.append(
                    CatchPart(node=child, type_node=type_node, body=child.child_by_field_name("body"))
                )
            elif child.type == "finally_clause":
                parts.finally_body = _first_named(child, "block")
        return parts


class TypeScriptDialect(Dialect):
    name = "typescript"
    language = TS_LANGUAGE
    comment_types = frozenset({"comment"})
    kinds = {
        "statement_block": StatementKind.BLOCK,
        "if_statement": StatementKind.IF,
        "switch_statement": StatementKind.SWITCH,
        "while_statement": StatementKind.WHILE,
        "do_statement": StatementKind.DO_WHILE,
        "for_statement": StatementKind.FOR,
        "for_in_statement": StatementKind.FOR_EACH,
        "try_statement": StatementKind.TRY,
        "return_statement": StatementKind.RETURN,
        "break_statement": StatementKind.BREAK,
        "continue_statement": StatementKind.CONTINUE,
        "lexical_declaration": StatementKind.DECLARATION,
        "variable_declaration": StatementKind.DECLARATION,
        "expression_statement": StatementKind.EXPRESSION,
        "empty_statement": StatementKind.EMPTY,
    }
    method_query_src = """
(function_declaration
  name: (_) @name) @definition

(generator_function_declaration
  name: (_) @name) @definition

(method_definition
  name: (_) @name) @definition

(abstract_method_signature
  name: (_) @name) @definition

(variable_declarator
  name: (identifier) @name
  value: (arrow_function) @definition)
"""

    def else_branch(self, node: Node) -> Node | None:
        alt = node.child_by_field_name("alternative")
        if alt is not None and alt.type == "else_clause":
            return _first_named(alt)
        return alt

    def for_parts(self, node: Node) -> tuple[list[Node], Node | None]:
        init = [n for n in node.children_by_field_name("initializer") if n.type != "empty_statement"]
        cond = node.child_by_field_name("condition")
        if cond is not None and cond.type in ("empty_statement", ";"):
            cond = None
        return init, cond

    def foreach_parts(self, node: Node) -> tuple[Node | None, Node | None]:
        return node.child_by_field_name("left"), node.child_by_field_name("right")

    def switch_subject(self, node: Node) -> Node | None:
        return _unwrap_parens(node.child_by_field_name("value"))

    def switch_items(self, node: Node) -> Iterator[SwitchLabel | Node]:
        body = node.child_by_field_name("body")
        if body is None:
            return
        for case in body.named_children:
            if case.type == "switch_case":
                value = case.child_by_field_name("value")
                yield SwitchLabel(node=case, values=[value] if value is not None else [])
                for child in case.named_children:
                    if value is None or child.id != value.id:
                        yield child
            elif case.type == "switch_default":
                yield SwitchLabel(node=case, is_default=True)
                yield from case.named_children
            elif case.type in self.comment_types:
                yield case

    def declarators(self, node: Node) -> list[tuple[Node | None, Node | None]]:
        return [
            (d.child_by_field_name("name"), d.child_by_field_name("value"))
            for d in node.named_children
            if d.type == "variable_declarator"
        ]

    def try_parts(self, node: Node) -> TryParts:
        parts = TryParts(body=node.child_by_field_name("body"))
        handler = node.child_by_field_name("handler")
        if handler is not None:
            type_node = handler.child_by_field_name("type") or handler.child_by_field_name("parameter")
            parts.catches.append(
                CatchPart(node=handler, type_node=type_node, body=handler.child_by_field_name("body"))
            )
        finalizer = node.child_by_field_name("finalizer")
        if finalizer is not None:
            parts.finally_body = finalizer.child_by_field_name("body")
        return parts


class TsxDialect(TypeScriptDialect):
    name = "tsx"
    language = TSX_LANGUAGE


_DIALECTS: dict[str, type[Dialect]] = {
    "java": JavaDialect,
    "typescript": TypeScriptDialect,
    "tsx": TsxDialect,
}

_SUFFIXES = {
    ".java": "java",
    ".ts": "typescript",
    ".mts": "typescript",
    ".js": "typescript",
    ".mjs": "typescript",
    ".tsx": "tsx",
    ".jsx": "tsx",
}

_cache: dict[str, Dialect] = {}


def get_dialect(name: str) -> Dialect:
    """Return the shared dialect instance for a language name."""
    key = name.lower()
    if key in ("ts", "javascript", "js"):
        key = "typescript"
    if key not in _DIALECTS:
        raise UnsupportedLanguageError(name)
    if key not in _cache:
        _cache[key] = _DIALECTS[key]()
    return _cache[key]


def dialect_for_path(path: Path) -> Dialect:
    suffix = path.suffix.lower()
    if suffix not in _SUFFIXES:
        raise UnsupportedLanguageError(suffix or str(path))
    return get_dialect(_SUFFIXES[suffix])
