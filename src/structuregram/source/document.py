"""Live source document backed by an incrementally re-parsed tree-sitter tree.

The document is the single writer of source text. Readers take a
`Snapshot`, which pins the bytes, tree and generation together, so a diagram
rebuild always sees one consistent version of the code.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from tree_sitter import Node, Parser, QueryCursor, Tree

from structuregram.errors import EditError, MethodNotFoundError, StaleReferenceError
from structuregram.source.languages import Dialect, dialect_for_path, get_dialect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceRef:
    """Handle to the source text a diagram node was built from."""

    start_byte: int
    end_byte: int
    kind: str
    generation: int
    start_point: tuple[int, int]
    end_point: tuple[int, int]

    @property
    def line(self) -> int:
        """1-indexed first line."""
        return self.start_point[0] + 1

    @property
    def end_line(self) -> int:
        return self.end_point[0] + 1

    @property
    def column(self) -> int:
        """1-indexed byte column of the first character."""
        return self.start_point[1] + 1


@dataclass(frozen=True)
class SourceChange:
    start_byte: int
    old_end_byte: int
    new_end_byte: int
    generation: int


@dataclass(frozen=True)
class MethodInfo:
    name: str
    kind: str
    start_byte: int
    end_byte: int
    line: int
    # Position among units sharing the same name (overloads)
    ordinal: int = 0


@dataclass(frozen=True)
class Snapshot:
    source: bytes
    tree: Tree
    generation: int
    dialect: Dialect

    def text(self, node: Node | None) -> str:
        if node is None:
            return ""
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def ref(self, node: Node) -> SourceRef:
        return SourceRef(
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            kind=node.type,
            generation=self.generation,
            start_point=(node.start_point[0], node.start_point[1]),
            end_point=(node.end_point[0], node.end_point[1]),
        )


def _point_at(source: bytes, offset: int) -> tuple[int, int]:
    row = source.count(b"\n", 0, offset)
    line_start = source.rfind(b"\n", 0, offset) + 1
    return row, offset - line_start


def _has_error_in(node: Node, start: int, end: int) -> bool:
    """True if an ERROR or missing node overlaps [start, end]."""
    if node.end_byte < start or node.start_byte > end:
        return False
    if node.type == "ERROR" or node.is_missing:
        return True
    if not node.has_error:
        return False
    return any(_has_error_in(child, start, end) for child in node.children)


def list_methods(snapshot: Snapshot) -> list[tuple[MethodInfo, Node]]:
    """Find every function-like unit in a snapshot, in source order."""
    cursor = QueryCursor(snapshot.dialect.method_query)
    matches = cursor.matches(snapshot.tree.root_node)

    found: dict[int, tuple[str, Node]] = {}
    for _pattern_idx, captures in matches:
        def_nodes = captures.get("definition", [])
        if not def_nodes:
            continue
        def_node = def_nodes[0]
        name_nodes = captures.get("name", [])
        name = snapshot.text(name_nodes[0]) if name_nodes else "<anonymous>"
        found.setdefault(def_node.start_byte, (name, def_node))

    result: list[tuple[MethodInfo, Node]] = []
    seen: dict[str, int] = {}
    for start in sorted(found):
        name, node = found[start]
        ordinal = seen.get(name, 0)
        seen[name] = ordinal + 1
        info = MethodInfo(
            name=name,
            kind=node.type,
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            line=node.start_point[0] + 1,
            ordinal=ordinal,
        )
        result.append((info, node))
    return result


def find_method(
    snapshot: Snapshot,
    name: str | None = None,
    ordinal: int = 0,
    offset: int | None = None,
) -> tuple[MethodInfo, Node]:
    """Locate one unit by name (and overload ordinal) or by a byte offset.

    With an offset, the innermost unit containing it wins. With neither,
    the first unit in the file is returned.
    """
    methods = list_methods(snapshot)
    if offset is not None:
        containing = [m for m in methods if m[0].start_byte <= offset < m[0].end_byte]
        if not containing:
            raise MethodNotFoundError(f"<offset {offset}>")
        return max(containing, key=lambda m: m[0].start_byte)
    if name is None:
        if not methods:
            raise MethodNotFoundError("<any>")
        return methods[0]
    for info, node in methods:
        if info.name == name and info.ordinal == ordinal:
            return info, node
    raise MethodNotFoundError(name)


class SourceDocument:
    """Source text plus its parse tree, with reference-based editing.

    Edits re-parse incrementally and are rejected (leaving the document
    untouched) if they introduce syntax errors. Every accepted change bumps
    the generation and is broadcast to subscribers.
    """

    def __init__(self, text: str, language: str | Dialect = "java", path: Path | None = None) -> None:
        self._dialect = get_dialect(language) if isinstance(language, str) else language
        self._parser = Parser(self._dialect.language)
        self._lock = threading.Lock()
        self._source = text.encode("utf-8")
        self._tree = self._parser.parse(self._source)
        self._generation = 0
        # (generation, start_byte) for every accepted edit
        self._edits: list[tuple[int, int]] = []
        self._listeners: list[Callable[[SourceChange], None]] = []
        self.path = path

    @classmethod
    def from_path(cls, path: Path, language: str | None = None) -> SourceDocument:
        dialect = get_dialect(language) if language else dialect_for_path(path)
        text = path.read_text(encoding="utf-8", errors="replace")
        return cls(text, dialect, path=path)

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def text(self) -> str:
        with self._lock:
            return self._source.decode("utf-8", errors="replace")

    def snapshot(self) -> Snapshot:
        with self._lock:
            return Snapshot(self._source, self._tree, self._generation, self._dialect)

    def methods(self) -> list[MethodInfo]:
        return [info for info, _node in list_methods(self.snapshot())]

    def method_named(self, name: str, ordinal: int = 0) -> MethodInfo:
        info, _node = find_method(self.snapshot(), name, ordinal)
        return info

    def method_at(self, offset: int) -> MethodInfo:
        """The innermost unit containing byte `offset`."""
        info, _node = find_method(self.snapshot(), offset=offset)
        return info

    # ── Subscriptions ──

    def subscribe(self, listener: Callable[[SourceChange], None]) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[SourceChange], None]) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, change: SourceChange) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(change)

    # ── References ──

    def _is_current(self, ref: SourceRef) -> bool:
        # Caller holds the lock
        if ref.generation > self._generation or ref.end_byte > len(self._source):
            return False
        for generation, start in self._edits:
            if generation > ref.generation and start < ref.end_byte:
                return False
        return True

    def _check(self, ref: SourceRef) -> None:
        if not self._is_current(ref):
            raise StaleReferenceError(
                f"{ref.kind} at line {ref.line} changed since the diagram was built"
            )

    def is_valid(self, ref: SourceRef) -> bool:
        """True if no edit since the ref was minted touched or preceded it."""
        with self._lock:
            return self._is_current(ref)

    def text_of(self, ref: SourceRef) -> str:
        with self._lock:
            self._check(ref)
            return self._source[ref.start_byte:ref.end_byte].decode("utf-8", errors="replace")

    # ── Mutation ──

    def replace(self, ref: SourceRef, text: str) -> SourceChange:
        return self._apply(lambda source: (ref.start_byte, ref.end_byte, text, text), ref)

    def insert_after(self, ref: SourceRef, text: str) -> SourceChange:
        """Insert a statement on a new line after `ref`, matching its indent."""

        def span(source: bytes) -> tuple[int, int, str, str]:
            line_start = source.rfind(b"\n", 0, ref.start_byte) + 1
            indent = source[line_start:ref.start_byte].decode("utf-8", errors="replace")
            if indent.strip():
                indent = ""
            return ref.end_byte, ref.end_byte, "\n" + indent + text.strip(), text

        return self._apply(span, ref)

    def delete(self, ref: SourceRef) -> SourceChange:
        """Remove the referenced text, dropping its line if nothing else is on it."""

        def span(source: bytes) -> tuple[int, int, str, str]:
            start, end = ref.start_byte, ref.end_byte
            line_start = source.rfind(b"\n", 0, start) + 1
            line_end = source.find(b"\n", end)
            if line_end == -1:
                line_end = len(source)
            if not source[line_start:start].strip() and not source[end:line_end].strip():
                start = line_start
                end = min(line_end + 1, len(source))
            removed = source[ref.start_byte:ref.end_byte].decode("utf-8", errors="replace")
            return start, end, "", removed

        return self._apply(span, ref)

    def set_text(self, text: str) -> SourceChange:
        """Replace the whole document, as an external writer would."""
        return self._apply(lambda source: (0, len(source), text, text), validate=False)

    def _apply(
        self,
        span: Callable[[bytes], tuple[int, int, str, str]],
        ref: SourceRef | None = None,
        validate: bool = True,
    ) -> SourceChange:
        """Check `ref`, then compute and apply the edit under the same lock.

        `span` maps the current source to (start, old_end, new_text,
        reported_text); the reported text is what a rejection carries.
        """
        with self._lock:
            if ref is not None:
                self._check(ref)
            old_source = self._source
            start, old_end, text, reported = span(old_source)
            new_bytes = text.encode("utf-8")
            had_error = self._tree.root_node.has_error
            # Snapshots share the current tree, so edit a copy
            old_tree = self._tree.copy()
            new_source = old_source[:start] + new_bytes + old_source[old_end:]
            new_end = start + len(new_bytes)

            old_tree.edit(
                start_byte=start,
                old_end_byte=old_end,
                new_end_byte=new_end,
                start_point=_point_at(old_source, start),
                old_end_point=_point_at(old_source, old_end),
                new_end_point=_point_at(new_source, new_end),
            )
            new_tree = self._parser.parse(new_source, old_tree)

            if validate:
                root = new_tree.root_node
                introduced = root.has_error and not had_error
                if introduced or _has_error_in(root, start, new_end):
                    logger.info("Rejected edit at byte %d: result does not parse", start)
                    raise EditError(reported, "Edit does not parse")

            self._source = new_source
            self._tree = new_tree
            self._generation += 1
            self._edits.append((self._generation, start))
            change = SourceChange(start, old_end, new_end, self._generation)

        logger.debug(
            "Applied edit [%d, %d) -> %d bytes, generation %d",
            start, old_end, len(new_bytes), change.generation,
        )
        self._notify(change)
        return change
