"""Map logical points back to the diagram nodes drawn there."""

from __future__ import annotations

from structuregram.diagram.geometry import Point, Rect
from structuregram.diagram.model import DiagramNode


class HitIndex:
    """Rectangles recorded during one render pass, in drawing order.

    A linear scan is plenty for a single function body. When rectangles
    overlap, the most recently recorded one wins: children are recorded
    after their parent, so the innermost node is returned.
    """

    def __init__(self) -> None:
        self._entries: list[tuple[Rect, DiagramNode]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries = []

    def record(self, rect: Rect, node: DiagramNode) -> None:
        self._entries.append((rect, node))

    def entries(self) -> list[tuple[Rect, DiagramNode]]:
        return list(self._entries)

    def resolve(self, point: Point) -> DiagramNode | None:
        for rect, node in reversed(self._entries):
            if rect.contains(point):
                return node
        return None


def resolve(index: HitIndex, point: Point) -> DiagramNode | None:
    return index.resolve(point)
