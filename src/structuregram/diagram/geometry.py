"""Plain geometry values shared by layout, rendering and hit-testing."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Box:
    """Unplaced size in logical units. Fractional until placement."""

    width: float
    height: float


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Placed rectangle. Integer coordinates once produced by placement."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, point: Point) -> bool:
        # Half-open, so adjacent tiles never both claim a boundary point
        return self.x <= point.x < self.right and self.y <= point.y < self.bottom
