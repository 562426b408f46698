"""Pan and zoom state for an interactive diagram view."""

from __future__ import annotations

from dataclasses import dataclass

from structuregram import config
from structuregram.diagram.geometry import Point, Rect

MIN_SCALE = 0.2
MAX_SCALE = 5.0
ZOOM_FACTOR = 1.1


def _clamp(scale: float) -> float:
    return max(MIN_SCALE, min(MAX_SCALE, scale))


@dataclass
class ViewTransform:
    """Uniform scale plus translation between screen and logical space.

    Screen = (logical + padding) * scale + pan. The padding is the fixed
    margin the renderer leaves around the diagram.
    """

    scale: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    padding: float = config.OUTER_PADDING

    def zoom_at(self, point: Point, delta: float) -> None:
        """Zoom by `delta` steps (positive zooms in) keeping `point` fixed on screen."""
        new_scale = _clamp(self.scale * ZOOM_FACTOR ** delta)
        ratio = new_scale / self.scale
        self.pan_x = point.x - (point.x - self.pan_x) * ratio
        self.pan_y = point.y - (point.y - self.pan_y) * ratio
        self.scale = new_scale

    def pan(self, dx: float, dy: float) -> None:
        self.pan_x += dx
        self.pan_y += dy

    def reset(self) -> None:
        self.scale = 1.0
        self.pan_x = 0.0
        self.pan_y = 0.0

    def to_logical(self, point: Point) -> Point:
        return Point(
            (point.x - self.pan_x) / self.scale - self.padding,
            (point.y - self.pan_y) / self.scale - self.padding,
        )

    def to_screen(self, rect: Rect) -> Rect:
        return Rect(
            (rect.x + self.padding) * self.scale + self.pan_x,
            (rect.y + self.padding) * self.scale + self.pan_y,
            rect.width * self.scale,
            rect.height * self.scale,
        )
