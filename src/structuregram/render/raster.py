"""Pillow raster surface for PNG export."""

from __future__ import annotations

import io
import math
from pathlib import Path

from PIL import Image, ImageDraw

from structuregram import config
from structuregram.diagram.geometry import Rect
from structuregram.diagram.layout import FontSpec
from structuregram.diagram.render import Theme
from structuregram.render.fonts import PillowMeasurer


class RasterSurface:
    """Draws into an RGB image. `scale` > 1 gives crisper output."""

    def __init__(
        self,
        fonts: PillowMeasurer | None = None,
        scale: float = 1.0,
        line_height: float = config.LINE_HEIGHT,
    ) -> None:
        self.fonts = fonts or PillowMeasurer()
        self.scale = scale
        self.line_height = line_height
        self.image: Image.Image | None = None
        self._draw: ImageDraw.ImageDraw | None = None
        self._theme: Theme | None = None

    def begin(self, width: int, height: int, theme: Theme) -> None:
        self._theme = theme
        size = (max(1, math.ceil(width * self.scale)), max(1, math.ceil(height * self.scale)))
        self.image = Image.new("RGB", size, theme.background)
        self._draw = ImageDraw.Draw(self.image)

    def _s(self, v: float) -> float:
        return v * self.scale

    @property
    def _stroke_width(self) -> int:
        return max(1, round(self.scale))

    def rect(self, rect: Rect, fill: str | None = None) -> None:
        box = [self._s(rect.x), self._s(rect.y), self._s(rect.right), self._s(rect.bottom)]
        self._draw.rectangle(box, fill=fill, outline=self._theme.stroke, width=self._stroke_width)

    def line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self._draw.line(
            [self._s(x1), self._s(y1), self._s(x2), self._s(y2)],
            fill=self._theme.stroke,
            width=self._stroke_width,
        )

    def text(self, lines, rect: Rect, font: FontSpec, align: str = "center") -> None:
        if not lines:
            return
        pil_font = self.fonts.font(font, self.scale)
        top = rect.y + (rect.height - len(lines) * self.line_height) / 2
        for i, line in enumerate(lines):
            width = self._draw.textlength(line, font=pil_font) / self.scale
            if align == "left":
                x = rect.x
            elif align == "right":
                x = rect.right - width
            else:
                x = rect.x + (rect.width - width) / 2
            center_y = top + self.line_height * (i + 0.5)
            left, upper, right, lower = pil_font.getbbox(line)
            y = self._s(center_y) - (upper + lower) / 2
            self._draw.text((self._s(x), y), line, font=pil_font, fill=self._theme.text)

    def finish(self) -> None:
        self._draw = None

    def save(self, path: Path) -> None:
        self.image.save(path, "PNG")

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        self.image.save(buf, "PNG")
        return buf.getvalue()
