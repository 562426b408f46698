"""SVG drawing surface."""

from __future__ import annotations

from xml.sax.saxutils import escape

from structuregram import config
from structuregram.diagram.geometry import Rect
from structuregram.diagram.layout import FontSpec
from structuregram.diagram.render import Theme


def _num(v: float) -> str:
    return f"{v:.2f}".rstrip("0").rstrip(".")


class SvgSurface:
    def __init__(self, scale: float = 1.0, line_height: float = config.LINE_HEIGHT) -> None:
        self.scale = scale
        self.line_height = line_height
        self.width = 0
        self.height = 0
        self._parts: list[str] = []
        self._theme: Theme | None = None

    def begin(self, width: int, height: int, theme: Theme) -> None:
        self.width, self.height = width, height
        self._theme = theme
        w, h = width * self.scale, height * self.scale
        self._parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{_num(w)}" height="{_num(h)}" '
            f'viewBox="0 0 {width} {height}">',
            f'<rect x="0" y="0" width="{width}" height="{height}" fill="{theme.background}"/>',
        ]

    def rect(self, rect: Rect, fill: str | None = None) -> None:
        self._parts.append(
            f'<rect x="{_num(rect.x)}" y="{_num(rect.y)}" width="{_num(rect.width)}" '
            f'height="{_num(rect.height)}" fill="{fill or "none"}" '
            f'stroke="{self._theme.stroke}" stroke-width="1.2"/>'
        )

    def line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self._parts.append(
            f'<line x1="{_num(x1)}" y1="{_num(y1)}" x2="{_num(x2)}" y2="{_num(y2)}" '
            f'stroke="{self._theme.stroke}" stroke-width="1.2"/>'
        )

    def text(self, lines, rect: Rect, font: FontSpec, align: str = "center") -> None:
        if not lines:
            return
        if align == "left":
            x, anchor = rect.x, "start"
        elif align == "right":
            x, anchor = rect.right, "end"
        else:
            x, anchor = rect.x + rect.width / 2, "middle"
        weight = "bold" if font.bold else "normal"
        top = rect.y + (rect.height - len(lines) * self.line_height) / 2
        for i, line in enumerate(lines):
            y = top + self.line_height * (i + 0.5)
            self._parts.append(
                f'<text x="{_num(x)}" y="{_num(y)}" text-anchor="{anchor}" dominant-baseline="middle" '
                f'font-family="{escape(font.family)}, sans-serif" font-size="{font.size}" '
                f'font-weight="{weight}" fill="{self._theme.text}">{escape(line)}</text>'
            )

    def finish(self) -> None:
        self._parts.append("</svg>")

    def getvalue(self) -> str:
        return "\n".join(self._parts)
