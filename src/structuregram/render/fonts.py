"""Text measurement: Pillow font metrics, plus a fixed-width fallback."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import ImageFont

from structuregram import config
from structuregram.diagram.geometry import Box
from structuregram.diagram.layout import FontSpec

logger = logging.getLogger(__name__)


class PillowMeasurer:
    """TextMeasurer backed by a TrueType font loaded through Pillow.

    Tries, in order: an explicit font file, the configured family (with a
    "-Bold" variant for bold text), DejaVu Sans, and finally Pillow's
    built-in default font.
    """

    def __init__(
        self,
        family: str = config.FONT_FAMILY,
        path: Path | None = config.FONT_PATH,
    ) -> None:
        self.family = family
        self.path = path
        self._cache: dict[tuple[bool, int], ImageFont.FreeTypeFont | ImageFont.ImageFont] = {}

    def _candidates(self, bold: bool) -> list[str]:
        candidates = []
        if self.path:
            candidates.append(str(self.path))
        suffix = "-Bold" if bold else ""
        candidates.append(f"{self.family}{suffix}.ttf")
        candidates.append(f"{self.family}{suffix}")
        candidates.append(f"DejaVuSans{suffix}.ttf")
        candidates.append(f"/usr/share/fonts/truetype/dejavu/DejaVuSans{suffix}.ttf")
        return candidates

    def font(self, spec: FontSpec, scale: float = 1.0) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        size = max(1, round(spec.size * scale))
        key = (spec.bold, size)
        if key in self._cache:
            return self._cache[key]

        font = None
        for candidate in self._candidates(spec.bold):
            try:
                font = ImageFont.truetype(candidate, size)
                break
            except OSError:
                continue
        if font is None:
            logger.info("No TrueType font found for %r, using Pillow's default", self.family)
            font = ImageFont.load_default(size=size)
        self._cache[key] = font
        return font

    def measure(self, text: str, font: FontSpec) -> Box:
        pil_font = self.font(font)
        return Box(float(pil_font.getlength(text)), self.line_height(font))

    def line_height(self, font: FontSpec) -> float:
        pil_font = self.font(font)
        if hasattr(pil_font, "getmetrics"):
            ascent, descent = pil_font.getmetrics()
            return float(ascent + descent)
        left, top, right, bottom = pil_font.getbbox("Mg")
        return float(bottom - top)


class FixedWidthMeasurer:
    """Every character is `char_width` wide. Deterministic, needs no fonts."""

    def __init__(self, char_width: float = 7.0, height: float = 16.0) -> None:
        self.char_width = char_width
        self.height = height

    def measure(self, text: str, font: FontSpec) -> Box:
        return Box(len(text) * self.char_width, self.height)
