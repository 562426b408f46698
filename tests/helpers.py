"""Shared test helpers: a surface that records draw calls, tree lookups."""

from structuregram.diagram.geometry import Rect
from structuregram.diagram.hittest import HitIndex
from structuregram.diagram.model import Leaf, walk


class RecordingSurface:
    """Surface that keeps every call for later inspection."""

    def __init__(self):
        self.size = None
        self.theme = None
        self.rects = []
        self.lines = []
        self.texts = []
        self.finished = False

    def begin(self, width, height, theme):
        self.size = (width, height)
        self.theme = theme

    def rect(self, rect, fill=None):
        self.rects.append((rect, fill))

    def line(self, x1, y1, x2, y2):
        self.lines.append((x1, y1, x2, y2))

    def text(self, lines, rect, font, align="center"):
        self.texts.append((tuple(lines), rect, font, align))

    def finish(self):
        self.finished = True

    def drawn_text(self) -> list[str]:
        return [line for lines, _rect, _font, _align in self.texts for line in lines]


def leaf_rect(hits: HitIndex, label: str) -> Rect:
    """Logical rectangle of the first leaf with `label` in a rendered hit index."""
    for rect, node in hits.entries():
        if isinstance(node, Leaf) and node.label == label:
            return rect
    raise AssertionError(f"No leaf labelled {label!r}")


def find_node(root, node_type, label=None):
    """First node of `node_type` (optionally with a given label) in a diagram tree."""
    for node in walk(root):
        if isinstance(node, node_type) and (label is None or getattr(node, "label", None) == label):
            return node
    raise AssertionError(f"No {node_type.__name__} in diagram")


def line_of(source: str, needle: str) -> int:
    """1-indexed line of the first occurrence of `needle` in `source`."""
    for i, line in enumerate(source.splitlines(), start=1):
        if needle in line:
            return i
    raise AssertionError(f"{needle!r} not in source")
