"""FastAPI service: list units, render diagrams and resolve clicks."""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from structuregram import config
from structuregram.diagram.builder import build
from structuregram.diagram.geometry import Point
from structuregram.diagram.hittest import HitIndex
from structuregram.diagram.layout import LayoutMetrics, Placed, layout
from structuregram.diagram.model import DiagramNode, label_of, walk
from structuregram.diagram.render import get_theme, render
from structuregram.diagram.view import ViewTransform
from structuregram.errors import EditError, MethodNotFoundError, UnsupportedLanguageError
from structuregram.render.fonts import PillowMeasurer
from structuregram.render.svg import SvgSurface
from structuregram.source.document import SourceDocument, find_method

# Configure logging on import, before anything else logs
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Structuregram", description="Nassi–Shneiderman diagrams for source code")

METRICS = LayoutMetrics()

# Lazy-initialized measurer (fonts are loaded on first use)
_measurer = None


def _get_measurer():
    global _measurer
    if _measurer is None:
        _measurer = PillowMeasurer()
    return _measurer


class SourceRequest(BaseModel):
    source: str
    language: str = "java"


class DiagramRequest(SourceRequest):
    method: str | None = None
    ordinal: int = 0
    theme: str = "auto"
    scale: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0


class ResolveRequest(DiagramRequest):
    x: float
    y: float


class MethodResponse(BaseModel):
    name: str
    kind: str
    line: int
    ordinal: int


class DiagramResponse(BaseModel):
    method: str
    svg: str
    width: int
    height: int
    node_count: int


class ResolveResponse(BaseModel):
    found: bool
    kind: str | None = None
    label: str | None = None
    line: int | None = None
    column: int | None = None
    end_line: int | None = None


def _document(req: SourceRequest) -> SourceDocument:
    try:
        return SourceDocument(req.source, req.language)
    except UnsupportedLanguageError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _diagram(req: DiagramRequest) -> tuple[SourceDocument, str, Placed, SvgSurface, HitIndex]:
    doc = _document(req)
    snapshot = doc.snapshot()
    try:
        info, method = find_method(snapshot, req.method, req.ordinal)
    except MethodNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    try:
        theme = get_theme(req.theme)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    node = build(snapshot, method)
    placed = layout(node, _get_measurer(), METRICS)
    surface = SvgSurface(scale=req.scale, line_height=METRICS.line_height)
    hits = HitIndex()
    render(placed, surface, hits, theme, METRICS)
    return doc, info.name, placed, surface, hits


def _node_at(req: ResolveRequest, hits: HitIndex) -> DiagramNode | None:
    view = ViewTransform(scale=req.scale, pan_x=req.pan_x, pan_y=req.pan_y, padding=METRICS.outer_padding)
    return hits.resolve(view.to_logical(Point(req.x, req.y)))


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/methods", response_model=list[MethodResponse])
def methods(req: SourceRequest):
    doc = _document(req)
    return [
        MethodResponse(name=m.name, kind=m.kind, line=m.line, ordinal=m.ordinal)
        for m in doc.methods()
    ]


@app.post("/diagram", response_model=DiagramResponse)
def diagram(req: DiagramRequest):
    logger.info("POST /diagram method=%r language=%s", req.method, req.language)
    t0 = time.perf_counter()
    _doc, name, placed, surface, _hits = _diagram(req)
    node_count = sum(1 for _ in walk(placed.node))
    logger.info("Rendered %s: %d nodes (%.3fs)", name, node_count, time.perf_counter() - t0)
    return DiagramResponse(
        method=name,
        svg=surface.getvalue(),
        width=surface.width,
        height=surface.height,
        node_count=node_count,
    )


@app.post("/resolve", response_model=ResolveResponse)
def resolve(req: ResolveRequest):
    _doc, _name, _placed, _surface, hits = _diagram(req)
    node = _node_at(req, hits)
    if node is None:
        return ResolveResponse(found=False)
    ref = node.source_ref
    return ResolveResponse(
        found=True,
        kind=type(node).__name__,
        label=label_of(node),
        line=ref.line if ref else None,
        column=ref.column if ref else None,
        end_line=ref.end_line if ref else None,
    )


class EditRequest(ResolveRequest):
    action: str = "replace"
    text: str = ""


class EditResponse(BaseModel):
    source: str
    generation: int


@app.post("/edit", response_model=EditResponse)
def edit(req: EditRequest):
    """Apply a replace, insert or delete at the node under a screen point."""
    if req.action not in ("replace", "insert", "delete"):
        raise HTTPException(status_code=422, detail=f"Unknown action {req.action!r}")
    doc, _name, _placed, _surface, hits = _diagram(req)
    node = _node_at(req, hits)
    if node is None or node.source_ref is None:
        raise HTTPException(status_code=404, detail="No source statement at that point")

    logger.info("POST /edit action=%s line=%d", req.action, node.source_ref.line)
    try:
        if req.action == "replace":
            doc.replace(node.source_ref, req.text)
        elif req.action == "insert":
            doc.insert_after(node.source_ref, req.text)
        else:
            doc.delete(node.source_ref)
    except EditError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return EditResponse(source=doc.text, generation=doc.generation)
