"""
Stroke rasterizer: .rm stroke records to SVG markup.

Every stroke becomes a <polyline> authored the way the tablet's export
tools author them: hidden (opacity 0, so a viewer can toggle it), in the
default ink and at the default stroke width. The styling stage decides what
finally shows.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from .constants import (
    REMARKABLE_WIDTH,
    REMARKABLE_HEIGHT,
    DEFAULT_INK_COLOR,
    DEFAULT_STROKE_WIDTH,
    HIDDEN_OPACITY,
    COLOR_MAP_NAMED,
    TRANSPARENT_PENS,
    HIGHLIGHTER_OPACITY,
    ERASER_PENS,
)
from .exceptions import InvalidStrokeRecord
from .geometry import PageGeometry
from .parser import Document, Stroke, Point, Pen, PenColor, parse_file

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"


def page_transform(doc: Document, geometry: PageGeometry):
    """
    Return a function mapping tablet coordinates to page points.

    The tablet screen is scaled uniformly to fit the page. v6 files put the
    x origin at the center of the screen; older versions at the left edge.
    """
    scale = min(geometry.width / REMARKABLE_WIDTH, geometry.height / REMARKABLE_HEIGHT)
    x_offset = REMARKABLE_WIDTH / 2 if doc.version >= 6 else 0.0

    def transform(point: Point) -> tuple[float, float]:
        return (point.x + x_offset) * scale, point.y * scale

    return transform


def points_attribute(points: list[Point], transform) -> str:
    """Format points as an SVG points list."""
    coords = [transform(p) for p in points]
    if len(coords) == 1:
        # Single point - a tiny segment so it still renders
        x, y = coords[0]
        coords.append((x + 0.1, y + 0.1))
    return " ".join(f"{x:.3f},{y:.3f}" for x, y in coords)


def get_stroke_color(stroke: Stroke) -> str:
    if isinstance(stroke.color, PenColor):
        return COLOR_MAP_NAMED.get(stroke.color, DEFAULT_INK_COLOR)
    return DEFAULT_INK_COLOR


def is_eraser(stroke: Stroke) -> bool:
    return isinstance(stroke.pen, Pen) and stroke.pen in ERASER_PENS


def is_highlighter(stroke: Stroke) -> bool:
    return isinstance(stroke.pen, Pen) and stroke.pen in TRANSPARENT_PENS


def render_svg(doc: Document, geometry: PageGeometry) -> str:
    """Render a parsed stroke record to SVG markup sized to *geometry*."""
    svg = ET.Element("svg")
    svg.set("xmlns", SVG_NS)
    svg.set("version", "1.1")
    svg.set("width", f"{geometry.width:g}")
    svg.set("height", f"{geometry.height:g}")
    svg.set("viewBox", f"0 0 {geometry.width:g} {geometry.height:g}")

    transform = page_transform(doc, geometry)
    for i, layer in enumerate(doc.layers):
        g = ET.SubElement(svg, "g")
        g.set("id", f"layer-{i}")
        if not layer.visible:
            g.set("visibility", "hidden")

        for stroke in layer.strokes:
            if is_eraser(stroke) or not stroke.points:
                continue

            line = ET.SubElement(g, "polyline")
            line.set("points", points_attribute(stroke.points, transform))
            line.set("fill", "none")
            line.set("stroke", get_stroke_color(stroke))
            line.set("stroke-width", f"{DEFAULT_STROKE_WIDTH:.3f}")
            line.set("stroke-linecap", "round")
            line.set("stroke-linejoin", "round")
            line.set("opacity", HIDDEN_OPACITY)
            if is_highlighter(stroke):
                line.set("stroke-opacity", HIGHLIGHTER_OPACITY)

    return ET.tostring(svg, encoding="unicode")


class RmStrokeRasterizer:
    """In-process stroke rasterizer for .rm v3, v5 and v6 records."""

    def rasterize(self, record: Path, geometry: PageGeometry) -> str:
        try:
            doc = parse_file(record)
        except OSError as exc:
            raise InvalidStrokeRecord(f"Cannot read {record}: {exc}") from exc
        logger.debug("Rasterizing %s strokes from %s", doc.stroke_count, record.name)
        return render_svg(doc, geometry)
