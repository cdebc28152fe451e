"""
Styling of a page's SVG overlay.

The markup is parsed into an ElementTree, edited node by node and
serialized again. Presentation properties are read and written wherever
the markup keeps them: in a ``style`` declaration if it has one for the
property, otherwise as a plain attribute.

Edits:
- strokes are made visible (always)
- margin highlight rectangle at the left edge (optional)
- translucent white rectangle beneath the strokes to pale the page (optional)
- ink recolor of default-ink strokes (optional)
- stroke width override (optional)
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Optional

from .config import StyleOptions
from .constants import DEFAULT_INK_COLOR, MARGIN_WIDTH, PALING_OPACITY
from .geometry import PageGeometry
from .rasterizer import SVG_NS

logger = logging.getLogger(__name__)

ET.register_namespace("", SVG_NS)

STROKE_TAGS = {"polyline", "path", "line"}
MARGIN_ID = "margin-highlight"
PALING_ID = "paling-overlay"


def local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def is_stroke(element: ET.Element) -> bool:
    return local_name(element.tag) in STROKE_TAGS


def _parse_style(value: str) -> dict[str, str]:
    declarations = {}
    for item in value.split(";"):
        if ":" in item:
            key, _, val = item.partition(":")
            declarations[key.strip()] = val.strip()
    return declarations


def get_property(element: ET.Element, name: str) -> Optional[str]:
    style = _parse_style(element.get("style", ""))
    if name in style:
        return style[name]
    return element.get(name)


def set_property(element: ET.Element, name: str, value: str) -> None:
    style = _parse_style(element.get("style", ""))
    if name in style:
        style[name] = value
        element.set("style", ";".join(f"{k}:{v}" for k, v in style.items()))
    else:
        element.set(name, value)


class StyleTransformer:
    """Applies StyleOptions to the SVG markup of one annotated page."""

    def __init__(self, options: StyleOptions):
        self.options = options

    def apply(self, markup: str, geometry: PageGeometry) -> str:
        root = ET.fromstring(markup)
        strokes = [el for el in root.iter() if is_stroke(el)]

        for stroke in strokes:
            set_property(stroke, "opacity", "1")

        if self.options.ink_color:
            self._recolor(strokes, self.options.ink_color)
        if self.options.stroke_width is not None:
            for stroke in strokes:
                set_property(stroke, "stroke-width", f"{self.options.stroke_width:g}")
        if self.options.pale:
            self._insert_paling(root, strokes, geometry)
        if self.options.margins:
            self._append_margin(root, geometry)

        logger.debug("Styled %s strokes", len(strokes))
        return ET.tostring(root, encoding="unicode")

    def _recolor(self, strokes: list[ET.Element], color: str) -> None:
        for stroke in strokes:
            current = get_property(stroke, "stroke") or ""
            if current.lower() == DEFAULT_INK_COLOR:
                set_property(stroke, "stroke", color)

    def _rect(self, root: ET.Element, **attrs: str) -> ET.Element:
        namespace = root.tag[:root.tag.index("}") + 1] if root.tag.startswith("{") else ""
        rect = ET.Element(f"{namespace}rect")
        for key, value in attrs.items():
            rect.set(key.replace("_", "-"), value)
        return rect

    def _append_margin(self, root: ET.Element, geometry: PageGeometry) -> None:
        if _find_by_id(root, MARGIN_ID) is not None:
            return
        root.append(self._rect(
            root,
            id=MARGIN_ID,
            x="0",
            y="0",
            width=f"{MARGIN_WIDTH:g}",
            height=f"{geometry.height:g}",
            fill=self.options.effective_margin_color,
            fill_opacity="1",
            stroke="none",
        ))

    def _insert_paling(self, root: ET.Element, strokes: list[ET.Element],
                       geometry: PageGeometry) -> None:
        if _find_by_id(root, PALING_ID) is not None:
            return
        rect = self._rect(
            root,
            id=PALING_ID,
            x="0",
            y="0",
            width=f"{geometry.width:g}",
            height=f"{geometry.height:g}",
            fill="white",
            fill_opacity=f"{PALING_OPACITY:g}",
            stroke="none",
        )
        if not strokes:
            root.append(rect)
            return

        # Directly before the first stroke in document order
        first = strokes[0]
        parents = {child: parent for parent in root.iter() for child in parent}
        parent = parents[first]
        parent.insert(list(parent).index(first), rect)


def _find_by_id(root: ET.Element, element_id: str) -> Optional[ET.Element]:
    for element in root.iter():
        if element.get("id") == element_id:
            return element
    return None


def apply(markup: str, geometry: PageGeometry, options: StyleOptions) -> str:
    """Style one page's markup with *options*."""
    return StyleTransformer(options).apply(markup, geometry)
