"""
reMarkable Bundle Converter

Turn a reMarkable document bundle (the original PDF plus per-page .rm
stroke records) into a single annotated PDF.

Usage:
    from rmconvert import ConvertOptions, StyleOptions, convert

    options = ConvertOptions(style=StyleOptions(ink_color="red", margins=True))
    convert("notes.zip", options)

CLI:
    python -m rmconvert [-c color] [-w width] [-h height] [-s width] [-r] [-p] [-o out.pdf] <bundle.zip>
"""

__version__ = "1.0.0"

from .config import (
    ConvertOptions,
    StyleOptions,
    load_options,
)
from .exceptions import (
    RmConvertError,
    NotFound,
    AmbiguousOrMissingSource,
    GeometryUnavailable,
    ConversionFailed,
    PageCountMismatch,
    StampFailed,
    ConfigError,
)
from .geometry import PageGeometry
from .parser import (
    Document,
    Layer,
    Stroke,
    Point,
    Pen,
    PenColor,
    parse_file,
)
from .pipeline import (
    Services,
    convert,
)

__all__ = [
    "ConvertOptions",
    "StyleOptions",
    "load_options",
    "RmConvertError",
    "NotFound",
    "AmbiguousOrMissingSource",
    "GeometryUnavailable",
    "ConversionFailed",
    "PageCountMismatch",
    "StampFailed",
    "ConfigError",
    "PageGeometry",
    "Document",
    "Layer",
    "Stroke",
    "Point",
    "Pen",
    "PenColor",
    "parse_file",
    "Services",
    "convert",
]
