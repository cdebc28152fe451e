"""
Page geometry resolution.

Width and height come from explicit overrides when given, otherwise from
the page-size description the metadata reader reports for the original
document ("612 x 792 pts (letter)"). Each axis is resolved on its own.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .exceptions import GeometryUnavailable

if TYPE_CHECKING:
    from .services import PageMetadataReader

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"[-+]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][-+]?\d+)?")


@dataclass(frozen=True)
class PageGeometry:
    """Uniform page size of a document, in points."""
    width: float
    height: float

    def __post_init__(self):
        if not (self.width > 0 and self.height > 0):
            raise GeometryUnavailable(
                f"Page dimensions must be positive, got {self.width} x {self.height}"
            )


def parse_page_size(description: str) -> tuple[Optional[float], Optional[float]]:
    """
    Extract (width, height) from a page-size description.

    Only numeric tokens count, whatever unit label follows them. Missing
    tokens come back as None.
    """
    numbers = [float(token) for token in _NUMBER.findall(description or "")]
    width = numbers[0] if len(numbers) > 0 else None
    height = numbers[1] if len(numbers) > 1 else None
    return width, height


def resolve(
    document: Path,
    reader: Optional[PageMetadataReader] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
) -> PageGeometry:
    """Resolve the page geometry of *document*, overrides first."""
    if width is not None and height is not None:
        return PageGeometry(float(width), float(height))

    queried_width = queried_height = None
    if reader is not None:
        description = reader.read(document).page_size
        queried_width, queried_height = parse_page_size(description)
        logger.debug("Page size of %s: %r", document, description)

    resolved_width = width if width is not None else queried_width
    resolved_height = height if height is not None else queried_height
    if resolved_width is None:
        raise GeometryUnavailable(f"No page width for {document}")
    if resolved_height is None:
        raise GeometryUnavailable(f"No page height for {document}")

    geometry = PageGeometry(float(resolved_width), float(resolved_height))
    logger.info("Page geometry: %s x %s pt", geometry.width, geometry.height)
    return geometry
