"""Service protocols for the format converters a run depends on."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from .geometry import PageGeometry


@dataclass(frozen=True)
class PageMetadata:
    """What a metadata reader reports about a document."""

    page_count: int
    page_size: str  # e.g. "612 x 792 pts (letter)"


class StrokeRasterizer(Protocol):
    """Turns one stroke record into SVG markup sized to the page."""

    def rasterize(self, record: Path, geometry: PageGeometry) -> str:
        """Return SVG markup. Strokes are authored hidden, in default ink."""


class PageMetadataReader(Protocol):
    """Reports page count and page size of a document."""

    def read(self, document: Path) -> PageMetadata:
        """Return metadata for the document at *document*."""


class VectorToDocumentRenderer(Protocol):
    """Renders SVG markup (or nothing) into a single-page document."""

    def render(self, markup: str, geometry: PageGeometry, destination: Path) -> None:
        """Write a one-page document showing *markup* to *destination*."""

    def render_blank(self, geometry: PageGeometry, destination: Path) -> None:
        """Write a transparent one-page document to *destination*."""


class DocumentMerger(Protocol):
    """Concatenates documents and stamps one onto another."""

    def page_count(self, document: Path) -> int:
        """Return the number of pages of *document*."""

    def concatenate(self, documents: Sequence[Path], destination: Path) -> None:
        """Write all pages of *documents*, in order, to *destination*."""

    def stamp(self, original: Path, overlay: Path, destination: Path) -> None:
        """Draw page i of *overlay* over page i of *original*."""
