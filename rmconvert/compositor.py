"""
Per-page overlay generation.

For every page of the original, the compositor writes a one-page PDF into
the workspace: the styled strokes of the page's stroke record, or a blank
transparent page when there is none. File names are zero-padded to the
digit count of the page count, so name order is page order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from multiprocessing import Pool
from pathlib import Path

from .bundle import DocumentBundle
from .config import StyleOptions
from .exceptions import ConversionFailed, Interrupted
from .geometry import PageGeometry
from .services import StrokeRasterizer, VectorToDocumentRenderer
from .style import StyleTransformer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlayPage:
    """One page of overlay, ready for assembly."""
    index: int
    path: Path
    annotated: bool


def page_name(page_index: int, page_count: int) -> str:
    """File name for an overlay page, padded to the digits of page_count."""
    width = len(str(max(page_count, 1)))
    return f"pg-{page_index:0{width}d}.pdf"


class PageCompositor:
    """Builds the overlay page for each page index of a bundle."""

    def __init__(
        self,
        bundle: DocumentBundle,
        geometry: PageGeometry,
        options: StyleOptions,
        rasterizer: StrokeRasterizer,
        renderer: VectorToDocumentRenderer,
        page_count: int,
    ):
        self.bundle = bundle
        self.geometry = geometry
        self.transformer = StyleTransformer(options)
        self.rasterizer = rasterizer
        self.renderer = renderer
        self.page_count = page_count
        self.output_dir = bundle.work_dir / "overlay"

    def composite(self, page_index: int) -> OverlayPage:
        """Write the overlay page for *page_index*."""
        self.output_dir.mkdir(exist_ok=True)
        destination = self.output_dir / page_name(page_index, self.page_count)
        record = self.bundle.stroke_record(page_index)

        try:
            if record is None:
                self.renderer.render_blank(self.geometry, destination)
            else:
                markup = self.rasterizer.rasterize(record, self.geometry)
                markup = self.transformer.apply(markup, self.geometry)
                self.renderer.render(markup, self.geometry, destination)
        except Interrupted:
            raise
        except Exception as e:
            raise ConversionFailed(page_index, f"Page {page_index}: {e}") from e

        logger.debug("Page %s: %s", page_index, "annotated" if record else "blank")
        return OverlayPage(index=page_index, path=destination, annotated=record is not None)

    def composite_all(self, jobs: int = 1) -> list[OverlayPage]:
        """
        Composite every page, in index order.

        With jobs > 1 pages are built on a process pool (PyMuPDF is not
        thread-safe). The first failing page, in index order, aborts the run.
        """
        indices = range(self.page_count)
        if jobs <= 1 or self.page_count <= 1:
            return [self.composite(p) for p in indices]

        logger.info("Compositing %s pages using %s workers", self.page_count, jobs)
        with Pool(min(jobs, self.page_count)) as pool:
            return list(pool.imap(self.composite, indices))
