"""
End-to-end conversion of a bundle into an annotated PDF.

extract -> resolve geometry -> composite every page -> assemble -> stamp.
The stamped result is written inside the workspace and moved to the
output path only once everything succeeded.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .assembler import PageAssembler, Stamper
from .bundle import open_bundle
from .compositor import PageCompositor
from .config import ConvertOptions
from .exceptions import AmbiguousOrMissingSource
from .geometry import resolve
from .pymupdf_backend import PyMuPDFMerger, PyMuPDFMetadataReader, PyMuPDFRenderer
from .rasterizer import RmStrokeRasterizer
from .services import (
    DocumentMerger,
    PageMetadataReader,
    StrokeRasterizer,
    VectorToDocumentRenderer,
)

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """The converters a run uses; defaults are the in-process ones."""
    rasterizer: StrokeRasterizer = field(default_factory=RmStrokeRasterizer)
    metadata: PageMetadataReader = field(default_factory=PyMuPDFMetadataReader)
    renderer: VectorToDocumentRenderer = field(default_factory=PyMuPDFRenderer)
    merger: DocumentMerger = field(default_factory=PyMuPDFMerger)


def default_output(bundle_path: Path) -> Path:
    """<archive stem>.pdf in the working directory."""
    return Path(f"{Path(bundle_path).stem}.pdf")


def convert(
    bundle_path: Path,
    options: Optional[ConvertOptions] = None,
    services: Optional[Services] = None,
    workspace_root: Optional[Path] = None,
) -> Path:
    """
    Convert a bundle into an annotated PDF and return the output path.

    Args:
        bundle_path: Path to the bundle archive
        options: Conversion options (default: no overrides, no styling)
        services: Converters to use (default: PyMuPDF and the .rm rasterizer)
        workspace_root: Directory for the temporary workspace (default: system temp)
    """
    options = options or ConvertOptions()
    services = services or Services()
    output = Path(options.output) if options.output else default_output(bundle_path)

    with open_bundle(bundle_path, workspace_root) as bundle:
        metadata = services.metadata.read(bundle.original)
        if metadata.page_count < 1:
            raise AmbiguousOrMissingSource(f"Original document {bundle.original.name} has no pages")

        geometry = resolve(bundle.original, services.metadata, options.width, options.height)

        compositor = PageCompositor(
            bundle,
            geometry,
            options.style,
            services.rasterizer,
            services.renderer,
            metadata.page_count,
        )
        pages = compositor.composite_all(options.jobs)
        logger.info(
            "Composited %s pages, %s annotated",
            len(pages), sum(1 for page in pages if page.annotated),
        )

        overlay = PageAssembler(services.merger).assemble(
            pages, bundle.work_dir / "annotations.pdf", metadata.page_count
        )
        staged = Stamper(services.merger).stamp(
            bundle.original, overlay, bundle.work_dir / "stamped.pdf"
        )

        output.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(staged), str(output))

    logger.info("Wrote %s", output)
    return output
