"""PyMuPDF implementations of the document services."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import fitz  # PyMuPDF

from .exceptions import RmConvertError
from .geometry import PageGeometry
from .services import PageMetadata

logger = logging.getLogger(__name__)


def _open(path: Path) -> fitz.Document:
    try:
        return fitz.open(path)
    except (OSError, RuntimeError, ValueError) as exc:
        raise RmConvertError(f"Cannot open {path}: {exc}") from exc


def _has_content(page: fitz.Page) -> bool:
    return bool(page.read_contents().strip())


class PyMuPDFMetadataReader:
    """Reports page count and first-page size, pdfinfo style."""

    def read(self, document: Path) -> PageMetadata:
        pdf = _open(document)
        try:
            if len(pdf) == 0:
                return PageMetadata(page_count=0, page_size="")
            rect = pdf[0].rect
            return PageMetadata(
                page_count=len(pdf),
                page_size=f"{rect.width:g} x {rect.height:g} pts",
            )
        finally:
            pdf.close()


class PyMuPDFRenderer:
    """Renders SVG markup into one-page PDFs of a fixed size."""

    def render(self, markup: str, geometry: PageGeometry, destination: Path) -> None:
        svg = fitz.open(stream=markup.encode("utf-8"), filetype="svg")
        try:
            source = fitz.open("pdf", svg.convert_to_pdf())
        finally:
            svg.close()

        out = fitz.open()
        try:
            page = out.new_page(width=geometry.width, height=geometry.height)
            if _has_content(source[0]):
                page.show_pdf_page(page.rect, source, 0)
            out.save(destination)
        finally:
            out.close()
            source.close()

    def render_blank(self, geometry: PageGeometry, destination: Path) -> None:
        out = fitz.open()
        try:
            out.new_page(width=geometry.width, height=geometry.height)
            out.save(destination)
        finally:
            out.close()


class PyMuPDFMerger:
    """Concatenation and stamping with PyMuPDF."""

    def page_count(self, document: Path) -> int:
        pdf = _open(document)
        try:
            return len(pdf)
        finally:
            pdf.close()

    def concatenate(self, documents: Sequence[Path], destination: Path) -> None:
        out = fitz.open()
        try:
            for path in documents:
                pdf = _open(path)
                try:
                    out.insert_pdf(pdf)
                finally:
                    pdf.close()
            out.save(destination)
        finally:
            out.close()

    def stamp(self, original: Path, overlay: Path, destination: Path) -> None:
        pdf = _open(original)
        try:
            annotations = _open(overlay)
            try:
                total = len(pdf)
                stamped = 0
                for page_num in range(total):
                    # Blank overlay pages would change nothing
                    if not _has_content(annotations[page_num]):
                        continue
                    page = pdf[page_num]
                    page.show_pdf_page(page.rect, annotations, page_num, overlay=True)
                    stamped += 1

                # Save with ez_save for optimal compression
                pdf.ez_save(destination)
            finally:
                annotations.close()
        finally:
            pdf.close()

        logger.info("Stamped %s of %s pages", stamped, total)
