"""
Overlay assembly and stamping.

The overlay pages are concatenated in index order into one document that
mirrors the original page for page, which is then stamped onto the
original.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .compositor import OverlayPage
from .exceptions import PageCountMismatch, RmConvertError, StampFailed
from .services import DocumentMerger

logger = logging.getLogger(__name__)


class PageAssembler:
    """Concatenates overlay pages into one overlay document."""

    def __init__(self, merger: DocumentMerger):
        self.merger = merger

    def assemble(self, pages: Sequence[OverlayPage], destination: Path,
                 expected_pages: int) -> Path:
        ordered = sorted(pages, key=lambda page: page.index)
        if [page.index for page in ordered] != list(range(expected_pages)):
            raise PageCountMismatch(
                f"Overlay pages {[page.index for page in ordered]} do not cover "
                f"pages 0..{expected_pages - 1}"
            )

        self.merger.concatenate([page.path for page in ordered], destination)
        assembled = self.merger.page_count(destination)
        if assembled != expected_pages:
            raise PageCountMismatch(
                f"Assembled overlay has {assembled} pages, original has {expected_pages}"
            )

        logger.info("Assembled %s overlay pages", assembled)
        return destination


class Stamper:
    """Stamps an assembled overlay onto the original document."""

    def __init__(self, merger: DocumentMerger):
        self.merger = merger

    def stamp(self, original: Path, overlay: Path, destination: Path) -> Path:
        original_pages = self.merger.page_count(original)
        overlay_pages = self.merger.page_count(overlay)
        if original_pages != overlay_pages:
            raise StampFailed(
                f"Original has {original_pages} pages, overlay has {overlay_pages}"
            )

        try:
            self.merger.stamp(original, overlay, destination)
        except RmConvertError:
            raise
        except Exception as e:
            raise StampFailed(f"Stamping failed: {e}") from e
        return destination
