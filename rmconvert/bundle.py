"""
Bundle extraction and workspace handling.

A bundle is a zip archive holding the original PDF at its top level and a
directory named after the PDF's stem with one .rm stroke record per
annotated page::

    <base>.pdf
    <base>.content        (optional, page order of newer bundles)
    <base>/0.rm
    <base>/<page-uuid>.rm

The original is the single ``*.pdf`` member without a directory part.
PDFs nested in subdirectories are never candidates.

The archive is unpacked into ``<workspace>/bundle``; files produced by a
conversion go to ``<workspace>/work`` so member names never collide with
them.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from .exceptions import AmbiguousOrMissingSource, NotFound

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "rmconvert-"
BUNDLE_DIR = "bundle"
WORK_DIR = "work"


@dataclass
class DocumentBundle:
    """An extracted bundle; owns everything below *workspace*."""
    archive: Path
    workspace: Path
    original: Path
    base: str
    page_order: list[str] = field(default_factory=list)

    @property
    def root(self) -> Path:
        return self.workspace / BUNDLE_DIR

    @property
    def records_dir(self) -> Path:
        return self.root / self.base

    @property
    def work_dir(self) -> Path:
        """Scratch directory for overlay pages and intermediate PDFs."""
        path = self.workspace / WORK_DIR
        path.mkdir(exist_ok=True)
        return path

    def stroke_record(self, page_index: int) -> Optional[Path]:
        """
        Return the stroke record for a page, or None if it has none.

        Index-named records win; otherwise the page UUID at that position
        of the .content page order is tried.
        """
        candidate = self.records_dir / f"{page_index}.rm"
        if candidate.is_file():
            return candidate
        if 0 <= page_index < len(self.page_order):
            candidate = self.records_dir / f"{self.page_order[page_index]}.rm"
            if candidate.is_file():
                return candidate
        return None

    def cleanup(self) -> None:
        shutil.rmtree(self.workspace, ignore_errors=True)


def get_page_order(content_path: Path) -> list[str]:
    """
    Read page UUIDs, in page order, from a .content file.

    Handles both the simple ``pages`` list and the newer
    ``cPages.pages[].id`` layout. A missing or unreadable file yields [].
    """
    try:
        with open(content_path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return []

    pages = data.get("pages")
    if isinstance(pages, list) and all(isinstance(p, str) for p in pages):
        return list(pages)

    order = []
    for page in data.get("cPages", {}).get("pages", []):
        page_id = page.get("id", "")
        if page_id and not page.get("deleted"):
            order.append(page_id)
    return order


def find_original(workspace: Path) -> Path:
    """Return the single top-level PDF of an extracted bundle."""
    candidates = sorted(
        p for p in workspace.iterdir()
        if p.is_file() and p.suffix.lower() == ".pdf"
    )
    if len(candidates) != 1:
        names = ", ".join(p.name for p in candidates) or "none"
        raise AmbiguousOrMissingSource(
            f"Expected exactly one top-level PDF in bundle, found {len(candidates)} ({names})"
        )
    return candidates[0]


def extract(bundle_path: Path, workspace_root: Optional[Path] = None) -> DocumentBundle:
    """
    Unpack *bundle_path* into a fresh workspace.

    The caller owns the returned bundle and must call cleanup(); prefer
    open_bundle(), which does so on every exit path.
    """
    bundle_path = Path(bundle_path)
    if not bundle_path.is_file():
        raise NotFound(f"File not found: {bundle_path}")

    workspace = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=workspace_root))
    root = workspace / BUNDLE_DIR
    try:
        root.mkdir()
        try:
            with zipfile.ZipFile(bundle_path) as archive:
                archive.extractall(root)
        except zipfile.BadZipFile as exc:
            raise AmbiguousOrMissingSource(f"Not a bundle archive: {bundle_path}") from exc

        original = find_original(root)
        base = original.stem
        bundle = DocumentBundle(
            archive=bundle_path,
            workspace=workspace,
            original=original,
            base=base,
            page_order=get_page_order(root / f"{base}.content"),
        )
    except BaseException:
        shutil.rmtree(workspace, ignore_errors=True)
        raise

    logger.info("Extracted %s to %s (document %s)", bundle_path.name, workspace, base)
    return bundle


@contextmanager
def open_bundle(bundle_path: Path, workspace_root: Optional[Path] = None) -> Iterator[DocumentBundle]:
    """Extract a bundle and remove its workspace when the block exits."""
    bundle = extract(bundle_path, workspace_root)
    try:
        yield bundle
    finally:
        bundle.cleanup()
        logger.debug("Removed workspace %s", bundle.workspace)
