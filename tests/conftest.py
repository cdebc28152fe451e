from __future__ import annotations

import json
import struct
import zipfile
from pathlib import Path
from typing import Callable, Optional, Sequence

import fitz  # PyMuPDF
import pytest

from rmconvert.geometry import PageGeometry
from rmconvert.services import PageMetadata

LETTER = PageGeometry(612, 792)


# =============================================================================
# .rm builders
# =============================================================================

def rm_header(version: int) -> bytes:
    return f"reMarkable .lines file, version={version}".encode("ascii").ljust(43)


def build_rm_fixed(strokes: Sequence[tuple[int, int, list[tuple[float, float]]]],
                   version: int = 5) -> bytes:
    """v3/v5 record with a single layer. strokes: (pen, color, [(x, y)])."""
    out = rm_header(version) + struct.pack("<I", 1) + struct.pack("<I", len(strokes))
    for pen, color, points in strokes:
        if version == 5:
            out += struct.pack("<IIIfI", pen, color, 0, 2.0, 0)
        else:
            out += struct.pack("<IIIf", pen, color, 0, 2.0)
        out += struct.pack("<I", len(points))
        for x, y in points:
            out += struct.pack("<ffffff", x, y, 0.0, 0.0, 2.0, 0.5)
    return out


def _tag(index: int, tag_type: int) -> bytes:
    return bytes([(index << 4) | tag_type])


def _crdt_id(index: int, part1: int, part2: int) -> bytes:
    return _tag(index, 0xF) + bytes([part1, part2])


def _block(block_type: int, body: bytes) -> bytes:
    return struct.pack("<I", len(body)) + bytes([0, 2, 2, block_type]) + body


def v6_line_block(pen: int, color: int, points: list[tuple[float, float]],
                  deleted: bool = False) -> bytes:
    encoded = b"".join(struct.pack("<ffHHBB", x, y, 0, 8, 0, 100) for x, y in points)
    value = (
        b"\x03"
        + _tag(1, 0x4) + struct.pack("<I", pen)
        + _tag(2, 0x4) + struct.pack("<I", color)
        + _tag(3, 0x8) + struct.pack("<d", 1.0)
        + _tag(4, 0x4) + struct.pack("<f", 0.0)
        + _tag(5, 0xC) + struct.pack("<I", len(encoded)) + encoded
        + _crdt_id(6, 0, 1)
    )
    body = (
        _crdt_id(1, 0, 1) + _crdt_id(2, 0, 2) + _crdt_id(3, 0, 0) + _crdt_id(4, 0, 0)
        + _tag(5, 0x4) + struct.pack("<I", 1 if deleted else 0)
    )
    if not deleted:
        body += _tag(6, 0xC) + struct.pack("<I", len(value)) + value
    return _block(0x05, body)


def build_rm_v6(strokes: Sequence[tuple[int, int, list[tuple[float, float]]]],
                deleted: int = 0) -> bytes:
    """v6 record: a page-info block, the line blocks and *deleted* tombstones."""
    out = rm_header(6) + _block(0x0A, b"\x00" * 6)
    for pen, color, points in strokes:
        out += v6_line_block(pen, color, points)
    for _ in range(deleted):
        out += v6_line_block(2, 0, [], deleted=True)
    return out


SIMPLE_STROKES = [
    (2, 0, [(100.0, 200.0), (300.0, 400.0), (500.0, 450.0)]),
]


@pytest.fixture()
def simple_record() -> bytes:
    """A v5 record with one black ballpoint stroke."""
    return build_rm_fixed(SIMPLE_STROKES)


# =============================================================================
# PDFs and bundles
# =============================================================================

def write_pdf(path: Path, pages: int = 3, width: float = 612, height: float = 792) -> Path:
    pdf = fitz.open()
    try:
        for i in range(pages):
            page = pdf.new_page(width=width, height=height)
            page.insert_text((72, 72), f"Original page {i}")
        pdf.save(path)
    finally:
        pdf.close()
    return path


@pytest.fixture()
def bundle_factory(tmp_path: Path) -> Callable[..., Path]:
    """Zip a bundle: <base>.pdf, <base>/<key>.rm records, optional .content."""

    def _create(
        name: str = "notes",
        base: str = "3f1c2a",
        pages: int = 3,
        records: Optional[dict] = None,
        extra_members: Optional[dict[str, bytes]] = None,
        content: Optional[dict] = None,
        original: Optional[bytes] = None,
    ) -> Path:
        if original is None:
            pdf_path = write_pdf(tmp_path / f"{base}-source.pdf", pages=pages)
            original = pdf_path.read_bytes()

        archive_path = tmp_path / f"{name}.zip"
        with zipfile.ZipFile(archive_path, "w") as archive:
            archive.writestr(f"{base}.pdf", original)
            for key, data in (records or {}).items():
                archive.writestr(f"{base}/{key}.rm", data)
            if content is not None:
                archive.writestr(f"{base}.content", json.dumps(content))
            for member, data in (extra_members or {}).items():
                archive.writestr(member, data)
        return archive_path

    return _create


# =============================================================================
# Service fakes
#
# Fake "documents" are text files with one line per page.
# =============================================================================

FAKE_MARKUP = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="612" height="792">'
    '<g id="layer-0">'
    '<polyline points="0,0 10,10" fill="none" stroke="blue" '
    'stroke-width="0.870" opacity="0" />'
    '</g></svg>'
)


class FakeRasterizer:
    def __init__(self, markup: str = FAKE_MARKUP, fail_on: Optional[str] = None):
        self.markup = markup
        self.fail_on = fail_on
        self.calls: list[tuple[Path, PageGeometry]] = []

    def rasterize(self, record: Path, geometry: PageGeometry) -> str:
        self.calls.append((record, geometry))
        if self.fail_on and record.stem == self.fail_on:
            raise RuntimeError("rasterizer crashed")
        return self.markup


class FakeRenderer:
    def __init__(self):
        self.rendered: list[tuple[str, PageGeometry, Path]] = []
        self.blanks: list[tuple[PageGeometry, Path]] = []

    def render(self, markup: str, geometry: PageGeometry, destination: Path) -> None:
        self.rendered.append((markup, geometry, destination))
        destination.write_text(f"annotated:{destination.stem}\n")

    def render_blank(self, geometry: PageGeometry, destination: Path) -> None:
        self.blanks.append((geometry, destination))
        destination.write_text(f"blank:{destination.stem}\n")


class FakeMetadataReader:
    def __init__(self, page_count: int = 3, page_size: str = "612 x 792 pts (letter)"):
        self.metadata = PageMetadata(page_count=page_count, page_size=page_size)
        self.calls = 0

    def read(self, document: Path) -> PageMetadata:
        self.calls += 1
        return self.metadata


class FakeMerger:
    def __init__(self, drop_last: bool = False):
        self.drop_last = drop_last

    def page_count(self, document: Path) -> int:
        return len(document.read_text().splitlines())

    def concatenate(self, documents: Sequence[Path], destination: Path) -> None:
        lines = [doc.read_text().strip() for doc in documents]
        if self.drop_last:
            lines = lines[:-1]
        destination.write_text("\n".join(lines) + "\n")

    def stamp(self, original: Path, overlay: Path, destination: Path) -> None:
        pairs = zip(original.read_text().splitlines(), overlay.read_text().splitlines())
        destination.write_text("".join(f"{o} + {a}\n" for o, a in pairs))


@pytest.fixture()
def fake_original() -> bytes:
    return b"page-0\npage-1\npage-2\n"
