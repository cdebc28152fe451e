import pytest

from rmconvert.assembler import PageAssembler, Stamper
from rmconvert.compositor import OverlayPage
from rmconvert.exceptions import PageCountMismatch, StampFailed

from conftest import FakeMerger


def _pages(tmp_path, indices):
    pages = []
    for i in indices:
        path = tmp_path / f"pg-{i}.pdf"
        path.write_text(f"overlay-{i}\n")
        pages.append(OverlayPage(index=i, path=path, annotated=False))
    return pages


def test_assemble_in_index_order(tmp_path):
    destination = tmp_path / "annotations.pdf"

    PageAssembler(FakeMerger()).assemble(_pages(tmp_path, [2, 0, 1]), destination, 3)

    assert destination.read_text().splitlines() == ["overlay-0", "overlay-1", "overlay-2"]


def test_assemble_orders_numerically_past_nine(tmp_path):
    destination = tmp_path / "annotations.pdf"

    PageAssembler(FakeMerger()).assemble(_pages(tmp_path, reversed(range(12))), destination, 12)

    assert destination.read_text().splitlines()[9:] == ["overlay-9", "overlay-10", "overlay-11"]


@pytest.mark.parametrize("indices, expected", [
    ([0, 1], 3),
    ([0, 1, 2, 3], 3),
    ([0, 2, 3], 3),
    ([0, 1, 1], 3),
])
def test_missing_or_extra_pages(tmp_path, indices, expected):
    with pytest.raises(PageCountMismatch):
        PageAssembler(FakeMerger()).assemble(_pages(tmp_path, indices), tmp_path / "a.pdf", expected)


def test_assembled_count_is_checked(tmp_path):
    with pytest.raises(PageCountMismatch):
        PageAssembler(FakeMerger(drop_last=True)).assemble(
            _pages(tmp_path, range(3)), tmp_path / "a.pdf", 3
        )


def test_stamp_pairs_pages(tmp_path):
    original = tmp_path / "original.pdf"
    original.write_text("page-0\npage-1\n")
    overlay = tmp_path / "overlay.pdf"
    overlay.write_text("overlay-0\noverlay-1\n")
    destination = tmp_path / "out.pdf"

    Stamper(FakeMerger()).stamp(original, overlay, destination)

    assert destination.read_text().splitlines() == ["page-0 + overlay-0", "page-1 + overlay-1"]


def test_stamp_rejects_count_mismatch(tmp_path):
    original = tmp_path / "original.pdf"
    original.write_text("page-0\npage-1\n")
    overlay = tmp_path / "overlay.pdf"
    overlay.write_text("overlay-0\n")

    with pytest.raises(StampFailed):
        Stamper(FakeMerger()).stamp(original, overlay, tmp_path / "out.pdf")

    assert not (tmp_path / "out.pdf").exists()


def test_merger_errors_become_stamp_failed(tmp_path):
    class BrokenMerger(FakeMerger):
        def stamp(self, original, overlay, destination):
            raise RuntimeError("disk full")

    original = tmp_path / "original.pdf"
    original.write_text("page-0\n")

    with pytest.raises(StampFailed):
        Stamper(BrokenMerger()).stamp(original, original, tmp_path / "out.pdf")


def test_pymupdf_stamp_with_unreadable_overlay(tmp_path):
    from rmconvert.exceptions import RmConvertError
    from rmconvert.pymupdf_backend import PyMuPDFMerger

    from conftest import write_pdf

    original = write_pdf(tmp_path / "original.pdf", pages=2)
    overlay = tmp_path / "overlay.pdf"
    overlay.write_bytes(b"not a pdf")

    with pytest.raises(RmConvertError):
        PyMuPDFMerger().stamp(original, overlay, tmp_path / "out.pdf")

    assert not (tmp_path / "out.pdf").exists()
