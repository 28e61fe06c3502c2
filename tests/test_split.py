"""Tests for the greedy size-bounded document splitter."""

from pathlib import Path

import pytest

from conftest import make_empty_pdf
from scanmd.errors import DocumentFormatError, EmptyDocumentError, FilesystemError
from scanmd.pdf import count_pages
from scanmd.split import plan_ranges, split_document


def test_plan_ranges_greedy() -> None:
    assert plan_ranges([4, 4, 4, 4, 4], 10) == [(0, 1), (2, 3), (4, 4)]


def test_plan_ranges_exact_fit_stays_together() -> None:
    assert plan_ranges([5, 5, 5], 10) == [(0, 1), (2, 2)]


def test_plan_ranges_oversized_page_is_own_chunk() -> None:
    assert plan_ranges([2, 50, 2, 2], 10) == [(0, 0), (1, 1), (2, 3)]


def test_plan_ranges_empty() -> None:
    assert plan_ranges([], 10) == []


def test_split_covers_every_page_once(pdf_factory, tmp_path: Path) -> None:
    src = pdf_factory("big.pdf", 12)
    work = tmp_path / "chunks"
    work.mkdir()
    # small enough to force several chunks, large enough for a few pages each
    threshold = src.stat().st_size // 3
    chunks = split_document(src, threshold, work)

    assert len(chunks) > 1
    assert [c.index for c in chunks] == list(range(len(chunks)))
    assert sum(c.page_count for c in chunks) == 12

    expected_offset = 0
    for chunk in chunks:
        assert chunk.page_offset == expected_offset
        assert chunk.path.parent == work
        assert count_pages(chunk.path) == chunk.page_count
        expected_offset += chunk.page_count


def test_split_tiny_threshold_gives_one_page_chunks(pdf_factory, tmp_path: Path) -> None:
    src = pdf_factory("doc.pdf", 4)
    chunks = split_document(src, 1, tmp_path)
    assert [c.page_count for c in chunks] == [1, 1, 1, 1]
    assert [c.page_offset for c in chunks] == [0, 1, 2, 3]


def test_split_malformed_source(tmp_path: Path) -> None:
    bad = tmp_path / "bad.pdf"
    bad.write_bytes(b"%PDF-garbage")
    with pytest.raises(DocumentFormatError):
        split_document(bad, 1000, tmp_path)


def test_split_source_without_pages(tmp_path: Path) -> None:
    empty = make_empty_pdf(tmp_path / "empty.pdf")
    with pytest.raises(EmptyDocumentError):
        split_document(empty, 1000, tmp_path)


def test_split_into_missing_directory(pdf_factory, tmp_path: Path) -> None:
    src = pdf_factory("doc.pdf", 2)
    with pytest.raises(FilesystemError):
        split_document(src, 1, tmp_path / "missing_dir")
