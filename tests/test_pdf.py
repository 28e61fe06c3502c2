"""Tests for input classification, the size probe and image wrapping."""

from pathlib import Path

import fitz  # type: ignore
import pytest
from PIL import Image

from conftest import make_empty_pdf
from scanmd.errors import DocumentFormatError, EmptyDocumentError, FilesystemError
from scanmd.pdf import count_pages, image_to_pdf, is_image_file, is_supported, load_document, needs_chunking, open_pdf


def test_needs_chunking_is_strictly_above_threshold() -> None:
    assert not needs_chunking(100, 100)
    assert not needs_chunking(99, 100)
    assert needs_chunking(101, 100)


@pytest.mark.parametrize("name", ["a.PNG", "b.jpg", "c.jpeg", "d.bmp", "e.tif", "f.TIFF"])
def test_image_suffixes(name: str) -> None:
    assert is_image_file(Path(name))
    assert is_supported(Path(name))


def test_pdf_and_unsupported() -> None:
    assert not is_image_file(Path("x.pdf"))
    assert is_supported(Path("x.pdf"))
    assert not is_supported(Path("notes.txt"))


def test_load_document_reads_size(pdf_factory) -> None:
    path = pdf_factory("doc.pdf", 3)
    doc = load_document(path)
    assert doc.size == path.stat().st_size
    assert doc.page_count is None
    assert count_pages(path) == 3


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FilesystemError):
        load_document(tmp_path / "missing.pdf")


def test_garbage_pdf_is_format_error(tmp_path: Path) -> None:
    bad = tmp_path / "bad.pdf"
    bad.write_bytes(b"this is not a pdf at all")
    with pytest.raises(DocumentFormatError):
        count_pages(bad)


def test_image_to_pdf_single_page(tmp_path: Path) -> None:
    png = tmp_path / "scan.png"
    Image.new("RGB", (120, 80), color=(200, 10, 10)).save(png)
    out = image_to_pdf(png, tmp_path / "scan.pdf")
    doc = fitz.open(out)
    assert doc.page_count == 1
    assert len(doc[0].get_images()) == 1
    doc.close()


def test_image_to_pdf_rejects_non_image(tmp_path: Path) -> None:
    fake = tmp_path / "photo.jpg"
    fake.write_bytes(b"not an image")
    with pytest.raises(DocumentFormatError):
        image_to_pdf(fake, tmp_path / "photo.pdf")


def test_pdf_without_pages_is_empty_document(tmp_path: Path) -> None:
    empty = make_empty_pdf(tmp_path / "empty.pdf")
    with pytest.raises(EmptyDocumentError):
        open_pdf(empty)
    with pytest.raises(EmptyDocumentError):
        count_pages(empty)


def test_image_to_pdf_unwritable_target(tmp_path: Path) -> None:
    png = tmp_path / "scan.png"
    Image.new("RGB", (40, 40)).save(png)
    with pytest.raises(FilesystemError):
        image_to_pdf(png, tmp_path / "missing" / "scan.pdf")
