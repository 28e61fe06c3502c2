"""Input document utilities.

This module classifies queued input files, wraps raster images into
single‑page PDF documents and answers the one question the pipeline asks
before dispatching a document: does it have to be chunked?

PDF handling uses PyMuPDF (``fitz``).  Raster images are validated with
Pillow and converted with PyMuPDF's own image→PDF conversion, which embeds
the original image stream and therefore does not recompress it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import fitz  # type: ignore
from PIL import Image, UnidentifiedImageError

from .errors import DocumentFormatError, EmptyDocumentError, FilesystemError

logger = logging.getLogger(__name__)

PDF_SUFFIX = ".pdf"
IMAGE_SUFFIXES = frozenset({".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif"})
SUPPORTED_SUFFIXES = IMAGE_SUFFIXES | {PDF_SUFFIX}

# MuPDF reports I/O and parse failures as FzErrorBase subclasses, not OSError
PDF_ERRORS = (OSError, RuntimeError, ValueError, fitz.mupdf.FzErrorBase)


@dataclass
class Document:
    """A queued input file.

    ``page_count`` is only known once the PDF has been loaded.
    """

    path: Path
    size: int
    page_count: Optional[int] = None

    @property
    def stem(self) -> str:
        return self.path.stem


def is_image_file(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_SUFFIXES


def is_supported(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_SUFFIXES


def file_size(path: Path) -> int:
    """Return the encoded size of ``path`` in bytes."""
    try:
        return path.stat().st_size
    except OSError as exc:
        raise FilesystemError(f"Cannot read size of {path}: {exc}") from exc


def needs_chunking(size: int, threshold: int) -> bool:
    """Return ``True`` when a document of ``size`` bytes exceeds ``threshold``."""
    return size > threshold


def open_pdf(path: Path) -> "fitz.Document":
    """Open ``path`` with PyMuPDF, translating failures into pipeline errors."""
    if not path.exists():
        raise FilesystemError(f"No such file: {path}")
    try:
        doc = fitz.open(path)
    except PDF_ERRORS as exc:
        raise DocumentFormatError(f"Cannot read {path.name} as PDF: {exc}") from exc
    if not doc.is_pdf:
        doc.close()
        raise DocumentFormatError(f"{path.name} is not a PDF document")
    if doc.page_count == 0:
        doc.close()
        raise EmptyDocumentError(f"{path.name} has no pages")
    return doc


def count_pages(path: Path) -> int:
    """Load ``path`` and return the number of pages it actually contains."""
    doc = open_pdf(path)
    try:
        return doc.page_count
    finally:
        doc.close()


def load_document(path: Path) -> Document:
    return Document(path=path, size=file_size(path))


def image_to_pdf(image_path: Path, pdf_path: Path) -> Path:
    """Wrap a raster image into a single page PDF at ``pdf_path``.

    The image is first opened with Pillow so that unreadable or truncated
    files are rejected with :class:`DocumentFormatError` before PyMuPDF
    sees them.
    """
    try:
        with Image.open(image_path) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise DocumentFormatError(f"Cannot read {image_path.name} as an image: {exc}") from exc

    logger.debug("Wrapping %s into %s", image_path, pdf_path)
    try:
        img_doc = fitz.open(image_path)
        try:
            pdf_bytes = img_doc.convert_to_pdf()
        finally:
            img_doc.close()
    except PDF_ERRORS as exc:
        raise DocumentFormatError(f"Cannot convert {image_path.name} to PDF: {exc}") from exc

    # multi-frame TIFFs convert to several pages; keep only the first frame
    out = fitz.open("pdf", pdf_bytes)
    try:
        if out.page_count > 1:
            out.select([0])
        out.save(pdf_path)
    except PDF_ERRORS as exc:
        raise FilesystemError(f"Cannot write {pdf_path}: {exc}") from exc
    finally:
        out.close()
    return pdf_path
