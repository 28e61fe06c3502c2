"""Split oversized PDF documents into size‑bounded chunks.

Remote recognition services cap the size of a single request.  Documents
above the configured threshold are cut into contiguous page ranges, each
written as its own PDF.  Pages are accumulated greedily: a chunk is closed
as soon as adding the next page would push it over the threshold.  A page
that is larger than the threshold on its own still becomes a chunk of its
own; pages are never split further.

The size of a page range is estimated from the sum of its pages' stand‑alone
sizes.  Resources shared between pages (fonts, images reused across pages)
are counted once per page, so the estimate errs on the large side.  The page
count of every chunk is taken from the written file, never from the
estimate, so page offsets stay exact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

import fitz  # type: ignore

from .errors import DocumentFormatError, FilesystemError
from .pdf import PDF_ERRORS, count_pages, open_pdf

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    """A contiguous page range of a source document, materialised as a PDF.

    Attributes
    ----------
    index:
        Zero‑based sequence number in split order.
    path:
        Location of the chunk PDF.
    page_offset:
        Sum of the page counts of all earlier chunks of the same document.
    page_count:
        Number of pages in the chunk, read back from ``path``.
    size:
        Size of the written chunk in bytes.
    """

    index: int
    path: Path
    page_offset: int
    page_count: int
    size: int


def _page_size(src: "fitz.Document", page_no: int) -> int:
    """Size in bytes of ``page_no`` saved as a stand‑alone PDF."""
    single = fitz.open()
    try:
        single.insert_pdf(src, from_page=page_no, to_page=page_no)
        return len(single.tobytes(garbage=3, deflate=True))
    except PDF_ERRORS as exc:
        raise DocumentFormatError(f"Cannot copy page {page_no + 1}: {exc}") from exc
    finally:
        single.close()


def plan_ranges(page_sizes: List[int], max_bytes: int) -> List[Tuple[int, int]]:
    """Group pages into inclusive ``(first, last)`` ranges under ``max_bytes``.

    Ranges cover every page exactly once, in order.
    """
    ranges: List[Tuple[int, int]] = []
    start = 0
    total = 0
    for page_no, size in enumerate(page_sizes):
        if page_no > start and total + size > max_bytes:
            ranges.append((start, page_no - 1))
            start = page_no
            total = 0
        total += size
    if page_sizes:
        ranges.append((start, len(page_sizes) - 1))
    return ranges


def split_document(path: Path, max_bytes: int, work_dir: Path) -> List[Chunk]:
    """Split ``path`` into chunks no larger than ``max_bytes`` where possible.

    Parameters
    ----------
    path:
        Source PDF.
    max_bytes:
        Size threshold for a single chunk.
    work_dir:
        Directory that receives the chunk files.  Its lifetime is owned by
        the caller.

    Returns
    -------
    list[Chunk]
        Chunks in page order with dense indices starting at zero.
    """
    src = open_pdf(path)
    try:
        sizes = [_page_size(src, i) for i in range(src.page_count)]
        ranges = plan_ranges(sizes, max_bytes)
        logger.info("Splitting %s (%d pages) into %d chunks", path.name, src.page_count, len(ranges))

        chunks: List[Chunk] = []
        offset = 0
        for index, (first, last) in enumerate(ranges):
            chunk_path = work_dir / f"chunk_{index:04d}.pdf"
            part = fitz.open()
            try:
                part.insert_pdf(src, from_page=first, to_page=last)
                part.save(chunk_path, garbage=3, deflate=True)
            except PDF_ERRORS as exc:
                raise FilesystemError(f"Cannot write chunk {chunk_path}: {exc}") from exc
            finally:
                part.close()

            pages = count_pages(chunk_path)
            size = chunk_path.stat().st_size
            if size > max_bytes:
                logger.warning("Chunk %d (pages %d-%d) is %d bytes, above the %d byte threshold",
                               index, first + 1, last + 1, size, max_bytes)
            logger.debug("Chunk %d: pages %d-%d, offset %d, %d bytes", index, first + 1, last + 1, offset, size)
            chunks.append(Chunk(index=index, path=chunk_path, page_offset=offset, page_count=pages, size=size))
            offset += pages
        return chunks
    finally:
        src.close()
