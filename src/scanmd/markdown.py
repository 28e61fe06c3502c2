"""Markdown output for recognition results.

A recognised chunk is turned into one partial Markdown file,
``part_<offset>.md``, where ``offset`` is the number of pages in all
earlier chunks of the same document.  Page headings use global, 1‑based
page numbers and image placeholders emitted by the backend are pointed at
files extracted into the ``images/`` directory.

When a document was split, the partial files are concatenated into
``complete.md``.  Their order comes from the offset in the file name only,
so the order in which chunks finished can never reorder pages.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .errors import FilesystemError, IncompleteResultError, RemoteServiceError
from .providers.base import OcrPage, OcrResult

logger = logging.getLogger(__name__)

IMAGES_DIRNAME = "images"
COMPLETE_NAME = "complete.md"
PART_SEPARATOR = "\n\n"

_PART_RE = re.compile(r"^part_(\d+)\.md$")
_HEADING_RE = re.compile(r"^## Page (\d+)$", re.MULTILINE)
_UNSAFE_ID_RE = re.compile(r"[\\/\x00]")


def part_name(page_offset: int) -> str:
    return f"part_{page_offset}.md"


def safe_image_id(image_id: str) -> str:
    """Make a provider image id usable as part of a file name inside ``images/``.

    Path separators are replaced; ids that would still name a directory are
    rejected with :class:`RemoteServiceError`.
    """
    safe = _UNSAFE_ID_RE.sub("_", image_id)
    if safe in ("", ".", ".."):
        raise RemoteServiceError(f"Invalid image id: {image_id!r}")
    return safe


def image_name(page_offset: int, local_page: int, image_id: str) -> str:
    return f"{page_offset}_{local_page}_{safe_image_id(image_id)}.png"


def part_offset(path: Path) -> int:
    """Page offset encoded in a partial result file name."""
    m = _PART_RE.match(path.name)
    if not m:
        raise IncompleteResultError(f"Not a partial result file: {path.name}")
    return int(m.group(1))


def rewrite_image_ref(markdown: str, image_id: str, target: str) -> str:
    """Point both ``![id](id)`` and ``![id](/id)`` at ``target``."""
    new = f"![{image_id}]({target})"
    for old in (f"![{image_id}]({image_id})", f"![{image_id}](/{image_id})"):
        markdown = markdown.replace(old, new)
    return markdown


def _write_image(images_dir: Path, filename: str, payload: str) -> None:
    try:
        data = base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise RemoteServiceError(f"Invalid image payload for {filename}: {exc}") from exc
    try:
        images_dir.mkdir(exist_ok=True)
        (images_dir / filename).write_bytes(data)
    except OSError as exc:
        raise FilesystemError(f"Cannot write image {filename}: {exc}") from exc


def render_page(page: OcrPage, local_index: int, page_offset: int, out_dir: Path) -> str:
    """Render one page with its global heading, extracting its images."""
    md = page.markdown
    images_dir = out_dir / IMAGES_DIRNAME
    for img in page.images:
        if not img.base64:
            logger.debug("Image %s on page %d has no payload, skipping", img.id, page_offset + local_index + 1)
            continue
        filename = image_name(page_offset, local_index, img.id)
        _write_image(images_dir, filename, img.base64)
        md = rewrite_image_ref(md, img.id, f"{IMAGES_DIRNAME}/{filename}")
    return f"## Page {page_offset + local_index + 1}\n\n{md}"


def save_partial(result: OcrResult, out_dir: Path, page_offset: int) -> Path:
    """Normalise ``result`` and write it as ``part_<page_offset>.md`` in ``out_dir``."""
    sections = [render_page(page, i, page_offset, out_dir) for i, page in enumerate(result.pages)]
    path = out_dir / part_name(page_offset)
    try:
        path.write_text(PART_SEPARATOR.join(sections), encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Cannot write {path}: {exc}") from exc
    logger.debug("Wrote %s (%d pages)", path, len(sections))
    return path


def _page_numbers(content: str) -> List[int]:
    return [int(n) for n in _HEADING_RE.findall(content)]


def _check_contiguous(parts: List[Tuple[int, Path, str]]) -> None:
    expected = 1
    for offset, path, content in parts:
        if offset + 1 != expected:
            raise IncompleteResultError(
                f"Missing partial result: expected page {expected}, {path.name} starts at page {offset + 1}")
        numbers = _page_numbers(content)
        # headings inside recognised text may repeat a number; count the leading run only
        run = 0
        for n in numbers:
            if n == expected + run:
                run += 1
        expected += run


def merge_partials(out_dir: Path, partials: Optional[Iterable[Path]] = None) -> Path:
    """Concatenate partial results of one document into ``complete.md``.

    Parameters
    ----------
    out_dir:
        Document output directory.
    partials:
        Partial result files.  When omitted every ``part_*.md`` in
        ``out_dir`` is used.

    Returns
    -------
    Path
        Path to the merged Markdown document.
    """
    if partials is None:
        partials = [p for p in out_dir.glob("part_*.md") if _PART_RE.match(p.name)]
    ordered = sorted(partials, key=part_offset)
    if not ordered:
        raise IncompleteResultError(f"No partial results in {out_dir}")

    parts: List[Tuple[int, Path, str]] = []
    for path in ordered:
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise IncompleteResultError(f"Missing partial result {path.name}") from exc
        except OSError as exc:
            raise FilesystemError(f"Cannot read {path}: {exc}") from exc
        parts.append((part_offset(path), path, content))
    _check_contiguous(parts)

    complete = out_dir / COMPLETE_NAME
    try:
        complete.write_text(PART_SEPARATOR.join(content for _, _, content in parts), encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Cannot write {complete}: {exc}") from exc
    logger.info("Merged %d partial results into %s", len(parts), complete)
    return complete
