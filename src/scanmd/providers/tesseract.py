"""Local recognition using Tesseract.

Each page is rasterised with PyMuPDF, converted to an enhanced grayscale
image and passed to pytesseract.  Tesseract is run with several page
segmentation modes (PSM) and the result with the highest average confidence
is kept.  The work is CPU bound, so it runs in a worker thread to keep the
event loop free.  Pages come back as plain text without embedded images.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import fitz  # type: ignore
import numpy as np
import pytesseract  # type: ignore
from PIL import Image, ImageFilter, ImageOps

from scanmd.config import PipelineConfig
from scanmd.errors import DocumentFormatError, RemoteServiceError
from scanmd.pdf import open_pdf
from scanmd.providers.base import OcrPage, OcrResult, Stage, StageCallback

logger = logging.getLogger(__name__)

FALLBACK_PSMS = (6, 3, 4)


@dataclass
class PageText:
    text: str
    avg_conf: float
    used_psm: int


def render_page(page: "fitz.Page", dpi: int) -> Image.Image:
    # scale matrix: DPI/72 since PyMuPDF uses 72 DPI baseline
    zoom = dpi / 72.0
    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
    mode = "RGB" if pix.n > 1 else "L"
    return Image.frombytes(mode, [pix.width, pix.height], pix.samples)


def enhance(img: Image.Image) -> Image.Image:
    """Grayscale, unsharp mask and autocontrast."""
    gray = img.convert("L")
    sharp = gray.filter(ImageFilter.UnsharpMask(radius=2, percent=150, threshold=3))
    return ImageOps.autocontrast(sharp)


def _run_psm(img: Image.Image, lang: str, psm: int) -> PageText:
    config_str = f"--psm {psm}"
    data = pytesseract.image_to_data(img, lang=lang, config=config_str, output_type=pytesseract.Output.DICT)
    # -1 marks non-word boxes
    confs = [float(c) for c in data.get("conf", []) if float(c) >= 0]
    avg_conf = float(np.mean(confs)) if confs else 0.0
    text = pytesseract.image_to_string(img, lang=lang, config=config_str)
    return PageText(text=text.strip(), avg_conf=avg_conf, used_psm=psm)


def recognise(img: Image.Image, lang: str, psm: int) -> PageText:
    """Run Tesseract with ``psm`` and the fallback modes, keep the most confident result.

    Ties are broken by the longer text.
    """
    psms: List[int] = []
    for p in (psm, *FALLBACK_PSMS):
        if p not in psms:
            psms.append(p)
    results: List[PageText] = []
    errors: List[str] = []
    for p in psms:
        try:
            results.append(_run_psm(img, lang, p))
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as exc:
            logger.warning("Tesseract failed for PSM %d: %s", p, exc)
            errors.append(str(exc))
    if not results:
        raise RemoteServiceError(f"Tesseract failed: {errors[-1] if errors else 'no result'}")
    results.sort(key=lambda r: (r.avg_conf, len(r.text)), reverse=True)
    return results[0]


class TesseractProvider:
    provider_id = "tesseract"
    name = "Tesseract (local)"

    def __init__(self, lang: str = "eng", dpi: int = 300, psm: int = 6) -> None:
        self.lang = lang
        self.dpi = dpi
        self.psm = psm

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "TesseractProvider":
        return cls(lang=config.lang, dpi=config.dpi, psm=config.tess_psm)

    def _recognise_document(self, path: Path) -> OcrResult:
        try:
            doc = open_pdf(path)
        except DocumentFormatError as exc:
            raise RemoteServiceError(f"Tesseract failed: {exc}") from exc
        pages: List[OcrPage] = []
        try:
            for i in range(doc.page_count):
                img = enhance(render_page(doc[i], self.dpi))
                result = recognise(img, self.lang, self.psm)
                logger.debug("Page %d: PSM %d, mean confidence %.1f", i + 1, result.used_psm, result.avg_conf)
                pages.append(OcrPage(index=i, markdown=result.text))
        finally:
            doc.close()
        return OcrResult(pages=pages)

    async def process_file(self, path: Path, progress: Optional[StageCallback] = None) -> OcrResult:
        report = progress or (lambda stage: None)
        report(Stage.SUBMITTED)
        report(Stage.ACCESS_GRANTED)
        report(Stage.RECOGNITION_REQUESTED)
        result = await asyncio.to_thread(self._recognise_document, path)
        report(Stage.RECOGNITION_COMPLETE)
        return result
