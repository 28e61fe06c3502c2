"""Shared fixtures: generated PDFs and an in-process OCR provider."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional

import fitz  # type: ignore
import pytest

from scanmd.config import PipelineConfig
from scanmd.errors import RemoteServiceError
from scanmd.providers.base import OcrImage, OcrPage, OcrResult, Stage, StageCallback


def make_pdf(path: Path, pages: int, label: str = "page") -> Path:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page()
        page.insert_text((72, 72), f"{label} {i + 1}")
    doc.save(path)
    doc.close()
    return path


# catalog with an empty page tree and no xref table; MuPDF repairs it on open
EMPTY_PDF = (
    b"%PDF-1.4\n"
    b"1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj\n"
    b"2 0 obj<</Type/Pages/Kids[]/Count 0>>endobj\n"
    b"trailer<</Root 1 0 R>>\n"
    b"%%EOF\n"
)


def make_empty_pdf(path: Path) -> Path:
    path.write_bytes(EMPTY_PDF)
    return path


class FakeProvider:
    """Returns one page per PDF page, optionally with images, optionally failing."""

    provider_id = "fake"
    name = "Fake"

    def __init__(
        self,
        images: Optional[Callable[[Path, int], List[OcrImage]]] = None,
        fail_on_call: Optional[int] = None,
    ) -> None:
        self.images = images
        self.fail_on_call = fail_on_call
        self.calls: List[Path] = []

    async def process_file(self, path: Path, progress: Optional[StageCallback] = None) -> OcrResult:
        self.calls.append(path)
        report = progress or (lambda stage: None)
        report(Stage.SUBMITTED)
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise RemoteServiceError("Fake OCR failed: boom")
        report(Stage.ACCESS_GRANTED)
        report(Stage.RECOGNITION_REQUESTED)
        doc = fitz.open(path)
        count = doc.page_count
        doc.close()
        pages = []
        for i in range(count):
            imgs = self.images(path, i) if self.images else []
            pages.append(OcrPage(index=i, markdown=f"text of local page {i}", images=imgs))
        report(Stage.RECOGNITION_COMPLETE)
        return OcrResult(pages=pages)


@pytest.fixture
def config(tmp_path: Path) -> PipelineConfig:
    return PipelineConfig(provider="mistral", api_key="test-key", output_dir=tmp_path / "out")


@pytest.fixture
def pdf_factory(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str, pages: int, label: str = "page") -> Path:
        return make_pdf(tmp_path / name, pages, label)
    return _make
