"""Tests for the local Tesseract provider with Tesseract itself stubbed out."""

from typing import List

import pytest
from PIL import Image

from scanmd.errors import RemoteServiceError
from scanmd.providers import tesseract
from scanmd.providers.base import Stage
from scanmd.providers.tesseract import PageText, TesseractProvider, recognise


def test_recognise_prefers_confidence_then_length(monkeypatch: pytest.MonkeyPatch) -> None:
    scores = {4: (80.0, "long text here"), 6: (60.0, "x"), 3: (80.0, "short")}
    tried: List[int] = []

    def fake(img, lang, psm):
        tried.append(psm)
        conf, text = scores[psm]
        return PageText(text=text, avg_conf=conf, used_psm=psm)

    monkeypatch.setattr(tesseract, "_run_psm", fake)
    best = recognise(Image.new("L", (10, 10)), "eng", 4)
    assert tried == [4, 6, 3]
    assert best.used_psm == 4


def test_recognise_all_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(img, lang, psm):
        raise OSError("tesseract missing")

    monkeypatch.setattr(tesseract, "_run_psm", broken)
    with pytest.raises(RemoteServiceError, match="tesseract missing"):
        recognise(Image.new("L", (10, 10)), "eng", 6)


@pytest.mark.asyncio
async def test_process_file_returns_page_per_pdf_page(pdf_factory, monkeypatch: pytest.MonkeyPatch) -> None:
    src = pdf_factory("doc.pdf", 3)
    seen = []

    def fake(img, lang, psm):
        seen.append(img.mode)
        return PageText(text=f"page text {len(seen)}", avg_conf=90.0, used_psm=psm)

    monkeypatch.setattr(tesseract, "recognise", fake)
    stages: List[Stage] = []
    result = await TesseractProvider(dpi=36).process_file(src, progress=stages.append)

    assert [p.markdown for p in result.pages] == ["page text 1", "page text 2", "page text 3"]
    assert [p.index for p in result.pages] == [0, 1, 2]
    assert all(not p.images for p in result.pages)
    assert seen == ["L", "L", "L"]
    assert stages[-1] == Stage.RECOGNITION_COMPLETE
