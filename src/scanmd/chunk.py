"""Drive a single chunk through a recognition provider.

The processor submits one PDF to the provider, follows its progress
milestones and writes the normalised partial result.  Progress for the
current chunk is reported as fractions that never decrease.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict

from .events import ChunkProgress, Event
from .markdown import save_partial
from .providers.base import OcrProvider, Stage

logger = logging.getLogger(__name__)

STAGE_FRACTIONS: Dict[Stage, float] = {
    Stage.SUBMITTED: 0.1,
    Stage.ACCESS_GRANTED: 0.3,
    Stage.RECOGNITION_REQUESTED: 0.5,
    Stage.RECOGNITION_COMPLETE: 0.8,
}
PERSISTED_FRACTION = 1.0


class ChunkProcessor:
    """Recognise one chunk and persist its partial result.

    Parameters
    ----------
    provider:
        Resolved recognition backend.
    emit:
        Callback receiving progress events.
    """

    def __init__(self, provider: OcrProvider, emit: Callable[[Event], None]) -> None:
        self.provider = provider
        self.emit = emit
        self._last = 0.0

    def _advance(self, fraction: float) -> None:
        if fraction <= self._last:
            return
        self._last = fraction
        self.emit(ChunkProgress(fraction))

    def _on_stage(self, stage: Stage) -> None:
        logger.debug("Provider stage: %s", stage.value)
        self._advance(STAGE_FRACTIONS[stage])

    async def process(self, path: Path, out_dir: Path, page_offset: int) -> Path:
        """Recognise ``path`` and write ``part_<page_offset>.md`` into ``out_dir``.

        Returns the path of the partial result.  Provider and filesystem
        errors propagate unchanged.
        """
        self._last = 0.0
        result = await self.provider.process_file(path, progress=self._on_stage)
        self._advance(STAGE_FRACTIONS[Stage.RECOGNITION_COMPLETE])
        partial = save_partial(result, out_dir, page_offset)
        self._advance(PERSISTED_FRACTION)
        logger.info("Chunk at offset %d: %d pages recognised", page_offset, len(result.pages))
        return partial
