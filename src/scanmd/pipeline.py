"""Document processing pipeline.

The :class:`Pipeline` walks a queue of input files one at a time.  Each
document is optionally wrapped from a raster image into a PDF, checked
against the size threshold, and either sent to the provider in one piece or
split into chunks that are recognised in page order and merged afterwards.

Every state change is reported on the pipeline's :class:`EventChannel`.
The first error stops the whole queue: remaining documents are not
attempted and a single :class:`Failed` event is emitted.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
import threading
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from .chunk import ChunkProcessor
from .config import PipelineConfig
from .errors import DocumentFormatError, FilesystemError, ScanMdError
from .events import ChunkProgress, Event, EventChannel, Failed, Finished, OverallProgress, StatusMessage
from .markdown import merge_partials
from .pdf import count_pages, image_to_pdf, is_image_file, is_supported, load_document, needs_chunking
from .providers.base import OcrProvider
from .providers.registry import create_provider
from .split import split_document

logger = logging.getLogger(__name__)


class DocumentQueue:
    """Ordered queue of input paths without duplicates."""

    def __init__(self, paths: Iterable[Path] = ()) -> None:
        self._paths: List[Path] = []
        for p in paths:
            self.add(p)

    def add(self, path: Path) -> bool:
        path = Path(path)
        if path in self._paths:
            return False
        self._paths.append(path)
        return True

    def remove(self, path: Path) -> None:
        self._paths.remove(Path(path))

    def clear(self) -> None:
        self._paths.clear()

    def __iter__(self) -> Iterator[Path]:
        return iter(list(self._paths))

    def __len__(self) -> int:
        return len(self._paths)


class Pipeline:
    """Sequential orchestrator over a queue of documents.

    Parameters
    ----------
    config:
        Run configuration.
    provider:
        Recognition backend.  When omitted it is resolved from
        ``config.provider`` at the start of :meth:`run`.
    channel:
        Outbound event channel.  When omitted an unbounded channel is used,
        so awaiting :meth:`run` without a consumer never blocks;
        :func:`run_in_background` swaps in a channel bounded by
        ``config.channel_size``.
    """

    def __init__(
        self,
        config: PipelineConfig,
        provider: Optional[OcrProvider] = None,
        channel: Optional[EventChannel] = None,
    ) -> None:
        self.config = config
        self.provider = provider
        self.channel = channel or EventChannel(0)

    def emit(self, event: Event) -> None:
        self.channel.emit(event)

    def output_dir_for(self, path: Path) -> Path:
        return self.config.output_dir / f"{self.config.output_prefix}{path.stem}"

    async def run(self, paths: Iterable[Path]) -> Optional[List[Path]]:
        """Process ``paths`` in order.

        Returns the output directories on success or ``None`` after a
        failure; in both cases the matching terminal event has been emitted.
        """
        queue = paths if isinstance(paths, DocumentQueue) else DocumentQueue(paths)
        try:
            provider = self.provider or create_provider(self.config)
        except ScanMdError as exc:
            logger.error("Cannot start: %s", exc)
            self.emit(Failed(f"Error: {exc}"))
            return None

        processor = ChunkProcessor(provider, self.emit)
        files = list(queue)
        total = len(files)
        results: List[Path] = []
        for i, path in enumerate(files):
            self.emit(OverallProgress(i / total))
            self.emit(StatusMessage(f"Processing {path.name}..."))
            try:
                out_dir = await self.process_document(path, processor, i, total)
            except ScanMdError as exc:
                logger.error("Failed on %s: %s", path, exc)
                self.emit(Failed(f"Error: {exc}"))
                return None
            results.append(out_dir)
            self.emit(ChunkProgress(1.0))

        self.emit(OverallProgress(1.0))
        self.emit(Finished(results))
        return results

    async def process_document(self, path: Path, processor: ChunkProcessor, index: int = 0, total: int = 1) -> Path:
        """Recognise one document and return its output directory."""
        if not is_supported(path):
            raise DocumentFormatError(f"Unsupported file type: {path.name}")
        logger.info("Processing %s", path)

        with tempfile.TemporaryDirectory(prefix="scanmd-") as tmp:
            work_dir = Path(tmp)
            actual = path
            if is_image_file(path):
                self.emit(StatusMessage("Converting image to PDF..."))
                actual = image_to_pdf(path, work_dir / "converted.pdf")

            document = load_document(actual)
            document.page_count = count_pages(actual)

            out_dir = self.output_dir_for(path)
            try:
                out_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise FilesystemError(f"Cannot create output directory {out_dir}: {exc}") from exc

            threshold = self.config.chunk_threshold_bytes
            if not needs_chunking(document.size, threshold):
                logger.info("%s: %d pages, %d bytes, single request", path.name, document.page_count, document.size)
                await processor.process(actual, out_dir, 0)
                return out_dir

            self.emit(StatusMessage("Splitting large PDF..."))
            chunk_dir = work_dir / "chunks"
            try:
                chunk_dir.mkdir()
            except OSError as exc:
                raise FilesystemError(f"Cannot create chunk directory {chunk_dir}: {exc}") from exc
            chunks = split_document(actual, threshold, chunk_dir)

            partials: List[Path] = []
            for k, chunk in enumerate(chunks):
                self.emit(StatusMessage(f"Processing chunk {k + 1}/{len(chunks)}..."))
                self.emit(OverallProgress((index + k / len(chunks)) / total))
                partials.append(await processor.process(chunk.path, out_dir, chunk.page_offset))

            merge_partials(out_dir, partials)
        logger.info("Finished %s -> %s", path.name, out_dir)
        return out_dir


def run_in_background(pipeline: Pipeline, paths: Iterable[Path]) -> threading.Thread:
    """Run ``pipeline`` over ``paths`` on a worker thread with its own event loop.

    The pipeline's channel is replaced by one bounded by
    ``config.channel_size``; the worker blocks while it is full.  The caller
    follows progress through ``pipeline.channel``.
    """
    files = list(paths)
    pipeline.channel = EventChannel(pipeline.config.channel_size)

    def _worker() -> None:
        try:
            asyncio.run(pipeline.run(files))
        except Exception as exc:
            logger.exception("Pipeline worker crashed")
            pipeline.emit(Failed(f"Error: {exc}"))

    thread = threading.Thread(target=_worker, name="scanmd-worker", daemon=True)
    thread.start()
    return thread
