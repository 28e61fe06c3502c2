"""Top‑level package for the scan→Markdown pipeline.

Scanned PDFs and raster images are sent to an OCR provider, split into
size‑bounded chunks when they are too large for one request, and the
per‑chunk results are merged back into one Markdown document.  A command
line interface is available via the ``scanmd`` console script.  See
``scanmd.cli`` for details on the supported commands.
"""

__all__ = [
    "errors", "config", "pdf", "split", "providers", "markdown", "chunk", "events", "pipeline", "cli"
]
