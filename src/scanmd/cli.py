"""Command line interface for the scan→Markdown pipeline.

This module defines the ``scanmd`` console entry point.  ``run`` processes
files on a background worker and renders its progress events with tqdm,
``merge`` rebuilds ``complete.md`` from persisted partial results and
``providers`` lists the available recognition backends.  It uses Python's
built‑in ``argparse`` module to parse command line options.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from tqdm import tqdm

from .config import PipelineConfig, load_config
from .errors import ScanMdError
from .events import ChunkProgress, EventChannel, Failed, Finished, OverallProgress, StatusMessage
from .markdown import merge_partials
from .pipeline import DocumentQueue, Pipeline, run_in_background
from .providers.registry import available_providers

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "All files processed successfully!"


def _setup_logger(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _build_config(args: argparse.Namespace) -> PipelineConfig:
    config = load_config(args.config) if args.config else PipelineConfig()
    return config.replace(
        output_dir=Path(args.output_dir) if args.output_dir else None,
        provider=args.provider,
        api_key=args.api_key,
        chunk_threshold_mb=args.threshold_mb,
    )


def render_events(channel: EventChannel) -> int:
    """Consume events until the terminal one; return the process exit code."""
    overall = tqdm(total=100, desc="Total", unit="%", position=0)
    current = tqdm(total=100, desc="Current", unit="%", position=1)
    code = 1
    try:
        for event in channel.events():
            if isinstance(event, OverallProgress):
                overall.n = round(event.fraction * 100)
                overall.refresh()
            elif isinstance(event, ChunkProgress):
                current.n = round(event.fraction * 100)
                current.refresh()
            elif isinstance(event, StatusMessage):
                current.set_postfix_str(event.text)
            elif isinstance(event, Finished):
                tqdm.write(SUCCESS_MESSAGE)
                for out_dir in event.output_dirs:
                    tqdm.write(str(out_dir))
                code = 0
            elif isinstance(event, Failed):
                tqdm.write(event.error, file=sys.stderr)
    finally:
        current.close()
        overall.close()
    return code


def cmd_run(args: argparse.Namespace) -> int:
    config = _build_config(args)
    queue = DocumentQueue(Path(p) for p in args.paths)
    if not len(queue):
        logger.error("No input files given")
        return 2
    pipeline = Pipeline(config)
    worker = run_in_background(pipeline, queue)
    code = render_events(pipeline.channel)
    worker.join()
    return code


def cmd_merge(args: argparse.Namespace) -> int:
    for directory in args.paths:
        complete = merge_partials(Path(directory))
        print(complete)
    return 0


def cmd_providers(args: argparse.Namespace) -> int:
    for provider_id, name in available_providers().items():
        print(f"{provider_id}\t{name}")
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Scanned documents to Markdown via OCR providers")
    parser.add_argument("command", choices=["run", "merge", "providers"], help="Action to perform")
    parser.add_argument("paths", nargs="*", help="Input files for run, output directories for merge")
    parser.add_argument("-c", "--config", default=None, help="Path to YAML configuration file")
    parser.add_argument("-o", "--output-dir", default=None, help="Base directory for outputs")
    parser.add_argument("--provider", default=None, help="OCR provider identifier")
    parser.add_argument("--api-key", default=None, help="Credential for the selected provider")
    parser.add_argument("--threshold-mb", type=float, default=None, help="Chunking threshold in MiB")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)
    _setup_logger(args.verbose)
    cmd_map = {
        "run": cmd_run,
        "merge": cmd_merge,
        "providers": cmd_providers,
    }
    cmd = cmd_map[args.command]
    try:
        return cmd(args)
    except ScanMdError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
