"""Document ingestion -- command-line entry point.

Startup sequence:
    1. Load pipeline configuration (needed for log_dir and output_dir)
    2. Setup logging (must happen before any code that logs)
    3. Load extraction options, applying command-line overrides
    4. Parse the file and print the ParseResult as JSON on stdout
    5. Optionally write accepted text as markdown with YAML frontmatter

Usage:
    python main.py report.pdf
    python main.py scan.png --ocr-language deu
    python main.py notes.docx --no-ocr --timeout-ms 10000 --write-markdown

Exit code is 0 when text was accepted and 1 when the result carries an error.
"""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Coroutine
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from doc_ingest.config import ParseOptions, PipelineSettings
from doc_ingest.extractor import LocalFile, parse_document, quality_description
from doc_ingest.extractor.markdown import (
    markdown_path_for,
    should_extract,
    write_markdown_file,
)
from doc_ingest.logging import setup_logging

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract text from a .docx, .pdf, .txt or image file."
    )
    parser.add_argument("file", help="Path of the document to extract")
    parser.add_argument("--media-type", help="Declared media type (guessed if omitted)")
    parser.add_argument("--no-ocr", action="store_true", help="Disable OCR fallback")
    parser.add_argument("--timeout-ms", type=int, help="Pipeline time budget")
    parser.add_argument("--max-pages", type=int, help="Maximum PDF pages to read")
    parser.add_argument("--ocr-language", help="Tesseract language code, e.g. eng")
    parser.add_argument(
        "--write-markdown",
        action="store_true",
        help="Write accepted text to <output_dir>/<name>.md",
    )
    parser.add_argument("--no-log-file", action="store_true", help="Log to stderr only")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _options_from_args(args: argparse.Namespace) -> ParseOptions:
    overrides = {
        "timeout_ms": args.timeout_ms,
        "max_pages": args.max_pages,
        "ocr_language": args.ocr_language,
    }
    if args.no_ocr:
        overrides["enable_ocr"] = False
    return ParseOptions(**{k: v for k, v in overrides.items() if v is not None})


def _run_detached(coro: Coroutine[Any, Any, int]) -> int:
    """Run *coro* on a fresh event loop whose worker threads are never joined.

    Engine calls abandoned at the parse timeout keep running in their worker
    thread; shutting the loop down must not wait for them.
    """
    executor = ThreadPoolExecutor(thread_name_prefix="doc-ingest")
    loop = asyncio.new_event_loop()
    loop.set_default_executor(executor)
    try:
        return loop.run_until_complete(coro)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()


async def _extract_and_report(
    file: LocalFile,
    options: ParseOptions,
    md_path: Path | None,
) -> int:
    """Parse *file*, print the result, and write markdown if *md_path* is set."""
    result = await parse_document(file, options)
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False), flush=True)

    if result.error is not None:
        logger.warning(
            "Extraction failed: %s (%s)", result.error.code.value, result.error.message
        )
        return 1

    logger.info(
        "Extraction quality: %s (%.2f) via %s",
        quality_description(result.score).value,
        result.score,
        result.source,
    )

    # 5. Markdown output
    if md_path is not None:
        write_markdown_file(md_path, result, file.name)

    return 0


def main(argv: list[str] | None = None) -> int:
    """Run a single extraction and report the result."""
    args = _build_parser().parse_args(argv)

    # 1. Load pipeline config first -- needed for logging and output paths
    pipeline = PipelineSettings()

    # 2. Setup logging BEFORE anything else logs
    setup_logging(
        log_dir=None if args.no_log_file else pipeline.log_dir,
        verbose=args.verbose,
        max_bytes=pipeline.log_max_bytes,
        backup_count=pipeline.log_backup_count,
    )

    # 3. Extraction options
    options = _options_from_args(args)
    logger.info(
        "Config loaded -- timeout_ms=%s, max_pages=%s, enable_ocr=%s, pdf_engine=%s",
        options.timeout_ms,
        options.max_pages,
        options.enable_ocr,
        options.pdf_engine,
    )

    file = LocalFile.from_path(args.file, media_type=args.media_type)
    if not file.path.is_file():
        logger.error("No such file: %s", file.path)
        return 1

    md_path = markdown_path_for(pipeline.output_dir, file.name)
    if args.write_markdown and not should_extract(md_path):
        logger.info("Skipping %s: already extracted (%s)", file.name, md_path)
        return 0

    # 4. Parse and report
    return _run_detached(
        _extract_and_report(file, options, md_path if args.write_markdown else None)
    )


if __name__ == "__main__":
    sys.exit(main())
