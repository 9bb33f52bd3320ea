"""Dual-handler logging setup: JSON rotating file + human-readable console.

This module configures Python's stdlib logging with two handlers:
    1. RotatingFileHandler -- JSON format, DEBUG level, size-based rotation
    2. StreamHandler -- Text format on stderr, INFO level (DEBUG with verbose)

Call setup_logging() once from the entry point before any extraction runs.
Library modules only ever use logging.getLogger(__name__); importing
doc_ingest never installs handlers.
"""

import logging
import logging.handlers
import sys
from pathlib import Path

from pythonjsonlogger.json import JsonFormatter

_LOG_FILE_NAME = "ingest.log"


def _json_formatter() -> JsonFormatter:
    return JsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={
            "asctime": "timestamp",
            "levelname": "level",
            "name": "component",
        },
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


def setup_logging(
    log_dir: str | None = "logs",
    verbose: bool = False,
    max_bytes: int = 10_485_760,  # 10MB
    backup_count: int = 5,
) -> None:
    """Configure logging: JSON file (optional) + text console on stderr.

    Clears any existing handlers on the root logger so repeated calls do not
    duplicate output.  Console output goes to stderr because the CLI writes
    the extraction result as JSON on stdout.

    Args:
        log_dir: Directory for the rotating JSON log file, or None to log to
            the console only.
        verbose: Lower the console level from INFO to DEBUG.
        max_bytes: Maximum size per log file before rotation (default 10MB).
        backup_count: Number of rotated backup files to keep (default 5).
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture everything; handlers filter
    root_logger.handlers.clear()

    if log_dir is not None:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(Path(log_dir) / _LOG_FILE_NAME),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(_json_formatter())
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(console_handler)
