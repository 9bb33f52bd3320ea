"""Markdown output writer with YAML frontmatter for extracted text.

Handles the filesystem side of a CLI extraction run: writing the accepted
text next to other outputs with structured YAML frontmatter describing how
it was extracted.  Provides idempotency via ``should_extract`` -- if a
markdown file already exists and has content, the upload is skipped on
re-run.

Public API:
    should_extract(md_path)  -> bool
    markdown_path_for(output_dir, source_name) -> Path
    write_markdown_file(md_path, result, source_name)  -> None
"""

from __future__ import annotations

import datetime
import logging
from pathlib import Path

import frontmatter

from doc_ingest.extractor.quality import quality_description
from doc_ingest.extractor.types import ParseResult

logger = logging.getLogger(__name__)


def should_extract(md_path: Path) -> bool:
    """Return False (skip) if *md_path* already exists and has content."""
    if md_path.exists() and md_path.stat().st_size > 0:
        return False
    return True


def markdown_path_for(output_dir: str | Path, source_name: str) -> Path:
    """Return ``<output_dir>/<source stem>.md``."""
    return Path(output_dir) / f"{Path(source_name).stem}.md"


def write_markdown_file(md_path: Path, result: ParseResult, source_name: str) -> None:
    """Write extracted text to disk with YAML frontmatter metadata.

    Frontmatter keys:

    - ``source_file``: Original upload filename
    - ``extraction_source``: Which backend produced the text
    - ``extraction_date``: UTC ISO-8601 timestamp
    - ``quality_score``: Quality score rounded to 3 places
    - ``quality``: Human-readable quality band
    - ``word_count``: Words in the extracted text
    - ``page_count``: Pages in the source, when known (PDF)

    Args:
        md_path: Destination path for the markdown file.
        result: Accepted extraction result.
        source_name: Upload filename (not full path).
    """
    post = frontmatter.Post(result.text)
    post.metadata["source_file"] = source_name
    post.metadata["extraction_source"] = result.source
    post.metadata["extraction_date"] = datetime.datetime.now(datetime.UTC).isoformat()
    post.metadata["quality_score"] = round(result.score, 3)
    post.metadata["quality"] = quality_description(result.score).value
    post.metadata["word_count"] = result.word_count
    if "page_count" in result.meta:
        post.metadata["page_count"] = result.meta["page_count"]

    md_path.parent.mkdir(parents=True, exist_ok=True)

    with open(md_path, "w", encoding="utf-8") as f:
        f.write(frontmatter.dumps(post))

    logger.info(
        "Wrote extraction to %s (%d words, source %s)",
        md_path.name,
        result.word_count,
        result.source,
    )
