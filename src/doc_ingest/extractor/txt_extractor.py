"""Plain-text extraction: the file content is the text."""

from __future__ import annotations

import asyncio
import logging

from doc_ingest.config.settings import ParseOptions
from doc_ingest.extractor.files import UploadedFile
from doc_ingest.extractor.quality import count_words, score_quality
from doc_ingest.extractor.types import ErrorCode, ParseResult

logger = logging.getLogger(__name__)

SOURCE = "text-reader"
FAILED_SOURCE = "text-reader-failed"


class TxtExtractor:
    """Read .txt uploads as UTF-8, verbatim."""

    async def extract(self, file: UploadedFile, options: ParseOptions) -> ParseResult:
        try:
            text = await asyncio.to_thread(file.read_text)
        except (OSError, UnicodeDecodeError) as e:
            diagnostic = f"{type(e).__name__}: {e}"
            logger.warning("Cannot read text file %s: %s", file.name, diagnostic)
            return ParseResult.failure(
                FAILED_SOURCE,
                ErrorCode.TXT_PARSE_ERROR,
                f"Failed to read text file: {diagnostic}",
                diagnostic=diagnostic,
            )

        word_count = count_words(text)
        logger.info("Text file read: %s (%d words)", file.name, word_count)
        return ParseResult(
            text=text,
            score=score_quality(text),
            source=SOURCE,
            meta={"word_count": word_count},
        )
