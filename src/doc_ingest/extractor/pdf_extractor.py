"""PDF text-layer extraction with encryption and text-layer pre-checks.

Extraction runs in three steps against the configured PdfEngine:

1. **Encryption check** -- a document that needs a password is rejected
   before any page is fetched; no fallback can compensate for it.
2. **Text-layer probe** -- the first few pages are sampled for text items.
   A PDF with none is a scan: with OCR enabled this is reported as a soft
   ``PDF_NO_TEXT_LAYER`` signal that hands off to OCR, without OCR it is a
   terminal failure.
3. **Page walk** -- pages ``1..min(page_count, max_pages)`` in order, items
   joined by spaces, pages separated by a blank line.

Public API:
    PdfExtractor(engine).extract(file, options) -> ParseResult
"""

from __future__ import annotations

import asyncio
import logging

from doc_ingest.config.settings import ParseOptions
from doc_ingest.engines.base import CapabilityUnavailable, PdfEngine, PdfHandle
from doc_ingest.extractor.files import UploadedFile
from doc_ingest.extractor.quality import count_words, score_quality
from doc_ingest.extractor.types import ErrorCode, PageText, ParseResult

logger = logging.getLogger(__name__)

SOURCE = "pdf-engine"
FAILED_SOURCE = "pdf-extraction-failed"

_PASSWORD_TERMS = ("password", "encrypt", "decrypt")


def _encrypted_failure(diagnostic: str | None = None) -> ParseResult:
    meta = {"diagnostic": diagnostic} if diagnostic else {}
    return ParseResult.failure(
        FAILED_SOURCE,
        ErrorCode.PDF_ENCRYPTED,
        "PDF is password-protected and cannot be read.",
        actionable=True,
        suggested_action="Upload an unprotected version of this document",
        **meta,
    )


def _classify_exception(e: Exception) -> ParseResult:
    diagnostic = f"{type(e).__name__}: {e}"
    if any(term in diagnostic.lower() for term in _PASSWORD_TERMS):
        return _encrypted_failure(diagnostic)
    return ParseResult.failure(
        FAILED_SOURCE,
        ErrorCode.PDF_PARSE_ERROR,
        f"Failed to parse PDF: {diagnostic}",
        diagnostic=diagnostic,
    )


class PdfExtractor:
    """Extract the text layer of PDF uploads through a PdfEngine."""

    def __init__(self, engine: PdfEngine) -> None:
        self._engine = engine

    async def extract(self, file: UploadedFile, options: ParseOptions) -> ParseResult:
        try:
            data = await asyncio.to_thread(file.read_bytes)
        except OSError as e:
            logger.warning("Cannot read PDF %s: %s", file.name, e)
            return _classify_exception(e)

        return await asyncio.to_thread(self._extract_sync, data, file.name, options)

    def _has_text_layer(self, handle: PdfHandle, options: ParseOptions) -> bool:
        """Sample the first pages for text items, stopping early once enough are seen."""
        sample_pages = min(handle.num_pages, options.text_layer_sample_pages)
        item_count = 0
        for n in range(1, sample_pages + 1):
            page = self._engine.get_page(handle, n)
            item_count += len(self._engine.get_text_items(page))
            if item_count > options.text_layer_item_threshold:
                break
        logger.debug(
            "Text-layer probe: %d item(s) in first %d page(s)", item_count, sample_pages
        )
        return item_count > 0

    def _extract_sync(
        self, data: bytes, filename: str, options: ParseOptions
    ) -> ParseResult:
        """Blocking extraction -- runs in a worker thread."""
        try:
            handle = self._engine.open(data)
        except CapabilityUnavailable as e:
            logger.error("PDF engine unavailable: %s", e)
            return ParseResult.failure(
                FAILED_SOURCE,
                ErrorCode.MISSING_LIBRARY,
                f"PDF support is not available: {e}",
                library=e.library,
            )
        except Exception as e:
            logger.warning("Cannot open PDF %s: %s", filename, e)
            return _classify_exception(e)

        try:
            # --- Pre-check 1: encryption ---

            if handle.encrypted:
                logger.warning("Encrypted PDF rejected: %s", filename)
                return _encrypted_failure()

            # --- Pre-check 2: text layer ---

            if not self._has_text_layer(handle, options):
                logger.warning(
                    "PDF has no text layer: %s (ocr %s)",
                    filename,
                    "enabled" if options.enable_ocr else "disabled",
                )
                if options.enable_ocr:
                    return ParseResult.failure(
                        FAILED_SOURCE,
                        ErrorCode.PDF_NO_TEXT_LAYER,
                        "PDF has no text layer; it appears to be a scanned image.",
                        actionable=True,
                        suggested_action="Process with OCR",
                        page_count=handle.num_pages,
                    )
                return ParseResult.failure(
                    FAILED_SOURCE,
                    ErrorCode.PDF_NO_TEXT_LAYER,
                    "PDF has no text layer and OCR is disabled.",
                    page_count=handle.num_pages,
                )

            # --- Page walk ---

            pages_to_read = min(handle.num_pages, options.max_pages)
            pages: list[PageText] = []
            for n in range(1, pages_to_read + 1):
                page = self._engine.get_page(handle, n)
                pages.append(PageText(n=n, text=" ".join(self._engine.get_text_items(page))))

        except Exception as e:
            logger.warning("PDF extraction failed for %s: %s", filename, e)
            return _classify_exception(e)
        finally:
            self._engine.close(handle)

        text = "\n\n".join(page.text for page in pages)
        word_count = count_words(text)

        if handle.num_pages > pages_to_read:
            logger.warning(
                "PDF %s truncated to %d of %d pages", filename, pages_to_read, handle.num_pages
            )
        logger.info(
            "PDF extracted: %s (%d words, %d/%d pages)",
            filename,
            word_count,
            pages_to_read,
            handle.num_pages,
        )
        return ParseResult(
            text=text,
            score=score_quality(text),
            source=SOURCE,
            pages=pages,
            meta={
                "page_count": handle.num_pages,
                "extracted_pages": pages_to_read,
                "truncated": handle.num_pages > pages_to_read,
                "word_count": word_count,
            },
        )
