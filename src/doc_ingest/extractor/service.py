"""Per-upload extraction pipeline with quality-based acceptance and OCR fallback.

Orchestrates extraction of a single uploaded file:

1. **Sniff** the document kind.  Unsupported files and legacy ``.doc``
   files fail immediately.
2. **Primary backend** for the kind (docx, pdf, txt; OCR for images).  A
   hard error (encryption, bad signature, corrupt archive, missing library,
   no text layer with OCR disabled) is returned as is -- no other backend
   can fix it.
3. **Accept** when ``word_count >= min_word_count`` (quantity overrides
   quality) or ``score >= min_quality_score``.  Otherwise the result is kept
   as best-so-far.
4. **Low bar**: best-so-far with at least ``low_bar_word_count`` words is
   accepted rather than reporting "no text".
5. **OCR fallback** when nothing usable was found (no text or best score
   below ``ocr_trigger_score``) and OCR is enabled.  OCR output with at
   least ``max(low_bar_word_count, min_word_count / 2)`` words is final.
6. **Fail** with a format-specific "no text" error that still carries
   best-so-far text and score.

The whole run races a single timeout.  On expiry, in-flight engine calls
are abandoned and best-so-far is returned tagged ``PARSING_TIMEOUT``.
Expected failures never raise; unexpected exceptions are converted to a
``PROCESSING_ERROR`` result.

Public API:
    DocumentParser(docx, pdf, txt, ocr).parse(file, options) -> ParseResult
    parse_document(file, options=None, parser=None) -> ParseResult
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from doc_ingest.config.settings import ParseOptions
from doc_ingest.engines import (
    PythonDocxExtraction,
    StdlibZipReader,
    TesseractEngine,
    build_pdf_engine,
)
from doc_ingest.extractor.docx_extractor import DocxExtractor
from doc_ingest.extractor.files import UploadedFile
from doc_ingest.extractor.ocr_extractor import OcrExtractor
from doc_ingest.extractor.pdf_extractor import PdfExtractor
from doc_ingest.extractor.sniffer import rejection_for, sniff_format
from doc_ingest.extractor.txt_extractor import TxtExtractor
from doc_ingest.extractor.types import (
    UNCLASSIFIED_ERROR_CODES,
    DocumentKind,
    ErrorCode,
    ParseError,
    ParseResult,
)

logger = logging.getLogger(__name__)

__all__ = [
    "DocumentParser",
    "Extractor",
    "parse_document",
]

# OCR outcomes that mean the engine never looked at the content
_OCR_NOT_RUN_CODES = frozenset(
    {
        ErrorCode.OCR_UNSUPPORTED_TYPE,
        ErrorCode.OCR_PDF_NOT_IMPLEMENTED,
        ErrorCode.MISSING_LIBRARY,
    }
)


class Extractor(Protocol):
    """A format-specific extraction backend."""

    async def extract(self, file: UploadedFile, options: ParseOptions) -> ParseResult: ...


@dataclass
class _PipelineRun:
    """Mutable state of one pipeline run, readable after a timeout."""

    best: ParseResult | None = None
    attempts: list[dict[str, Any]] = field(default_factory=list)
    ocr_ran: bool = False

    def record(self, result: ParseResult) -> None:
        self.attempts.append(
            {
                "source": result.source,
                "score": round(result.score, 4),
                "word_count": result.word_count,
                "error": result.error.code.value if result.error else None,
            }
        )

    def consider(self, result: ParseResult) -> None:
        """Keep *result* as best-so-far if it has text and a higher score."""
        if not result.has_text:
            return
        if self.best is None or result.score > self.best.score:
            self.best = result


class DocumentParser:
    """Stateless extraction orchestrator over injected backends.

    Args:
        docx: Backend for .docx uploads.
        pdf: Backend for PDF uploads.
        txt: Backend for plain-text uploads.
        ocr: Backend for images and last-resort fallback.
    """

    def __init__(
        self,
        docx: Extractor,
        pdf: Extractor,
        txt: Extractor,
        ocr: Extractor,
    ) -> None:
        self._backends: dict[DocumentKind, Extractor] = {
            DocumentKind.DOCX: docx,
            DocumentKind.PDF: pdf,
            DocumentKind.TXT: txt,
            DocumentKind.IMAGE: ocr,
        }
        self._ocr = ocr

    @classmethod
    def from_options(cls, options: ParseOptions) -> DocumentParser:
        """Build a parser over the real engines selected by *options*."""
        return cls(
            docx=DocxExtractor(PythonDocxExtraction(), StdlibZipReader()),
            pdf=PdfExtractor(build_pdf_engine(options.pdf_engine)),
            txt=TxtExtractor(),
            ocr=OcrExtractor(TesseractEngine(options.tesseract_cmd)),
        )

    async def parse(
        self, file: UploadedFile, options: ParseOptions | None = None
    ) -> ParseResult:
        """Extract text from *file*, always returning a structured result.

        Args:
            file: The uploaded file.
            options: Thresholds and limits; defaults come from configuration.

        Returns:
            ParseResult; ``error`` is set whenever no acceptable text was found.

        Raises:
            asyncio.CancelledError: If the caller cancels the parse.
        """
        options = options or ParseOptions()
        run = _PipelineRun()
        t0 = time.monotonic()

        logger.info(
            "Parsing %s (%s, %d bytes, timeout %d ms)",
            file.name,
            file.media_type,
            file.size,
            options.timeout_ms,
        )
        deadline = asyncio.timeout(options.timeout_seconds)
        try:
            async with deadline:
                result = await self._run(file, options, run)
        except TimeoutError as e:
            if not deadline.expired():
                # Raised by a backend, not by the pipeline's own deadline
                logger.exception("Backend timeout while parsing %s", file.name)
                result = self._processing_error(run, e)
            else:
                logger.error(
                    "Parsing %s timed out after %d ms", file.name, options.timeout_ms
                )
                result = self._from_best(
                    run,
                    ParseError(
                        code=ErrorCode.PARSING_TIMEOUT,
                        message=f"Document parsing timed out after {options.timeout_ms} ms.",
                    ),
                    fallback_source="timeout",
                )
        except Exception as e:
            logger.exception("Unexpected error parsing %s", file.name)
            result = self._processing_error(run, e)

        elapsed_ms = (time.monotonic() - t0) * 1000
        result = replace(
            result,
            meta={
                **result.meta,
                "attempts": run.attempts,
                "elapsed_ms": round(elapsed_ms, 1),
            },
        )
        logger.info(
            "Parsed %s via %s: score=%.2f words=%d error=%s (%.0f ms)",
            file.name,
            result.source,
            result.score,
            result.word_count,
            result.error.code.value if result.error else None,
            elapsed_ms,
        )
        return result

    def _accepts(self, result: ParseResult, options: ParseOptions) -> bool:
        if not result.has_text:
            return False
        return (
            result.word_count >= options.min_word_count
            or result.score >= options.min_quality_score
        )

    async def _attempt(
        self,
        backend: Extractor,
        file: UploadedFile,
        options: ParseOptions,
        run: _PipelineRun,
    ) -> ParseResult:
        result = await backend.extract(file, options)
        run.record(result)
        return result

    async def _run(
        self, file: UploadedFile, options: ParseOptions, run: _PipelineRun
    ) -> ParseResult:
        # --- Sniffing ---

        kind = sniff_format(file.name, file.media_type)
        rejection = rejection_for(kind, file.name, options)
        if rejection is not None:
            logger.warning("Rejected %s: %s", file.name, rejection.code.value)
            return ParseResult(source="format-sniffer", error=rejection)

        # --- Primary backend ---

        primary = await self._attempt(self._backends[kind], file, options, run)

        if primary.error is not None and primary.error.is_hard:
            logger.warning(
                "Hard failure for %s: %s, no fallback", file.name, primary.error.code.value
            )
            return primary

        # --- Acceptance ---

        if self._accepts(primary, options):
            logger.info(
                "Accepted %s from %s (words=%d, score=%.2f)",
                file.name,
                primary.source,
                primary.word_count,
                primary.score,
            )
            return primary

        run.consider(primary)
        if run.best is not None and run.best.word_count >= options.low_bar_word_count:
            logger.info(
                "Accepted %s at low bar from %s (words=%d, score=%.2f)",
                file.name,
                run.best.source,
                run.best.word_count,
                run.best.score,
            )
            return run.best

        # --- OCR fallback ---

        needs_ocr = run.best is None or run.best.score < options.ocr_trigger_score
        if kind is not DocumentKind.IMAGE and needs_ocr and options.enable_ocr:
            logger.warning(
                "Text extraction for %s is unusable (best score %.2f), attempting OCR",
                file.name,
                run.best.score if run.best else 0.0,
            )
            ocr = await self._attempt(self._ocr, file, options, run)
            run.ocr_ran = ocr.error is None or ocr.error.code not in _OCR_NOT_RUN_CODES

            if ocr.has_text and ocr.word_count >= options.ocr_min_words:
                logger.info(
                    "Accepted %s from OCR (words=%d, score=%.2f)",
                    file.name,
                    ocr.word_count,
                    ocr.score,
                )
                return ocr
            run.consider(ocr)

            if run.best is not None and run.best.word_count >= options.low_bar_word_count:
                return run.best
        elif kind is DocumentKind.IMAGE:
            run.ocr_ran = primary.error is None or primary.error.code not in _OCR_NOT_RUN_CODES

        # --- Failure ---

        return self._failure(kind, primary, run)

    def _failure(
        self, kind: DocumentKind, primary: ParseResult, run: _PipelineRun
    ) -> ParseResult:
        if primary.error is not None and primary.error.code in UNCLASSIFIED_ERROR_CODES:
            error = primary.error
        else:
            code = (
                ErrorCode.DOCX_NO_TEXT_EXTRACTED
                if kind is DocumentKind.DOCX
                else ErrorCode.NO_TEXT_EXTRACTED
            )
            message = "Could not extract any usable text from the document."
            if primary.error is not None:
                message = f"{message} {primary.error.message}"
            if run.ocr_ran:
                message = f"{message} OCR was attempted and also failed."
                suggested_action = None
            elif kind is DocumentKind.DOCX:
                suggested_action = "Export the document as PDF and upload it again"
            else:
                suggested_action = "Upload a version of the document with selectable text"
            error = ParseError(
                code=code,
                message=message,
                actionable=not run.ocr_ran,
                suggested_action=suggested_action,
            )

        logger.error("No usable text for upload: %s", error.code.value)
        return self._from_best(run, error, fallback_source=primary.source)

    def _processing_error(self, run: _PipelineRun, e: Exception) -> ParseResult:
        return self._from_best(
            run,
            ParseError(
                code=ErrorCode.PROCESSING_ERROR,
                message=f"Unexpected error while parsing document: {type(e).__name__}: {e}",
            ),
            fallback_source="error",
        )

    def _from_best(
        self, run: _PipelineRun, error: ParseError, fallback_source: str
    ) -> ParseResult:
        """Attach *error* to best-so-far (or an empty result) without losing partial work."""
        best = run.best
        if best is None:
            return ParseResult(source=fallback_source, error=error)
        return replace(best, meta=dict(best.meta), error=error)


@functools.lru_cache(maxsize=None)
def _default_parser(pdf_engine: str, tesseract_cmd: str) -> DocumentParser:
    return DocumentParser.from_options(
        ParseOptions(pdf_engine=pdf_engine, tesseract_cmd=tesseract_cmd)
    )


async def parse_document(
    file: UploadedFile,
    options: ParseOptions | None = None,
    parser: DocumentParser | None = None,
) -> ParseResult:
    """Run the extraction pipeline on *file*.

    Uses *parser* if given, otherwise a lazily built parser over the real
    engines selected by *options* (one per engine configuration).
    """
    options = options or ParseOptions()
    if parser is None:
        parser = _default_parser(options.pdf_engine, options.tesseract_cmd)
    return await parser.parse(file, options)
