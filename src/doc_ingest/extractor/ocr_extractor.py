"""Last-resort OCR extraction for image uploads.

OCR only runs on images.  Rendering PDF pages to images is not supported,
so a PDF handed to OCR (after its text-layer probe found nothing) fails
with ``OCR_PDF_NOT_IMPLEMENTED``.

The image bytes are written to a temporary file for the engine, and the
file is removed on every exit path, including cancellation by the
orchestrator's timeout.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path

from doc_ingest.config.settings import ParseOptions
from doc_ingest.engines.base import CapabilityUnavailable, OcrEngine
from doc_ingest.extractor.files import UploadedFile
from doc_ingest.extractor.quality import count_words, score_quality
from doc_ingest.extractor.sniffer import PDF_MEDIA_TYPE, file_extension, is_image
from doc_ingest.extractor.types import ErrorCode, ParseResult

logger = logging.getLogger(__name__)

FAILED_SOURCE = "ocr-failed"


def _write_temp_image(data: bytes, suffix: str) -> Path:
    with tempfile.NamedTemporaryFile(
        prefix="doc-ingest-ocr-", suffix=suffix, delete=False
    ) as tmp:
        tmp.write(data)
    return Path(tmp.name)


class OcrExtractor:
    """Recognise text in image uploads through an OcrEngine."""

    def __init__(self, engine: OcrEngine) -> None:
        self._engine = engine

    async def extract(self, file: UploadedFile, options: ParseOptions) -> ParseResult:
        media_type = (file.media_type or "").lower()
        ext = file_extension(file.name)

        if media_type == PDF_MEDIA_TYPE or ext == "pdf":
            return ParseResult.failure(
                FAILED_SOURCE,
                ErrorCode.OCR_PDF_NOT_IMPLEMENTED,
                "OCR of PDF pages is not supported; only images can be OCR'd.",
            )
        if not is_image(file.name, media_type):
            return ParseResult.failure(
                FAILED_SOURCE,
                ErrorCode.OCR_UNSUPPORTED_TYPE,
                f"OCR is only supported on images, not {media_type or 'unknown type'}.",
            )

        logger.info(
            "OCR (%s): recognising %s with language %r",
            self._engine.source_tag,
            file.name,
            options.ocr_language,
        )
        image_path: Path | None = None
        try:
            data = await asyncio.to_thread(file.read_bytes)
            image_path = await asyncio.to_thread(
                _write_temp_image, data, f".{ext}" if ext else ""
            )
            output = await asyncio.to_thread(
                self._engine.recognize, image_path, options.ocr_language
            )
        except CapabilityUnavailable as e:
            logger.error("OCR engine unavailable: %s", e)
            return ParseResult.failure(
                FAILED_SOURCE,
                ErrorCode.MISSING_LIBRARY,
                f"OCR support is not available: {e}",
                library=e.library,
            )
        except Exception as e:
            diagnostic = f"{type(e).__name__}: {e}"
            logger.warning("OCR failed for %s: %s", file.name, diagnostic)
            return ParseResult.failure(
                FAILED_SOURCE,
                ErrorCode.OCR_ERROR,
                f"OCR failed: {diagnostic}",
                diagnostic=diagnostic,
            )
        finally:
            if image_path is not None:
                image_path.unlink(missing_ok=True)

        text = output.text or ""
        word_count = count_words(text)
        logger.info(
            "OCR extracted %d words from %s (confidence %.1f)",
            word_count,
            file.name,
            output.confidence,
        )
        return ParseResult(
            text=text,
            score=score_quality(text),
            source=self._engine.source_tag,
            meta={
                "confidence": output.confidence,
                "ocr_words": output.word_count,
                "word_count": word_count,
            },
        )
