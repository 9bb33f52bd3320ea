"""Word (.docx) text extraction with a direct-ZIP fallback.

Before any parsing, the upload must carry the ZIP signature and contain
``word/document.xml``; anything else (an .xlsx or .pptx renamed to .docx,
a truncated archive) is not a Word document and fails hard.

Two strategies, tried in order:

1. **Rich document parser** (python-docx) -- paragraphs and tables.  Any
   exception it raises is a hard failure: the file is not readable as an
   OOXML document, so a second strategy would not help.
2. **Direct ZIP extraction** -- only when the parser succeeded but returned
   no text.  Collects every ``<w:t>`` run of ``word/document.xml``.  Loses
   headers, footers and table layout, but tolerates files written by
   non-Word tools that the parser reads as empty.

Public API:
    DocxExtractor(rich_doc, zip_reader).extract(file, options) -> ParseResult
"""

from __future__ import annotations

import asyncio
import logging
import re
import zipfile

from doc_ingest.config.settings import ParseOptions
from doc_ingest.engines.base import CapabilityUnavailable, RichDocExtraction, ZipReader
from doc_ingest.extractor.files import UploadedFile
from doc_ingest.extractor.quality import count_words, score_quality
from doc_ingest.extractor.types import ErrorCode, ParseResult

logger = logging.getLogger(__name__)

ZIP_SIGNATURE = b"PK\x03\x04"
MAIN_DOCUMENT_PART = "word/document.xml"
FALLBACK_SOURCE = "direct-zip-extraction"
FAILED_SOURCE = "docx-extraction-failed"

# <w:t> and <w:t xml:space="preserve">, but not <w:tab/> or <w:tbl>
_TEXT_RUN_PATTERN = re.compile(r"<w:t(?:\s[^>]*)?>(.*?)</w:t>", re.DOTALL)
_TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE_RUN_PATTERN = re.compile(r"\s+")

# python-docx names the in-memory stream it was given in its messages
_STREAM_REPR_PATTERN = re.compile(r"'?<_io\.BytesIO object at 0x[0-9a-fA-F]+>'?")

# &amp; must be decoded last so "&amp;lt;" becomes "&lt;", not "<"
_XML_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&apos;", "'"),
    ("&amp;", "&"),
)

_EXPORT_AS_PDF = "Export the document as PDF and upload it again"


def _decode_entities(text: str) -> str:
    for entity, char in _XML_ENTITIES:
        text = text.replace(entity, char)
    return text


def extract_text_runs(document_xml: str) -> str:
    """Join the visible text runs of a WordprocessingML body.

    Args:
        document_xml: Contents of ``word/document.xml``.

    Returns:
        Runs joined by single spaces with whitespace collapsed; empty string
        if the body has no text runs.
    """
    runs = []
    for match in _TEXT_RUN_PATTERN.finditer(document_xml):
        run = _decode_entities(_TAG_PATTERN.sub("", match.group(1)))
        if run:
            runs.append(run)
    return _WHITESPACE_RUN_PATTERN.sub(" ", " ".join(runs)).strip()


def _classify_parser_error(diagnostic: str) -> ParseResult:
    """Map a rich-parser exception to a structured failure."""
    diagnostic = _STREAM_REPR_PATTERN.sub("the upload", diagnostic)
    lowered = diagnostic.lower()
    if "zip" in lowered or "archive" in lowered:
        return ParseResult.failure(
            FAILED_SOURCE,
            ErrorCode.DOCX_NOT_VALID_ZIP,
            f"The file is not a valid .docx archive: {diagnostic}",
            actionable=True,
            suggested_action="Re-save the document as .docx in Word and upload it again",
            diagnostic=diagnostic,
        )
    if "password" in lowered or "protected" in lowered or "encrypt" in lowered:
        return ParseResult.failure(
            FAILED_SOURCE,
            ErrorCode.DOCX_PASSWORD_PROTECTED,
            "The document is password-protected.",
            actionable=True,
            suggested_action="Remove the password protection and upload it again",
            diagnostic=diagnostic,
        )
    return ParseResult.failure(
        FAILED_SOURCE,
        ErrorCode.DOCX_PARSE_ERROR,
        f"Failed to parse .docx document: {diagnostic}",
        diagnostic=diagnostic,
    )


def _missing_main_part() -> ParseResult:
    return ParseResult.failure(
        FAILED_SOURCE,
        ErrorCode.DOCX_NOT_VALID_ZIP,
        f"The archive does not contain {MAIN_DOCUMENT_PART}; it is not a Word document.",
        actionable=True,
        suggested_action="Upload a .docx document saved from a word processor",
    )


class DocxExtractor:
    """Extract text from .docx uploads.

    Args:
        rich_doc: Primary parser capability.
        zip_reader: Archive access for the main-part check and the
            direct-ZIP fallback.
    """

    def __init__(self, rich_doc: RichDocExtraction, zip_reader: ZipReader) -> None:
        self._rich_doc = rich_doc
        self._zip_reader = zip_reader

    async def extract(self, file: UploadedFile, options: ParseOptions) -> ParseResult:
        try:
            return await self._extract(file)
        except Exception as e:
            logger.exception("Unexpected error extracting %s", file.name)
            return ParseResult.failure(
                FAILED_SOURCE,
                ErrorCode.DOCX_GENERAL_ERROR,
                f"Unexpected error while reading .docx document: {e}",
                diagnostic=f"{type(e).__name__}: {e}",
            )

    async def _extract(self, file: UploadedFile) -> ParseResult:
        data = await asyncio.to_thread(file.read_bytes)

        if not data.startswith(ZIP_SIGNATURE):
            logger.warning(
                "Invalid .docx signature for %s: %r", file.name, data[:4]
            )
            return ParseResult.failure(
                FAILED_SOURCE,
                ErrorCode.INVALID_DOCX_SIGNATURE,
                f"{file.name} is not a valid .docx file (missing ZIP signature).",
                actionable=True,
                suggested_action=(
                    "Make sure the file is a real .docx document, or re-save it "
                    "from Word"
                ),
            )

        # --- Pre-check: main document part ---

        document_xml, failure = await asyncio.to_thread(
            self._read_main_part, data, file.name
        )
        if failure is not None:
            return failure

        # --- Strategy 1: rich document parser ---

        logger.info(
            "DOCX strategy 1 (%s): extracting %s", self._rich_doc.source_tag, file.name
        )
        try:
            output = await asyncio.to_thread(self._rich_doc.extract_text, data)
        except CapabilityUnavailable as e:
            logger.error("DOCX parser unavailable: %s", e)
            return ParseResult.failure(
                FAILED_SOURCE,
                ErrorCode.MISSING_LIBRARY,
                f"Word document support is not available: {e}",
                library=e.library,
            )
        except Exception as e:
            diagnostic = f"{type(e).__name__}: {e}"
            logger.warning("DOCX parser failed for %s: %s", file.name, diagnostic)
            return _classify_parser_error(diagnostic)

        text = output.text or ""
        if text.strip():
            word_count = count_words(text)
            logger.info(
                "DOCX extracted via %s: %s (%d words, %d warnings)",
                self._rich_doc.source_tag,
                file.name,
                word_count,
                len(output.warnings),
            )
            return ParseResult(
                text=text,
                score=score_quality(text),
                source=self._rich_doc.source_tag,
                meta={"word_count": word_count, "warnings": list(output.warnings)},
            )

        # --- Strategy 2: direct ZIP extraction ---

        logger.warning(
            "%s returned no text for %s, falling back to direct ZIP extraction",
            self._rich_doc.source_tag,
            file.name,
        )
        return self._extract_from_xml(document_xml, file.name, list(output.warnings))

    def _read_main_part(
        self, data: bytes, filename: str
    ) -> tuple[str | None, ParseResult | None]:
        """Blocking -- runs in a worker thread.

        Returns ``(document_xml, None)``, or ``(None, failure)`` when the
        archive is unreadable or has no main document part.
        """
        try:
            archive = self._zip_reader.open(data)
        except zipfile.BadZipFile as e:
            logger.warning("%s is not a readable ZIP archive: %s", filename, e)
            return None, _classify_parser_error(f"BadZipFile: {e}")

        try:
            return self._zip_reader.read_entry(archive, MAIN_DOCUMENT_PART), None
        except KeyError:
            logger.warning("%s has no %s part", filename, MAIN_DOCUMENT_PART)
            return None, _missing_main_part()
        except zipfile.BadZipFile as e:
            logger.warning("%s has a corrupt %s part: %s", filename, MAIN_DOCUMENT_PART, e)
            return None, _classify_parser_error(f"BadZipFile: {e}")
        finally:
            self._zip_reader.close(archive)

    def _extract_from_xml(
        self, document_xml: str, filename: str, warnings: list[str]
    ) -> ParseResult:
        text = extract_text_runs(document_xml)
        if not text:
            logger.warning("Direct ZIP extraction found no text runs in %s", filename)
            return ParseResult.failure(
                FAILED_SOURCE,
                ErrorCode.DOCX_NO_TEXT_EXTRACTED,
                "No text could be extracted from the Word document.",
                actionable=True,
                suggested_action=_EXPORT_AS_PDF,
                fallback_method=True,
            )

        word_count = count_words(text)
        logger.info(
            "DOCX extracted via direct ZIP fallback: %s (%d words)", filename, word_count
        )
        return ParseResult(
            text=text,
            score=score_quality(text),
            source=FALLBACK_SOURCE,
            meta={
                "word_count": word_count,
                "warnings": warnings,
                "fallback_method": True,
            },
        )
