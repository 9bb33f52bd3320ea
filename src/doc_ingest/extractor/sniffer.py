"""Document kind detection from filename extension and declared media type.

Browsers frequently declare ``application/octet-stream`` (or nothing at all)
for office documents, so the generic media types defer to the extension.
Legacy binary ``.doc`` files are recognised separately because they can
never be read by the OOXML extractors and must be rejected up front.

Public API:
    sniff_format(filename, media_type) -> DocumentKind
    rejection_for(kind, filename, options) -> ParseError | None
"""

from __future__ import annotations

import logging

from doc_ingest.config.settings import ParseOptions
from doc_ingest.extractor.files import GENERIC_MEDIA_TYPE
from doc_ingest.extractor.types import DocumentKind, ErrorCode, ParseError

logger = logging.getLogger(__name__)

LEGACY_WORD_MEDIA_TYPE = "application/msword"
OOXML_WORD_MEDIA_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)
PDF_MEDIA_TYPE = "application/pdf"
TEXT_MEDIA_TYPE = "text/plain"

_GENERIC_MEDIA_TYPES = frozenset({GENERIC_MEDIA_TYPE, "binary/octet-stream", ""})
IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "bmp", "tif", "tiff", "webp"})

SUPPORTED_EXTENSIONS_HINT = ".docx, .pdf, .txt"


def file_extension(filename: str) -> str:
    """Return the lower-cased text after the last dot, or ``""`` if none."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def _base_media_type(media_type: str | None) -> str:
    # Drop parameters such as "; charset=utf-8"
    return (media_type or "").split(";", 1)[0].strip().lower()


def is_image(filename: str, media_type: str | None) -> bool:
    """True for image media types, or an image extension with a generic type."""
    mime = _base_media_type(media_type)
    if mime.startswith("image/"):
        return True
    return mime in _GENERIC_MEDIA_TYPES and file_extension(filename) in IMAGE_EXTENSIONS


def sniff_format(filename: str, media_type: str | None) -> DocumentKind:
    """Classify an upload into a document kind.

    Args:
        filename: Original filename as uploaded.
        media_type: Declared media type (may be generic or empty).

    Returns:
        The detected DocumentKind; ``UNSUPPORTED`` when nothing matches.
    """
    ext = file_extension(filename)
    mime = _base_media_type(media_type)
    generic = mime in _GENERIC_MEDIA_TYPES

    if ext == "doc" or (mime == LEGACY_WORD_MEDIA_TYPE and ext != "docx"):
        kind = DocumentKind.LEGACY_DOC
    elif ext == "docx" or mime == OOXML_WORD_MEDIA_TYPE or (generic and ext == "docx"):
        kind = DocumentKind.DOCX
    elif ext == "pdf" or mime == PDF_MEDIA_TYPE or (generic and ext == "pdf"):
        kind = DocumentKind.PDF
    elif ext == "txt" or mime == TEXT_MEDIA_TYPE or (generic and ext == "txt"):
        kind = DocumentKind.TXT
    elif is_image(filename, mime) or ext in IMAGE_EXTENSIONS:
        kind = DocumentKind.IMAGE
    else:
        kind = DocumentKind.UNSUPPORTED

    logger.debug(
        "Sniffed %s (ext=%r, media_type=%r) as %s", filename, ext, mime, kind.value
    )
    return kind


def rejection_for(
    kind: DocumentKind,
    filename: str,
    options: ParseOptions,
) -> ParseError | None:
    """Return the terminal error for kinds the pipeline cannot process.

    Images are only processable through OCR, so they are rejected as
    unsupported when OCR is disabled.
    """
    if kind is DocumentKind.LEGACY_DOC:
        return ParseError(
            code=ErrorCode.LEGACY_DOC_FORMAT,
            message=(
                f"{filename} is a legacy Word (.doc) document, which cannot be "
                "read. Please save it as .docx."
            ),
            actionable=True,
            suggested_action="Convert the document to .docx and upload it again",
        )

    if kind is DocumentKind.UNSUPPORTED or (
        kind is DocumentKind.IMAGE and not options.enable_ocr
    ):
        ext = file_extension(filename)
        return ParseError(
            code=ErrorCode.UNSUPPORTED_FORMAT,
            message=(
                f"Unsupported file format: .{ext or '?'}. Please upload "
                f"{SUPPORTED_EXTENSIONS_HINT} files."
            ),
            actionable=True,
            suggested_action=(
                f"Upload a supported format ({SUPPORTED_EXTENSIONS_HINT})"
            ),
        )

    return None
