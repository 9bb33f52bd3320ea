"""Shared types for the extraction pipeline.

Defines ParseResult, ParseError, ErrorCode and DocumentKind used across all
extractor modules, the quality scorer, and the orchestration service.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from doc_ingest.extractor.quality import count_words


class DocumentKind(Enum):
    """Document family decided by the format sniffer."""

    DOCX = "docx"
    LEGACY_DOC = "doc"
    PDF = "pdf"
    TXT = "txt"
    IMAGE = "image"
    UNSUPPORTED = "unsupported"


class ErrorCode(str, Enum):
    """Machine-readable failure codes carried by ParseError."""

    # Format rejection
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    LEGACY_DOC_FORMAT = "LEGACY_DOC_FORMAT"
    INVALID_DOCX_SIGNATURE = "INVALID_DOCX_SIGNATURE"

    # Protection / security
    PDF_ENCRYPTED = "PDF_ENCRYPTED"
    DOCX_PASSWORD_PROTECTED = "DOCX_PASSWORD_PROTECTED"

    # Structural corruption
    DOCX_NOT_VALID_ZIP = "DOCX_NOT_VALID_ZIP"

    # Missing capability
    MISSING_LIBRARY = "MISSING_LIBRARY"

    # No usable content
    DOCX_NO_TEXT_EXTRACTED = "DOCX_NO_TEXT_EXTRACTED"
    NO_TEXT_EXTRACTED = "NO_TEXT_EXTRACTED"
    PDF_NO_TEXT_LAYER = "PDF_NO_TEXT_LAYER"
    OCR_UNSUPPORTED_TYPE = "OCR_UNSUPPORTED_TYPE"
    OCR_PDF_NOT_IMPLEMENTED = "OCR_PDF_NOT_IMPLEMENTED"

    # Transient / environmental
    PARSING_TIMEOUT = "PARSING_TIMEOUT"

    # Unclassified
    DOCX_PARSE_ERROR = "DOCX_PARSE_ERROR"
    DOCX_GENERAL_ERROR = "DOCX_GENERAL_ERROR"
    PDF_PARSE_ERROR = "PDF_PARSE_ERROR"
    TXT_PARSE_ERROR = "TXT_PARSE_ERROR"
    OCR_ERROR = "OCR_ERROR"
    PROCESSING_ERROR = "PROCESSING_ERROR"


# Format/policy problems that no other backend can fix.
HARD_ERROR_CODES = frozenset(
    {
        ErrorCode.UNSUPPORTED_FORMAT,
        ErrorCode.LEGACY_DOC_FORMAT,
        ErrorCode.INVALID_DOCX_SIGNATURE,
        ErrorCode.DOCX_NOT_VALID_ZIP,
        ErrorCode.DOCX_PASSWORD_PROTECTED,
        ErrorCode.PDF_ENCRYPTED,
        ErrorCode.MISSING_LIBRARY,
        # The file is not readable as an office document at all
        ErrorCode.DOCX_PARSE_ERROR,
        ErrorCode.DOCX_GENERAL_ERROR,
    }
)

# Reported in place of the generic "no text" error when nothing was accepted
UNCLASSIFIED_ERROR_CODES = frozenset(
    {
        ErrorCode.DOCX_PARSE_ERROR,
        ErrorCode.DOCX_GENERAL_ERROR,
        ErrorCode.PDF_PARSE_ERROR,
        ErrorCode.TXT_PARSE_ERROR,
    }
)


@dataclass(frozen=True)
class ParseError:
    """Structured extraction failure.

    Attributes:
        code: Machine-readable failure code.
        message: Human-readable description; includes the underlying
            diagnostic text for unclassified errors.
        actionable: Whether the user can fix this (e.g. convert the file).
        suggested_action: What the user should do, when actionable.
    """

    code: ErrorCode
    message: str
    actionable: bool = False
    suggested_action: str | None = None

    @property
    def is_hard(self) -> bool:
        """True when fallback strategies must not be attempted."""
        if self.code in HARD_ERROR_CODES:
            return True
        # Without OCR a missing text layer cannot be compensated for
        return self.code is ErrorCode.PDF_NO_TEXT_LAYER and not self.actionable

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "actionable": self.actionable,
        }
        if self.suggested_action is not None:
            data["suggested_action"] = self.suggested_action
        return data


@dataclass
class PageText:
    """Text of a single PDF page (1-based page number)."""

    n: int
    text: str


@dataclass
class ParseResult:
    """Result of a single extraction attempt or of a whole pipeline run.

    Attributes:
        text: Extracted content, empty string on total failure.
        score: Quality in [0, 1]; 0 means unusable or absent.
        source: Tag of the backend or path that produced the result.
        meta: Backend diagnostics (word count, warnings, page counts, ...).
        pages: Per-page breakdown, PDF only.
        error: Structured failure, if any.
    """

    text: str = ""
    score: float = 0.0
    source: str = "none"
    meta: dict[str, Any] = field(default_factory=dict)
    pages: list[PageText] | None = None
    error: ParseError | None = None

    @property
    def word_count(self) -> int:
        if "word_count" in self.meta:
            return int(self.meta["word_count"])
        return count_words(self.text)

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())

    @classmethod
    def failure(
        cls,
        source: str,
        code: ErrorCode,
        message: str,
        actionable: bool = False,
        suggested_action: str | None = None,
        **meta: Any,
    ) -> ParseResult:
        """Build an empty, zero-score result carrying a structured error."""
        return cls(
            text="",
            score=0.0,
            source=source,
            meta=dict(meta),
            error=ParseError(
                code=code,
                message=message,
                actionable=actionable,
                suggested_action=suggested_action,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        data: dict[str, Any] = {
            "text": self.text,
            "score": self.score,
            "source": self.source,
            "meta": self.meta,
        }
        if self.pages is not None:
            data["pages"] = [asdict(page) for page in self.pages]
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data
