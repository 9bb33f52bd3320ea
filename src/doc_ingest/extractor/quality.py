"""Quality scoring for extracted text.

Provides a usability score in [0, 1] that the orchestrator compares against
``ParseOptions.min_quality_score`` to decide whether an extraction result is
accepted or whether the next fallback (OCR) should be tried.

Penalties subtracted from a perfect score of 1.0:

1. Replacement characters (U+FFFD): 0.6 x their share of the text.
2. Non-printable control characters (excluding tab, newline, VT, FF, CR):
   0.2 x their share of the text.
3. PDF-internal tokens (``/Obj``, ``/stream``, ``/FlateDecode``,
   ``/endobj``) anywhere in the text: fixed 0.25.  Raw PDF syntax leaking
   into the output means the text layer was decoded incorrectly.
4. Mean token length above 40 characters: fixed 0.2.
5. Letter share below 0.2: fixed 0.2.
6. Whitespace share below 0.05: fixed 0.1.

The weights and thresholds are part of the scoring contract; changing them
changes which documents are accepted.
"""

from __future__ import annotations

import re
from enum import Enum

_REPLACEMENT_PATTERN = re.compile("\ufffd")
_NON_PRINTABLE_PATTERN = re.compile(r"[\x00-\x08\x0e-\x1f]")
_PDF_INTERNALS_PATTERN = re.compile(r"/(Obj|stream|FlateDecode|endobj)")
_WHITESPACE_PATTERN = re.compile(r"\s")
_WHITESPACE_RUN_PATTERN = re.compile(r"\s+")
_LETTER_PATTERN = re.compile("[A-Za-z\u00c0-\u024f]")

REPLACEMENT_WEIGHT = 0.6
NON_PRINTABLE_WEIGHT = 0.2
PDF_INTERNALS_PENALTY = 0.25
LONG_TOKEN_PENALTY = 0.2
LONG_TOKEN_THRESHOLD = 40
LOW_LETTER_PENALTY = 0.2
LOW_LETTER_THRESHOLD = 0.2
LOW_WHITESPACE_PENALTY = 0.1
LOW_WHITESPACE_THRESHOLD = 0.05


class QualityLabel(Enum):
    """Human-readable quality bands shown next to an uploaded document."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    VERY_POOR = "Very Poor"


def score_quality(text: str | None) -> float:
    """Score how usable extracted text is.

    Args:
        text: Extracted text, possibly empty or None.

    Returns:
        Score between 0.0 (unusable) and 1.0 (clean text).  Empty or absent
        text scores 0.0.
    """
    if not text:
        return 0.0

    length = len(text)
    replacement_ratio = len(_REPLACEMENT_PATTERN.findall(text)) / length
    non_printable_ratio = len(_NON_PRINTABLE_PATTERN.findall(text)) / length
    pdf_internals = PDF_INTERNALS_PENALTY if _PDF_INTERNALS_PATTERN.search(text) else 0.0

    # Leading/trailing whitespace yields empty tokens, which pull the mean down
    tokens = _WHITESPACE_RUN_PATTERN.split(text)
    avg_token_len = sum(len(token) for token in tokens) / (len(tokens) or 1)
    long_tokens = LONG_TOKEN_PENALTY if avg_token_len > LONG_TOKEN_THRESHOLD else 0.0

    whitespace_ratio = len(_WHITESPACE_PATTERN.findall(text)) / length
    letter_ratio = len(_LETTER_PATTERN.findall(text)) / length
    low_letters = LOW_LETTER_PENALTY if letter_ratio < LOW_LETTER_THRESHOLD else 0.0
    low_whitespace = (
        LOW_WHITESPACE_PENALTY if whitespace_ratio < LOW_WHITESPACE_THRESHOLD else 0.0
    )

    score = 1.0 - (
        REPLACEMENT_WEIGHT * replacement_ratio
        + NON_PRINTABLE_WEIGHT * non_printable_ratio
        + pdf_internals
        + long_tokens
        + low_letters
        + low_whitespace
    )
    return max(0.0, min(1.0, score))


def count_words(text: str | None) -> int:
    """Count whitespace-separated tokens; empty text has zero words."""
    if not text:
        return 0
    stripped = text.strip()
    if not stripped:
        return 0
    return len(_WHITESPACE_RUN_PATTERN.split(stripped))


def quality_description(score: float) -> QualityLabel:
    if score >= 0.9:
        return QualityLabel.EXCELLENT
    if score >= 0.75:
        return QualityLabel.GOOD
    if score >= 0.5:
        return QualityLabel.FAIR
    if score >= 0.25:
        return QualityLabel.POOR
    return QualityLabel.VERY_POOR
