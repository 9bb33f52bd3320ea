"""Sentence splitting for accepted document text.

The editor rewrites documents one sentence at a time, so accepted text is
split into sentences before a document is created from it.
"""

from __future__ import annotations

import re

# A run of non-terminators followed by one or more terminators
_SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")


def split_into_sentences(text: str) -> list[str]:
    """Split *text* into stripped sentences.

    A trailing fragment without terminal punctuation becomes a final
    sentence with a ``.`` appended.  Whitespace-only pieces are dropped.

    Args:
        text: Extracted document text.

    Returns:
        Sentences in document order; empty list for empty text.
    """
    if not text:
        return []

    sentences = [s.strip() for s in _SENTENCE_PATTERN.findall(text)]
    remainder = _SENTENCE_PATTERN.sub("", text).strip()
    if remainder:
        sentences.append(f"{remainder}.")
    return [s for s in sentences if s and not re.fullmatch(r"[.!?]+", s)]
