"""PDF text layer access using pdfplumber.

Slower than PyMuPDF but more tolerant of some malformed content streams.
pdfminer decrypts documents protected only by an owner password while
opening them; a required user password surfaces as ``PDFPasswordIncorrect``
from ``open``, which the PDF extractor classifies as encryption.
"""

from __future__ import annotations

import io
from typing import Any

from doc_ingest.engines.base import CapabilityUnavailable, PdfEngine, PdfHandle


class PdfPlumberEngine(PdfEngine):
    """PdfEngine backed by pdfplumber; text items are extracted words."""

    def open(self, data: bytes) -> PdfHandle:
        try:
            import pdfplumber
        except ImportError as e:
            raise CapabilityUnavailable("pdfplumber", str(e)) from e

        pdf = pdfplumber.open(io.BytesIO(data))
        return PdfHandle(num_pages=len(pdf.pages), encrypted=False, native=pdf)

    def get_page(self, handle: PdfHandle, n: int) -> Any:
        return handle.native.pages[n - 1]

    def get_text_items(self, page: Any) -> list[str]:
        return [word["text"] for word in page.extract_words() if word["text"].strip()]
