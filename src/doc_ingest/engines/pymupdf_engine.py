"""PDF text layer access using PyMuPDF.

Text items are the spans of each text block, in reading order, which is
the granularity the text-layer probe counts.
"""

from __future__ import annotations

import logging
from typing import Any

from doc_ingest.engines.base import CapabilityUnavailable, PdfEngine, PdfHandle

logger = logging.getLogger(__name__)


def _import_pymupdf():
    try:
        import pymupdf
    except ImportError as e:
        raise CapabilityUnavailable("pymupdf", str(e)) from e
    return pymupdf


class PyMuPdfEngine(PdfEngine):
    """PdfEngine backed by PyMuPDF."""

    def open(self, data: bytes) -> PdfHandle:
        pymupdf = _import_pymupdf()
        doc = pymupdf.open(stream=data, filetype="pdf")
        # needs_pass is only set when a (non-empty) user password is required
        return PdfHandle(
            num_pages=doc.page_count,
            encrypted=bool(doc.needs_pass),
            native=doc,
        )

    def get_page(self, handle: PdfHandle, n: int) -> Any:
        return handle.native.load_page(n - 1)

    def get_text_items(self, page: Any) -> list[str]:
        items: list[str] = []
        for block in page.get_text("dict")["blocks"]:
            if block.get("type") != 0:  # image block
                continue
            for line in block["lines"]:
                for span in line["spans"]:
                    if span["text"].strip():
                        items.append(span["text"])
        return items
