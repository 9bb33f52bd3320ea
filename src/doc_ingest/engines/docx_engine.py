"""Word (OOXML) text extraction using python-docx.

Body paragraphs come first, followed by each table flattened to one line
per row with cells separated by `` | ``.  Headers, footers and text boxes
are not read.
"""

from __future__ import annotations

import io
import logging

from doc_ingest.engines.base import CapabilityUnavailable, RichDocExtraction, RichDocOutput

logger = logging.getLogger(__name__)


class PythonDocxExtraction(RichDocExtraction):
    """RichDocExtraction backed by the python-docx package."""

    @property
    def source_tag(self) -> str:
        return "python-docx"

    def extract_text(self, data: bytes) -> RichDocOutput:
        try:
            from docx import Document
        except ImportError as e:
            raise CapabilityUnavailable("python-docx", str(e)) from e

        doc = Document(io.BytesIO(data))
        warnings: list[str] = []

        paragraphs = [p.text.strip() for p in doc.paragraphs]
        parts = [text for text in paragraphs if text]

        for table_idx, table in enumerate(doc.tables, start=1):
            rows: list[str] = []
            try:
                for row in table.rows:
                    cells = [cell.text.strip() for cell in row.cells]
                    rows.append(" | ".join(cells))
            except (IndexError, ValueError) as e:
                # Malformed merged cells; keep what was read so far
                warnings.append(f"table {table_idx} partially read: {e}")
            if rows:
                parts.append("\n".join(rows))

        if doc.inline_shapes:
            warnings.append(
                f"{len(doc.inline_shapes)} inline image(s) skipped"
            )

        logger.debug(
            "python-docx read %d paragraphs and %d tables",
            len(paragraphs),
            len(doc.tables),
        )
        return RichDocOutput(text="\n\n".join(parts), warnings=warnings)
