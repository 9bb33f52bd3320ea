"""Shared fixtures and in-memory engine fakes for all tests.

No test touches a real OCR binary.  Engines are replaced by small fakes
that record how they were called, so tests can assert on call order
(e.g. that an encrypted PDF never reaches get_page) and on resource
release (temporary OCR images, PDF handles).
"""

from __future__ import annotations

import asyncio
import io
import threading
import zipfile
from pathlib import Path
from typing import Any

import pytest

from doc_ingest.config.settings import ParseOptions
from doc_ingest.engines.base import (
    CapabilityUnavailable,
    OcrEngine,
    OcrOutput,
    PdfEngine,
    PdfHandle,
    RichDocExtraction,
    RichDocOutput,
)
from doc_ingest.extractor.types import ParseResult

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_zip(entries: dict[str, str]) -> bytes:
    """Build an in-memory ZIP archive from ``{path: text}``."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for path, content in entries.items():
            zf.writestr(path, content)
    return buf.getvalue()


def make_document_xml(*runs: str) -> str:
    """Wrap already-escaped text runs in a minimal WordprocessingML body."""
    body = "".join(f"<w:p><w:r><w:t>{run}</w:t></w:r></w:p>" for run in runs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body>{body}</w:body></w:document>"
    )


def words(n: int, word: str = "word") -> str:
    return " ".join([word] * n)


def text_result(n_words: int, score: float, source: str = "stub") -> ParseResult:
    return ParseResult(
        text=words(n_words),
        score=score,
        source=source,
        meta={"word_count": n_words},
    )


# ---------------------------------------------------------------------------
# Engine fakes
# ---------------------------------------------------------------------------


class FakeRichDoc(RichDocExtraction):
    def __init__(
        self,
        text: str = "",
        warnings: list[str] | None = None,
        exc: Exception | None = None,
    ) -> None:
        self.text = text
        self.warnings = warnings or []
        self.exc = exc
        self.calls = 0

    @property
    def source_tag(self) -> str:
        return "fake-docx"

    def extract_text(self, data: bytes) -> RichDocOutput:
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return RichDocOutput(text=self.text, warnings=list(self.warnings))


class FakePdfEngine(PdfEngine):
    """PDF engine over a list of pages, each a list of text items."""

    def __init__(
        self,
        pages: list[list[str]] | None = None,
        encrypted: bool = False,
        open_exc: Exception | None = None,
        items_exc_on_page: int | None = None,
    ) -> None:
        self.pages = pages or []
        self.encrypted = encrypted
        self.open_exc = open_exc
        self.items_exc_on_page = items_exc_on_page
        self.page_calls: list[int] = []
        self.closed = 0

    def open(self, data: bytes) -> PdfHandle:
        if self.open_exc is not None:
            raise self.open_exc
        return PdfHandle(num_pages=len(self.pages), encrypted=self.encrypted)

    def get_page(self, handle: PdfHandle, n: int) -> Any:
        self.page_calls.append(n)
        return n

    def get_text_items(self, page: Any) -> list[str]:
        if page == self.items_exc_on_page:
            raise ValueError("corrupt content stream")
        return list(self.pages[page - 1])

    def close(self, handle: PdfHandle) -> None:
        self.closed += 1


class FakeOcrEngine(OcrEngine):
    """OCR engine that records the temporary image it was handed."""

    def __init__(
        self,
        text: str = "",
        confidence: float = 91.5,
        exc: Exception | None = None,
        block: threading.Event | None = None,
    ) -> None:
        self.text = text
        self.confidence = confidence
        self.exc = exc
        self.block = block
        self.started = threading.Event()
        self.seen_paths: list[Path] = []
        self.seen_bytes: list[bytes] = []
        self.languages: list[str] = []

    @property
    def source_tag(self) -> str:
        return "fake-ocr"

    def recognize(self, image_path: Path, language: str) -> OcrOutput:
        self.seen_paths.append(image_path)
        self.seen_bytes.append(image_path.read_bytes())
        self.languages.append(language)
        self.started.set()
        if self.block is not None:
            self.block.wait(timeout=5)
        if self.exc is not None:
            raise self.exc
        return OcrOutput(
            text=self.text,
            confidence=self.confidence,
            word_count=len(self.text.split()),
        )


class UnavailableOcrEngine(OcrEngine):
    @property
    def source_tag(self) -> str:
        return "missing-ocr"

    def recognize(self, image_path: Path, language: str) -> OcrOutput:
        raise CapabilityUnavailable("pytesseract", "No module named 'pytesseract'")


class StubExtractor:
    """Orchestrator-level backend returning a canned result."""

    def __init__(
        self,
        result: ParseResult | None = None,
        delay: float = 0.0,
        exc: Exception | None = None,
    ) -> None:
        self.result = result or ParseResult()
        self.delay = delay
        self.exc = exc
        self.calls = 0

    async def extract(self, file, options) -> ParseResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.result


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep developer INGEST_/PIPELINE_ overrides out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith(("INGEST_", "PIPELINE_")):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def options() -> ParseOptions:
    return ParseOptions(
        timeout_ms=30_000,
        max_pages=50,
        enable_ocr=True,
        ocr_language="eng",
        min_quality_score=0.35,
        min_word_count=30,
    )


@pytest.fixture
def no_ocr_options(options) -> ParseOptions:
    return options.model_copy(update={"enable_ocr": False})
