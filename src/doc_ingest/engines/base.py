"""Capability interfaces for the third-party engines behind each extractor.

Every extractor reaches its parsing library through one of these small
interfaces so the library can be swapped, faked in tests, or be entirely
absent at runtime.  Implementations:

  - Import their library lazily and raise ``CapabilityUnavailable`` when it
    cannot be imported (extractors report this as ``MISSING_LIBRARY``).
  - Are blocking; extractors run them in a worker thread.
  - Let library exceptions propagate; extractors classify them.
  - Hold no shared mutable state, so one instance serves concurrent runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


class CapabilityUnavailable(RuntimeError):
    """Raised when an engine's underlying library cannot be loaded."""

    def __init__(self, library: str, reason: str = "") -> None:
        self.library = library
        self.reason = reason
        message = f"{library} is not installed"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


@dataclass
class RichDocOutput:
    """Raw text plus non-fatal warnings from a rich document parser."""

    text: str
    warnings: list[str] = field(default_factory=list)


@dataclass
class PdfHandle:
    """An opened PDF document.

    ``native`` is the library's own document object; only the engine that
    produced the handle may touch it.
    """

    num_pages: int
    encrypted: bool
    native: Any = None


@dataclass
class OcrOutput:
    """Recognised text with the engine's mean confidence (0-100)."""

    text: str
    confidence: float
    word_count: int


class RichDocExtraction(ABC):
    """Structured office document (OOXML) to raw text."""

    @property
    @abstractmethod
    def source_tag(self) -> str:
        """Tag recorded as ParseResult.source on success."""

    @abstractmethod
    def extract_text(self, data: bytes) -> RichDocOutput: ...


class PdfEngine(ABC):
    """Page-level access to a PDF's text layer."""

    @abstractmethod
    def open(self, data: bytes) -> PdfHandle: ...

    @abstractmethod
    def get_page(self, handle: PdfHandle, n: int) -> Any:
        """Return the page object for 1-based page number *n*."""

    @abstractmethod
    def get_text_items(self, page: Any) -> list[str]: ...

    def close(self, handle: PdfHandle) -> None:
        close = getattr(handle.native, "close", None)
        if close is not None:
            close()


class OcrEngine(ABC):
    """Image to text recognition."""

    @property
    @abstractmethod
    def source_tag(self) -> str: ...

    @abstractmethod
    def recognize(self, image_path: Path, language: str) -> OcrOutput: ...


class ZipReader(ABC):
    """Direct access to the parts of a ZIP container."""

    @abstractmethod
    def open(self, data: bytes) -> Any: ...

    @abstractmethod
    def read_entry(self, archive: Any, path: str) -> str:
        """Return the UTF-8 text of *path*; raise KeyError if it is missing."""

    def close(self, archive: Any) -> None:
        archive.close()
