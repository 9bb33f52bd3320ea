"""Engine adapters -- the third-party capabilities behind each extractor."""

from .base import (
    CapabilityUnavailable,
    OcrEngine,
    OcrOutput,
    PdfEngine,
    PdfHandle,
    RichDocExtraction,
    RichDocOutput,
    ZipReader,
)
from .docx_engine import PythonDocxExtraction
from .pdfplumber_engine import PdfPlumberEngine
from .pymupdf_engine import PyMuPdfEngine
from .tesseract_engine import TesseractEngine
from .zip_reader import StdlibZipReader

__all__ = [
    "CapabilityUnavailable",
    "OcrEngine",
    "OcrOutput",
    "PdfEngine",
    "PdfHandle",
    "PdfPlumberEngine",
    "PyMuPdfEngine",
    "PythonDocxExtraction",
    "RichDocExtraction",
    "RichDocOutput",
    "StdlibZipReader",
    "TesseractEngine",
    "ZipReader",
    "build_pdf_engine",
]


def build_pdf_engine(name: str) -> PdfEngine:
    """Return the PdfEngine configured by ``ParseOptions.pdf_engine``."""
    if name == "pymupdf":
        return PyMuPdfEngine()
    if name == "pdfplumber":
        return PdfPlumberEngine()
    raise ValueError(f"Unknown PDF engine: {name!r}")
