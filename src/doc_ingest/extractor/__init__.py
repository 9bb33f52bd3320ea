"""Document ingestion: format sniffing, tiered extraction, quality scoring.

Public API:
    parse_document(file, options=None, parser=None) -> ParseResult
    DocumentParser(docx, pdf, txt, ocr).parse(file, options) -> ParseResult
"""

from doc_ingest.extractor.docx_extractor import DocxExtractor
from doc_ingest.extractor.files import InMemoryFile, LocalFile, UploadedFile
from doc_ingest.extractor.ocr_extractor import OcrExtractor
from doc_ingest.extractor.pdf_extractor import PdfExtractor
from doc_ingest.extractor.quality import (
    QualityLabel,
    count_words,
    quality_description,
    score_quality,
)
from doc_ingest.extractor.sentences import split_into_sentences
from doc_ingest.extractor.service import DocumentParser, Extractor, parse_document
from doc_ingest.extractor.sniffer import sniff_format
from doc_ingest.extractor.txt_extractor import TxtExtractor
from doc_ingest.extractor.types import (
    DocumentKind,
    ErrorCode,
    PageText,
    ParseError,
    ParseResult,
)

__all__ = [
    "DocumentKind",
    "DocumentParser",
    "DocxExtractor",
    "ErrorCode",
    "Extractor",
    "InMemoryFile",
    "LocalFile",
    "OcrExtractor",
    "PageText",
    "ParseError",
    "ParseResult",
    "PdfExtractor",
    "QualityLabel",
    "TxtExtractor",
    "UploadedFile",
    "count_words",
    "parse_document",
    "quality_description",
    "score_quality",
    "sniff_format",
    "split_into_sentences",
]
