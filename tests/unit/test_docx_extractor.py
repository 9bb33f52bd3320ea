"""Tests for .docx extraction: signature check, rich parser, direct-ZIP fallback."""

import io
import zipfile

import pytest

from doc_ingest.engines import PythonDocxExtraction, StdlibZipReader
from doc_ingest.extractor.docx_extractor import (
    FALLBACK_SOURCE,
    DocxExtractor,
    extract_text_runs,
)
from doc_ingest.extractor.files import InMemoryFile
from doc_ingest.extractor.service import DocumentParser
from doc_ingest.extractor.types import ErrorCode
from tests.conftest import (
    DOCX_MEDIA_TYPE,
    FakeRichDoc,
    StubExtractor,
    make_document_xml,
    make_zip,
    words,
)

pytestmark = pytest.mark.unit


def _docx_file(data: bytes, name: str = "letter.docx") -> InMemoryFile:
    return InMemoryFile(name=name, data=data, media_type=DOCX_MEDIA_TYPE)


def _extractor(rich_doc: FakeRichDoc) -> DocxExtractor:
    return DocxExtractor(rich_doc, StdlibZipReader())


class TestExtractTextRuns:
    def test_decodes_entities_and_collapses_whitespace(self):
        xml = (
            "<w:body><w:p>"
            "<w:r><w:t>Fish &amp; Chips</w:t></w:r>"
            '<w:r><w:t xml:space="preserve">  cost &lt;5 </w:t></w:r>'
            "<w:r><w:tab/></w:r>"
            "<w:r><w:t>&quot;today&quot; &apos;ok&apos;</w:t></w:r>"
            "</w:p></w:body>"
        )
        assert extract_text_runs(xml) == "Fish & Chips cost <5 \"today\" 'ok'"

    def test_ampersand_is_decoded_last(self):
        assert extract_text_runs("<w:t>&amp;lt;</w:t>") == "&lt;"

    def test_ignores_similar_tags(self):
        xml = "<w:tbl><w:tblPr/></w:tbl><w:tab/><w:t>kept</w:t>"
        assert extract_text_runs(xml) == "kept"

    def test_no_runs(self):
        assert extract_text_runs("<w:body><w:p/></w:body>") == ""


class TestDocxExtractor:
    async def test_invalid_signature_is_hard(self, options):
        rich_doc = FakeRichDoc(text="never used")
        result = await _extractor(rich_doc).extract(
            _docx_file(b"%PDF-1.4 not a docx"), options
        )

        assert result.error.code is ErrorCode.INVALID_DOCX_SIGNATURE
        assert result.error.is_hard
        assert result.error.actionable
        assert result.text == ""
        assert rich_doc.calls == 0

    async def test_rich_parser_success(self, options):
        text = words(40, "clause")
        rich_doc = FakeRichDoc(text=text, warnings=["1 inline image(s) skipped"])
        data = make_zip({"word/document.xml": make_document_xml("ignored")})

        result = await _extractor(rich_doc).extract(_docx_file(data), options)

        assert result.error is None
        assert result.source == "fake-docx"
        assert result.text == text
        assert result.word_count == 40
        assert result.score == 1.0
        assert result.meta["warnings"] == ["1 inline image(s) skipped"]
        assert "fallback_method" not in result.meta

    @pytest.mark.parametrize(
        "exc, code",
        [
            (zipfile.BadZipFile("File is not a zip file"), ErrorCode.DOCX_NOT_VALID_ZIP),
            (ValueError("document is password protected"), ErrorCode.DOCX_PASSWORD_PROTECTED),
            (ValueError("file is encrypted"), ErrorCode.DOCX_PASSWORD_PROTECTED),
        ],
    )
    async def test_parser_exceptions_are_classified_as_hard(self, exc, code, options):
        rich_doc = FakeRichDoc(exc=exc)
        data = make_zip({"word/document.xml": make_document_xml("text")})

        result = await _extractor(rich_doc).extract(_docx_file(data), options)

        assert result.error.code is code
        assert result.error.is_hard
        assert result.text == ""

    async def test_unclassified_parser_exception_keeps_diagnostic(self, options):
        rich_doc = FakeRichDoc(exc=ValueError("unexpected element w:foo"))
        data = make_zip({"word/document.xml": make_document_xml("text")})

        result = await _extractor(rich_doc).extract(_docx_file(data), options)

        assert result.error.code is ErrorCode.DOCX_PARSE_ERROR
        assert result.error.is_hard
        assert "unexpected element w:foo" in result.error.message

    async def test_stream_repr_is_removed_from_message(self, options):
        rich_doc = FakeRichDoc(
            exc=ValueError(
                "file '<_io.BytesIO object at 0x7f9c12ab34d0>' is not a Word file, "
                "content type is 'application/vnd.ms-excel'"
            )
        )
        data = make_zip({"word/document.xml": make_document_xml("text")})

        result = await _extractor(rich_doc).extract(_docx_file(data), options)

        assert result.error.code is ErrorCode.DOCX_PARSE_ERROR
        assert "BytesIO" not in result.error.message
        assert "BytesIO" not in result.meta["diagnostic"]
        assert "file the upload is not a Word file" in result.error.message

    async def test_missing_library(self, options):
        from doc_ingest.engines import CapabilityUnavailable

        rich_doc = FakeRichDoc(exc=CapabilityUnavailable("python-docx", "not installed"))
        data = make_zip({"word/document.xml": make_document_xml("text")})

        result = await _extractor(rich_doc).extract(_docx_file(data), options)

        assert result.error.code is ErrorCode.MISSING_LIBRARY
        assert result.error.is_hard
        assert result.meta["library"] == "python-docx"

    async def test_empty_parser_output_falls_back_to_zip(self, options):
        rich_doc = FakeRichDoc(text="  \n ", warnings=["odd styles"])
        data = make_zip(
            {
                "word/document.xml": make_document_xml(
                    "Terms &amp; Conditions", "apply &lt;here&gt;"
                )
            }
        )

        result = await _extractor(rich_doc).extract(_docx_file(data), options)

        assert result.error is None
        assert result.source == FALLBACK_SOURCE
        assert result.text == "Terms & Conditions apply <here>"
        assert result.meta["fallback_method"] is True
        assert result.meta["warnings"] == ["odd styles"]
        assert result.meta["word_count"] == 5

    async def test_zip_without_main_part_is_hard(self, options):
        rich_doc = FakeRichDoc(text=words(40))
        data = make_zip({"xl/workbook.xml": "<workbook/>"})

        result = await _extractor(rich_doc).extract(_docx_file(data), options)

        assert result.error.code is ErrorCode.DOCX_NOT_VALID_ZIP
        assert result.error.is_hard
        # Rejected before the rich parser runs
        assert rich_doc.calls == 0

    async def test_truncated_zip_is_hard(self, options):
        result = await _extractor(FakeRichDoc(text="")).extract(
            _docx_file(b"PK\x03\x04 truncated archive"), options
        )

        assert result.error.code is ErrorCode.DOCX_NOT_VALID_ZIP
        assert result.error.is_hard

    async def test_no_runs_anywhere(self, options):
        data = make_zip({"word/document.xml": "<w:document><w:body/></w:document>"})

        result = await _extractor(FakeRichDoc(text="")).extract(_docx_file(data), options)

        assert result.error.code is ErrorCode.DOCX_NO_TEXT_EXTRACTED
        assert result.error.actionable
        assert "PDF" in result.error.suggested_action
        assert not result.error.is_hard
        assert result.meta["fallback_method"] is True


class TestPythonDocxExtraction:
    def test_paragraphs_and_tables(self):
        docx = pytest.importorskip("docx")

        document = docx.Document()
        document.add_paragraph("First paragraph.")
        document.add_paragraph("")
        document.add_paragraph("Second paragraph.")
        table = document.add_table(rows=2, cols=2)
        table.cell(0, 0).text = "Name"
        table.cell(0, 1).text = "Value"
        table.cell(1, 0).text = "alpha"
        table.cell(1, 1).text = "1"
        buf = io.BytesIO()
        document.save(buf)

        output = PythonDocxExtraction().extract_text(buf.getvalue())

        assert output.text == (
            "First paragraph.\n\nSecond paragraph.\n\nName | Value\nalpha | 1"
        )
        assert output.warnings == []

    async def test_end_to_end_with_real_parser(self, options):
        docx = pytest.importorskip("docx")

        document = docx.Document()
        document.add_paragraph(words(35, "sentence"))
        buf = io.BytesIO()
        document.save(buf)

        extractor = DocxExtractor(PythonDocxExtraction(), StdlibZipReader())
        result = await extractor.extract(_docx_file(buf.getvalue()), options)

        assert result.error is None
        assert result.source == "python-docx"
        assert result.word_count == 35

    async def test_renamed_spreadsheet_fails_hard_without_ocr(self, options):
        pytest.importorskip("docx")

        data = make_zip(
            {
                "[Content_Types].xml": (
                    '<?xml version="1.0" encoding="UTF-8"?>'
                    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
                    '<Override PartName="/xl/workbook.xml" ContentType="application/'
                    'vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"/>'
                    "</Types>"
                ),
                "xl/workbook.xml": "<workbook/>",
            }
        )
        ocr = StubExtractor()
        parser = DocumentParser(
            docx=DocxExtractor(PythonDocxExtraction(), StdlibZipReader()),
            pdf=StubExtractor(),
            txt=StubExtractor(),
            ocr=ocr,
        )

        result = await parser.parse(_docx_file(data, name="a.docx"), options)

        assert result.error.code is ErrorCode.DOCX_NOT_VALID_ZIP
        assert result.error.is_hard
        assert ocr.calls == 0
