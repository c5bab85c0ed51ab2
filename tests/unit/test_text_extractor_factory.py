import pytest

from doccompare.extraction.exceptions import TextExtractionError, UnsupportedFileTypeError
from doccompare.extraction.factory import TextExtractorFactory
from doccompare.extraction.pdfplumber_adapter import PdfPlumberAdapter
from doccompare.extraction.plain_text_adapter import PlainTextAdapter
from doccompare.extraction.pymupdf_adapter import PyMuPdfAdapter


class TestTextExtractorFactory:
    def test_creates_pdfplumber_adapter(self) -> None:
        extractor = TextExtractorFactory("pdfplumber").for_filename("nda.pdf")
        assert isinstance(extractor, PdfPlumberAdapter)

    def test_creates_pymupdf_adapter(self) -> None:
        extractor = TextExtractorFactory("pymupdf").for_filename("nda.pdf")
        assert isinstance(extractor, PyMuPdfAdapter)

    def test_engine_is_case_insensitive(self) -> None:
        extractor = TextExtractorFactory("PdfPlumber").for_filename("NDA.PDF")
        assert isinstance(extractor, PdfPlumberAdapter)

    def test_raises_for_unknown_engine(self) -> None:
        with pytest.raises(ValueError, match="Unknown PDF engine"):
            TextExtractorFactory("unknown")

    @pytest.mark.parametrize("filename", ["notes.txt", "README.md", "terms.TEXT"])
    def test_plain_text_files(self, filename: str) -> None:
        extractor = TextExtractorFactory().for_filename(filename)
        assert isinstance(extractor, PlainTextAdapter)

    @pytest.mark.parametrize("filename", ["contract.docx", "image.png", "noextension"])
    def test_unsupported_files(self, filename: str) -> None:
        with pytest.raises(UnsupportedFileTypeError, match=filename):
            TextExtractorFactory().for_filename(filename)


class TestPlainTextAdapter:
    def test_decodes_and_normalizes_newlines(self) -> None:
        text = PlainTextAdapter().extract("\ufeffline one\r\nline two\r\n".encode(), "a.txt")
        assert text == "line one\nline two"

    def test_invalid_utf8_raises(self) -> None:
        with pytest.raises(TextExtractionError, match="a.txt"):
            PlainTextAdapter().extract(b"\xff\xfe\xfa", "a.txt")
