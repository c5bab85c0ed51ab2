from pathlib import PurePosixPath

from doccompare.config.settings import Settings
from doccompare.extraction.base import BaseTextExtractor
from doccompare.extraction.exceptions import UnsupportedFileTypeError
from doccompare.extraction.pdfplumber_adapter import PdfPlumberAdapter
from doccompare.extraction.plain_text_adapter import PlainTextAdapter
from doccompare.extraction.pymupdf_adapter import PyMuPdfAdapter


class TextExtractorFactory:
    """Picks a text extractor for a file by its extension and the PDF engine setting."""

    PDF_ADAPTERS: dict[str, type[BaseTextExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }
    TEXT_EXTENSIONS = frozenset({".txt", ".md", ".text"})

    def __init__(self, pdf_engine: str = "pdfplumber") -> None:
        engine = pdf_engine.lower()
        adapter_cls = self.PDF_ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(self.PDF_ADAPTERS)}"
            )
        self._pdf_extractor = adapter_cls()
        self._text_extractor = PlainTextAdapter()

    @classmethod
    def from_settings(cls, settings: Settings) -> "TextExtractorFactory":
        return cls(settings.pdf_engine)

    def for_filename(self, filename: str) -> BaseTextExtractor:
        """Return the extractor for this file.

        Raises:
            UnsupportedFileTypeError: for extensions no adapter handles.
        """
        suffix = PurePosixPath(filename).suffix.lower()
        if suffix == ".pdf":
            return self._pdf_extractor
        if suffix in self.TEXT_EXTENSIONS:
            return self._text_extractor
        raise UnsupportedFileTypeError(
            f"No text extractor for '{filename}' (supported: .pdf, "
            f"{', '.join(sorted(self.TEXT_EXTENSIONS))})"
        )
