import pymupdf

from doccompare.extraction.base import BaseTextExtractor
from doccompare.extraction.exceptions import TextExtractionError


class PyMuPdfAdapter(BaseTextExtractor):
    """Extracts text from PDF using PyMuPDF."""

    method = "pymupdf"

    def extract(self, data: bytes, filename: str) -> str:
        try:
            with pymupdf.open(stream=data, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages = [page.get_text() for page in doc]
            return "\n".join(pages).strip()
        except Exception as exc:
            raise TextExtractionError(
                f"pymupdf extraction failed for {filename}: {exc}"
            ) from exc
