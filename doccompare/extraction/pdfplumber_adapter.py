import io

import pdfplumber

from doccompare.extraction.base import BaseTextExtractor
from doccompare.extraction.exceptions import TextExtractionError


class PdfPlumberAdapter(BaseTextExtractor):
    """Extracts text from PDF using pdfplumber."""

    method = "pdfplumber"

    def extract(self, data: bytes, filename: str) -> str:
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
            return "\n".join(pages).strip()
        except Exception as exc:
            raise TextExtractionError(
                f"pdfplumber extraction failed for {filename}: {exc}"
            ) from exc
