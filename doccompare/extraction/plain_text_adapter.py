from doccompare.extraction.base import BaseTextExtractor
from doccompare.extraction.exceptions import TextExtractionError


class PlainTextAdapter(BaseTextExtractor):
    """Decodes UTF-8 text files, tolerating a byte order mark."""

    method = "text"

    def extract(self, data: bytes, filename: str) -> str:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise TextExtractionError(f"{filename} is not valid UTF-8 text: {exc}") from exc
        return text.replace("\r\n", "\n").strip()
