from abc import ABC, abstractmethod


class BaseTextExtractor(ABC):
    """Contract for all text extraction adapters."""

    # Recorded in document metadata as the extraction method.
    method: str = ""

    @abstractmethod
    def extract(self, data: bytes, filename: str) -> str:
        """Extract plain text from file bytes.

        Args:
            data: Raw file content.
            filename: Original file name, used for diagnostics.

        Returns:
            Extracted text as a single normalized string.

        Raises:
            TextExtractionError: if extraction fails for any reason.
        """
