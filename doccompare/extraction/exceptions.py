class TextExtractionError(Exception):
    """Raised when text cannot be extracted from a file."""


class UnsupportedFileTypeError(TextExtractionError):
    """Raised when no extractor handles the file's extension."""
