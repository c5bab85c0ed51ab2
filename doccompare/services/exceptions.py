class ServiceError(Exception):
    """Base exception for all service-level errors."""


class EmptyFileError(ServiceError):
    """Raised when an upload carries no bytes."""


class DocumentNotReadyError(ServiceError):
    """Raised when a document has no extracted text to work with yet."""


class ComparisonFailedError(ServiceError):
    """Raised when a comparison ended in the error state."""


class UnsupportedExportTypeError(ServiceError):
    """Raised when an export format has no renderer."""
