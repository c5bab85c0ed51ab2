class StorageError(Exception):
    """Base exception for all blob storage errors."""


class BlobNotFoundError(StorageError):
    """Raised when no blob is stored under the requested URL."""


class InvalidBlobUrlError(StorageError):
    """Raised when a URL does not belong to the storage that was asked to resolve it."""
