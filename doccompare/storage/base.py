from abc import ABC, abstractmethod


class BaseBlobStorage(ABC):
    """Contract for all blob storage adapters."""

    @abstractmethod
    def put(self, data: bytes, filename: str) -> str:
        """Store bytes and return the URL they can be read back from.

        Args:
            data: Raw file content.
            filename: Original file name; only its extension is kept.

        Raises:
            StorageError: if the blob cannot be written.
        """

    @abstractmethod
    def get(self, url: str) -> bytes:
        """Read the bytes stored under a URL returned by ``put``.

        Raises:
            BlobNotFoundError: if nothing is stored under the URL.
            InvalidBlobUrlError: if the URL is not one of this storage's URLs.
        """

    @abstractmethod
    def delete(self, url: str) -> bool:
        """Remove a blob. Returns False if it was already gone."""
