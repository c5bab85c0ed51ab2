import hashlib
from pathlib import Path, PurePosixPath

from doccompare.logging.logger import Log
from doccompare.storage.base import BaseBlobStorage
from doccompare.storage.exceptions import (
    BlobNotFoundError,
    InvalidBlobUrlError,
    StorageError,
)

URL_SCHEME = "local://"


def blob_key(data: bytes, filename: str) -> str:
    """Content-addressed key: {sha[:2]}/{sha}{suffix}"""
    digest = hashlib.sha256(data).hexdigest()
    suffix = PurePosixPath(filename).suffix.lower()
    return f"{digest[:2]}/{digest}{suffix}"


class LocalBlobStorage(BaseBlobStorage):
    """Stores blobs as files under a root directory, keyed by content hash.

    Writing the same bytes twice yields the same URL and leaves one file.
    """

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    @property
    def files_root(self) -> Path:
        return self._files_root

    def put(self, data: bytes, filename: str) -> str:
        key = blob_key(data, filename)
        path = self._files_root / key
        if not path.exists():
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                tmp = path.with_name(path.name + ".tmp")
                tmp.write_bytes(data)
                tmp.replace(path)
            except OSError as exc:
                raise StorageError(f"Failed to write blob {key}: {exc}") from exc
            Log.debug(f"Stored blob {key} ({len(data)} bytes)")
        return URL_SCHEME + key

    def get(self, url: str) -> bytes:
        path = self._resolve_path(url)
        if not path.exists():
            raise BlobNotFoundError(f"Blob not found: {url}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read blob {url}: {exc}") from exc

    def delete(self, url: str) -> bool:
        path = self._resolve_path(url)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageError(f"Failed to delete blob {url}: {exc}") from exc
        return True

    def _resolve_path(self, url: str) -> Path:
        if not url.startswith(URL_SCHEME):
            raise InvalidBlobUrlError(f"Not a local blob URL: {url}")
        key = PurePosixPath(url[len(URL_SCHEME):])
        if key.is_absolute() or ".." in key.parts or not key.parts:
            raise InvalidBlobUrlError(f"Invalid blob key in URL: {url}")
        return self._files_root.joinpath(*key.parts)
