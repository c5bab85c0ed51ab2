import hashlib
from pathlib import Path

import pytest

from doccompare.storage.exceptions import BlobNotFoundError, InvalidBlobUrlError
from doccompare.storage.local_storage import LocalBlobStorage, blob_key


class TestBlobKey:
    def test_is_content_addressed(self) -> None:
        digest = hashlib.sha256(b"data").hexdigest()
        assert blob_key(b"data", "Contract.PDF") == f"{digest[:2]}/{digest}.pdf"

    def test_keeps_no_suffix_when_missing(self) -> None:
        digest = hashlib.sha256(b"data").hexdigest()
        assert blob_key(b"data", "README") == f"{digest[:2]}/{digest}"


class TestPutAndGet:
    def test_returns_local_url_and_writes_file(self, tmp_path: Path) -> None:
        storage = LocalBlobStorage(files_root=tmp_path)

        url = storage.put(b"%PDF test content", "nda.pdf")

        assert url.startswith("local://")
        assert (tmp_path / url.removeprefix("local://")).read_bytes() == b"%PDF test content"

    def test_reads_back_stored_bytes(self, tmp_path: Path) -> None:
        storage = LocalBlobStorage(files_root=tmp_path)
        url = storage.put(b"%PDF other", "other.pdf")

        assert storage.get(url) == b"%PDF other"

    def test_same_content_gives_same_url(self, tmp_path: Path) -> None:
        storage = LocalBlobStorage(files_root=tmp_path)

        first = storage.put(b"same", "a.txt")
        second = storage.put(b"same", "b.txt")

        assert first == second
        assert len([p for p in tmp_path.rglob("*") if p.is_file()]) == 1

    def test_default_root(self) -> None:
        assert LocalBlobStorage().files_root == Path("/app/files")


class TestGetRaises:
    def test_missing_blob(self, tmp_path: Path) -> None:
        storage = LocalBlobStorage(files_root=tmp_path)

        with pytest.raises(BlobNotFoundError, match="missing"):
            storage.get("local://ab/missing.pdf")

    @pytest.mark.parametrize(
        "url",
        ["s3://bucket/key.pdf", "local://../etc/passwd", "local:///etc/passwd", "local://"],
    )
    def test_rejects_foreign_or_escaping_urls(self, tmp_path: Path, url: str) -> None:
        storage = LocalBlobStorage(files_root=tmp_path)

        with pytest.raises(InvalidBlobUrlError):
            storage.get(url)


class TestDelete:
    def test_removes_blob(self, tmp_path: Path) -> None:
        storage = LocalBlobStorage(files_root=tmp_path)
        url = storage.put(b"bye", "bye.txt")

        assert storage.delete(url) is True
        with pytest.raises(BlobNotFoundError):
            storage.get(url)

    def test_missing_blob_returns_false(self, tmp_path: Path) -> None:
        storage = LocalBlobStorage(files_root=tmp_path)

        assert storage.delete("local://ab/nothing.pdf") is False
