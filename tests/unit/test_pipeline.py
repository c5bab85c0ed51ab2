"""Upload -> extract -> compare -> export on the in-memory backend."""

from pathlib import Path

import pytest

from doccompare.config.settings import Settings
from doccompare.database.backends.memory import MemoryBackend
from doccompare.database.models import ComparisonStatus, DocumentStatus, TaskType
from doccompare.database.repositories.comparison_repository import ComparisonRepository
from doccompare.database.repositories.document_repository import DocumentRepository
from doccompare.database.repositories.export_repository import ExportRepository
from doccompare.extraction.factory import TextExtractorFactory
from doccompare.main import build_queue, build_worker
from doccompare.services.document_service import DocumentService
from doccompare.services.export_service import ExportService
from doccompare.storage.local_storage import LocalBlobStorage

STANDARD = b"Mutual confidentiality agreement. Term of five years. Governed by Delaware law."
SUPPLIER = b"Unilateral confidentiality agreement. Term of two years. Governed by Delaware law."


def _settings(tmp_path: Path, **overrides: object) -> Settings:
    return Settings(
        comparison_provider="similarity",
        storage_root=str(tmp_path),
        db_create_access=False,
        **overrides,
    )


@pytest.fixture()
def backend() -> MemoryBackend:
    return MemoryBackend()


def _document_service(backend: MemoryBackend, settings: Settings) -> DocumentService:
    return DocumentService(
        DocumentRepository(backend),
        build_queue(backend, settings),
        LocalBlobStorage(Path(settings.storage_root)),
        TextExtractorFactory.from_settings(settings),
    )


class TestPipeline:
    def test_full_flow(self, backend: MemoryBackend, tmp_path: Path) -> None:
        settings = _settings(tmp_path)
        worker = build_worker(backend, settings)
        documents = _document_service(backend, settings)
        queue = build_queue(backend, settings)

        standard = documents.upload(STANDARD, "standard.txt", "user-1", is_standard=True)
        supplier = documents.upload(SUPPLIER, "supplier.txt", "user-1")

        outcomes = worker.drain()
        assert [o.status for o in outcomes] == ["completed", "completed"]
        for uploaded in (standard, supplier):
            document = documents.get_document("user-1", uploaded.document.id)
            assert document.status is DocumentStatus.PROCESSED

        queue.enqueue(supplier.document.id, TaskType.COMPARE)
        (outcome,) = worker.drain()
        assert outcome.status == "completed"

        comparisons = ComparisonRepository(backend)
        comparison = comparisons.find_by_documents(standard.document.id, supplier.document.id)
        assert comparison.status is ComparisonStatus.COMPLETED
        assert 0 < comparison.similarity_score < 100

        exports = ExportService(
            DocumentRepository(backend),
            comparisons,
            ExportRepository(backend),
            LocalBlobStorage(tmp_path),
        )
        export = exports.export("user-1", comparison.id)
        downloaded, data = exports.download("user-1", export.id)
        assert data.startswith(b"%PDF")
        assert downloaded.download_count == 1

        assert queue.stats().completed == 3
        assert worker.drain() == []

    def test_permanent_extraction_failure_marks_document_error(
        self, backend: MemoryBackend, tmp_path: Path
    ) -> None:
        settings = _settings(tmp_path, max_job_attempts=1)
        worker = build_worker(backend, settings)
        documents = _document_service(backend, settings)

        uploaded = documents.upload(b"\xff\xfe\xfa", "broken.txt", "user-1")

        (outcome,) = worker.drain()
        assert outcome.status == "failed"
        document = documents.get_document("user-1", uploaded.document.id)
        assert document.status is DocumentStatus.ERROR
        assert "UTF-8" in document.metadata["error"]

    def test_failed_attempt_is_retried_later(
        self, backend: MemoryBackend, tmp_path: Path
    ) -> None:
        settings = _settings(tmp_path)
        worker = build_worker(backend, settings)
        documents = _document_service(backend, settings)
        queue = build_queue(backend, settings)

        uploaded = documents.upload(b"\xff\xfe\xfa", "broken.txt", "user-1")

        (outcome,) = worker.drain()
        assert outcome.status == "retrying"
        (item,) = queue.find_by_document(uploaded.document.id)
        assert item.attempts == 1
        assert item.scheduled_at is not None
        assert worker.drain() == []
