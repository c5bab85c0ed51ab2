from pathlib import Path

from doccompare.comparison.factory import ComparatorFactory
from doccompare.config.settings import Settings
from doccompare.database.backends.base import Backend
from doccompare.database.backends.factory import BackendFactory
from doccompare.database.repositories.comparison_repository import ComparisonRepository
from doccompare.database.repositories.document_repository import DocumentRepository
from doccompare.database.repositories.queue_repository import QueueRepository
from doccompare.extraction.factory import TextExtractorFactory
from doccompare.logging.logger import Log
from doccompare.services.comparison_service import ComparisonService
from doccompare.services.document_service import DocumentService
from doccompare.storage.local_storage import LocalBlobStorage
from doccompare.worker.job_runner import TaskRunner
from doccompare.worker.worker import Worker


def build_queue(backend: Backend, settings: Settings) -> QueueRepository:
    return QueueRepository(
        backend,
        max_attempts=settings.max_job_attempts,
        retry_delay_seconds=settings.queue_retry_delay_seconds,
        default_priority=settings.default_queue_priority,
    )


def build_worker(backend: Backend, settings: Settings) -> Worker:
    """Wire repositories, services and the task runner over one backend."""
    documents = DocumentRepository(backend)
    queue = build_queue(backend, settings)
    storage = LocalBlobStorage(Path(settings.storage_root))
    document_service = DocumentService(
        documents, queue, storage, TextExtractorFactory.from_settings(settings)
    )
    comparison_service = ComparisonService(
        documents,
        ComparisonRepository(backend),
        storage,
        ComparatorFactory.create(settings),
    )
    task_runner = TaskRunner(queue, document_service, comparison_service)
    return Worker(queue, task_runner, settings)


def main() -> None:
    """Entry point: choose backend -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    backend = BackendFactory.create(settings)

    try:
        worker = build_worker(backend, settings)
        worker.run()
    finally:
        backend.close()


if __name__ == "__main__":
    main()
