import os
from collections.abc import Callable, Generator
from typing import Any

import pytest

from doccompare.config.settings import Settings
from doccompare.database.backends.relational import RelationalBackend
from doccompare.database.connection import close_pool, init_pool
from doccompare.database.models import Document, DocumentCreate
from doccompare.database.repositories.comparison_repository import ComparisonRepository
from doccompare.database.repositories.document_repository import DocumentRepository
from doccompare.database.repositories.export_repository import ExportRepository
from doccompare.database.repositories.queue_repository import QueueRepository
from doccompare.database.schema import initialize_schema, truncate_all


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "doccompare_test")
    return Settings(db_create_access=True)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        initialize_schema()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def relational_backend(integration_pool: None) -> Generator[RelationalBackend, None, None]:
    truncate_all()
    yield RelationalBackend()
    truncate_all()


@pytest.fixture
def pg_documents(relational_backend: RelationalBackend) -> DocumentRepository:
    return DocumentRepository(relational_backend)


@pytest.fixture
def pg_comparisons(relational_backend: RelationalBackend) -> ComparisonRepository:
    return ComparisonRepository(relational_backend)


@pytest.fixture
def pg_exports(relational_backend: RelationalBackend) -> ExportRepository:
    return ExportRepository(relational_backend)


@pytest.fixture
def pg_queue(relational_backend: RelationalBackend) -> QueueRepository:
    return QueueRepository(relational_backend, max_attempts=2, retry_delay_seconds=0)


@pytest.fixture
def seed_document(pg_documents: DocumentRepository) -> Callable[..., Document]:
    counter = iter(range(1, 10_000))

    def _seed(user_id: str = "user-1", **overrides: Any) -> Document:
        n = next(counter)
        values: dict[str, Any] = {
            "filename": f"doc-{n}.pdf",
            "original_name": f"doc-{n}.pdf",
            "file_hash": f"{n:064x}",
            "s3_url": f"local://00/doc-{n}.pdf",
            "file_size": 1024,
            "user_id": user_id,
        }
        values.update(overrides)
        return pg_documents.create(DocumentCreate(**values))

    return _seed
