import hashlib
import io
import itertools
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from doccompare.database.backends.memory import MemoryBackend, MemoryStore
from doccompare.database.models import Document, DocumentCreate
from doccompare.database.repositories.comparison_repository import ComparisonRepository
from doccompare.database.repositories.document_repository import DocumentRepository
from doccompare.database.repositories.export_repository import ExportRepository
from doccompare.database.repositories.queue_repository import QueueRepository


class FakeClock:
    """Deterministic clock that ticks one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def backend(memory_store: MemoryStore) -> MemoryBackend:
    return MemoryBackend(memory_store)


@pytest.fixture()
def document_repo(backend: MemoryBackend, clock: FakeClock) -> DocumentRepository:
    return DocumentRepository(backend, clock)


@pytest.fixture()
def comparison_repo(backend: MemoryBackend, clock: FakeClock) -> ComparisonRepository:
    return ComparisonRepository(backend, clock)


@pytest.fixture()
def export_repo(backend: MemoryBackend, clock: FakeClock) -> ExportRepository:
    return ExportRepository(backend, clock)


@pytest.fixture()
def queue_repo(backend: MemoryBackend, clock: FakeClock) -> QueueRepository:
    return QueueRepository(backend, max_attempts=3, retry_delay_seconds=60, clock=clock)


def document_input(content: str, user_id: str = "user-1", **overrides: Any) -> DocumentCreate:
    """DocumentCreate whose hash is derived from ``content``."""
    values: dict[str, Any] = {
        "filename": f"{content}.pdf",
        "original_name": f"{content}.pdf",
        "file_hash": hashlib.sha256(content.encode()).hexdigest(),
        "s3_url": f"local://{content}.pdf",
        "file_size": 1024,
        "user_id": user_id,
    }
    values.update(overrides)
    return DocumentCreate(**values)


@pytest.fixture()
def make_document(document_repo: DocumentRepository) -> Callable[..., Document]:
    """Create documents with distinct hashes."""
    counter = itertools.count(1)

    def _make(user_id: str = "user-1", **overrides: Any) -> Document:
        return document_repo.create(
            document_input(f"doc-{next(counter)}", user_id=user_id, **overrides)
        )

    return _make


@pytest.fixture()
def make_processed_document(
    document_repo: DocumentRepository, make_document: Callable[..., Document]
) -> Callable[..., Document]:
    def _make(user_id: str = "user-1", text: str = "mutual confidentiality agreement") -> Document:
        document = make_document(user_id=user_id)
        document_repo.mark_processing(document.id)
        return document_repo.mark_processed(document.id, text)

    return _make
