import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePosixPath

from doccompare.database.exceptions import NotFoundError
from doccompare.database.models import (
    Document,
    DocumentCreate,
    DocumentStatus,
    QueueItem,
    TaskType,
)
from doccompare.database.repositories.document_repository import DocumentRepository
from doccompare.database.repositories.queue_repository import QueueRepository
from doccompare.extraction.factory import TextExtractorFactory
from doccompare.logging.logger import Log
from doccompare.services.exceptions import EmptyFileError
from doccompare.storage.base import BaseBlobStorage


@dataclass(frozen=True)
class UploadResult:
    document: Document
    created: bool
    queue_item: QueueItem | None = None


class DocumentService:
    """Upload, text extraction and ownership-checked document operations."""

    def __init__(
        self,
        documents: DocumentRepository,
        queue: QueueRepository,
        storage: BaseBlobStorage,
        extractors: TextExtractorFactory,
    ) -> None:
        self._documents = documents
        self._queue = queue
        self._storage = storage
        self._extractors = extractors

    def upload(
        self,
        data: bytes,
        original_name: str,
        user_id: str,
        *,
        is_standard: bool = False,
    ) -> UploadResult:
        """Store an upload, deduplicated by SHA-256 of its content.

        A new document is queued for text extraction. A duplicate returns the
        existing document untouched; if that document is still ``uploaded`` its
        extraction item is queued again, which is a no-op while one is outstanding.

        Raises:
            EmptyFileError: if data is empty.
            UnsupportedFileTypeError: if no extractor handles the file type.
        """
        if not data:
            raise EmptyFileError(f"Upload '{original_name}' is empty")
        self._extractors.for_filename(original_name)

        file_hash = hashlib.sha256(data).hexdigest()
        existing = self._documents.find_by_hash(file_hash)
        if existing is not None:
            Log.info(f"Upload '{original_name}' matches document {existing.id}")
            return self._duplicate(existing)

        url = self._storage.put(data, original_name)
        document, created = self._documents.create_or_get(
            DocumentCreate(
                filename=PurePosixPath(url).name,
                original_name=original_name,
                file_hash=file_hash,
                s3_url=url,
                file_size=len(data),
                user_id=user_id,
                is_standard=is_standard,
            )
        )
        if not created:
            return self._duplicate(document)

        item = self._queue.enqueue(document.id, TaskType.EXTRACT_TEXT)
        Log.info(
            f"Uploaded document {document.id} ({len(data)} bytes) for user {user_id}"
        )
        return UploadResult(document=document, created=True, queue_item=item)

    def extract_text(self, document_id: int) -> Document:
        """Extract and store a document's text, moving it to ``processed``.

        Safe to rerun after a failed attempt: a document left in
        ``processing`` is picked up again, a processed one is returned as is.
        """
        document = self._documents.get(document_id)
        if document.status == DocumentStatus.PROCESSED:
            return document
        if document.status == DocumentStatus.UPLOADED:
            document = self._documents.mark_processing(document_id)

        data = self._storage.get(document.s3_url)
        extractor = self._extractors.for_filename(document.original_name)
        text = extractor.extract(data, document.original_name)

        metadata = dict(document.metadata or {})
        metadata["extraction"] = {
            "method": extractor.method,
            "extracted_at": datetime.now(timezone.utc).isoformat(),
            "characters": len(text),
            "words": len(text.split()),
        }
        processed = self._documents.mark_processed(document_id, text, metadata)
        Log.info(f"Extracted {len(text)} chars from document {document_id}")
        return processed

    def mark_extraction_failed(self, document_id: int, message: str) -> Document:
        """Move a document whose extraction will not be retried to ``error``."""
        document = self._documents.get(document_id)
        if document.status == DocumentStatus.UPLOADED:
            document = self._documents.mark_processing(document_id)
        if document.status != DocumentStatus.PROCESSING:
            return document
        return self._documents.mark_error(document_id, message)

    def get_document(self, user_id: str, document_id: int) -> Document:
        """Return the user's document; another user's document is reported as missing."""
        document = self._documents.find_by_id(document_id)
        if document is None or document.user_id != user_id:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    def list_documents(
        self, user_id: str, *, limit: int | None = None, offset: int = 0
    ) -> list[Document]:
        return self._documents.find_by_user(user_id, limit=limit, offset=offset)

    def set_standard(self, user_id: str, document_id: int) -> Document:
        document = self._documents.set_standard_document(user_id, document_id)
        Log.info(f"Document {document_id} is now the standard for user {user_id}")
        return document

    def get_standard(self, user_id: str) -> Document | None:
        return self._documents.get_standard_document(user_id)

    def delete(self, user_id: str, document_id: int) -> None:
        """Delete the document, its comparisons, exports, queue items and blob."""
        document = self.get_document(user_id, document_id)
        self._documents.delete(document_id)
        self._storage.delete(document.s3_url)
        Log.info(f"Deleted document {document_id} for user {user_id}")

    def _duplicate(self, document: Document) -> UploadResult:
        item = None
        if document.status == DocumentStatus.UPLOADED:
            item = self._queue.enqueue(document.id, TaskType.EXTRACT_TEXT)
        return UploadResult(document=document, created=False, queue_item=item)
