import re
from typing import Any

from doccompare.database.codec import DOCUMENT_CODEC
from doccompare.database.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from doccompare.database.filters import eq
from doccompare.database.models import Document, DocumentCreate, DocumentStatus
from doccompare.database.repositories.base_repository import Repository, require_text
from doccompare.database.tables import DOCUMENTS
from doccompare.logging.logger import Log

_SHA256_RE = re.compile(r"^[0-9a-f]{64}$")

# Forward-only document lifecycle.
DOCUMENT_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.UPLOADED: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.PROCESSED, DocumentStatus.ERROR}),
    DocumentStatus.PROCESSED: frozenset(),
    DocumentStatus.ERROR: frozenset(),
}


class DocumentRepository(Repository[Document, DocumentCreate]):
    """Database operations for the documents table."""

    table = DOCUMENTS
    codec = DOCUMENT_CODEC
    entity_name = "Document"
    guarded_fields = frozenset({"status", "is_standard", "file_hash"})

    def create(self, data: DocumentCreate) -> Document:
        """Insert a document. A standard document replaces the user's previous one.

        Raises:
            ValidationError: on malformed input.
            ConflictError: if a document with the same file_hash exists.
        """
        if not data.is_standard:
            return super().create(data)
        with self._backend.atomic():
            self._clear_standard(data.user_id)
            return super().create(data)

    def create_or_get(self, data: DocumentCreate) -> tuple[Document, bool]:
        """Return the document stored under this hash, creating it if needed.

        The second element tells whether a new row was written. Dedup is
        global: a hit owned by another user is returned unchanged.
        """
        existing = self.find_by_hash(data.file_hash)
        if existing is not None:
            Log.info(f"Duplicate upload resolved to document {existing.id}")
            return existing, False
        try:
            return self.create(data), True
        except ConflictError:
            # Lost an insert race for the same hash; the winner's row is the answer.
            winner = self.find_by_hash(data.file_hash)
            if winner is None:
                raise
            return winner, False

    def find_by_hash(self, file_hash: str) -> Document | None:
        if not isinstance(file_hash, str):
            raise ValidationError("'file_hash' must be a string")
        return self.find_by_field("file_hash", file_hash.lower())

    def find_by_user(
        self, user_id: str, *, limit: int | None = None, offset: int = 0
    ) -> list[Document]:
        return self.find_where(
            eq("user_id", user_id), order_by=("-created_at", "-id"), limit=limit, offset=offset
        )

    def find_by_status(
        self, status: DocumentStatus, user_id: str | None = None
    ) -> list[Document]:
        conditions = [eq("status", status)]
        if user_id is not None:
            conditions.append(eq("user_id", user_id))
        return self.find_where(*conditions)

    def get_standard_document(self, user_id: str) -> Document | None:
        matches = self.find_where(
            eq("user_id", user_id), eq("is_standard", True), limit=1
        )
        return matches[0] if matches else None

    def set_standard_document(self, user_id: str, document_id: int) -> Document:
        """Make this document the user's standard, clearing any previous one atomically.

        Raises:
            NotFoundError: if the document does not exist or belongs to another user.
        """
        with self._backend.atomic():
            document = self.find_by_id(document_id)
            if document is None or document.user_id != user_id:
                raise NotFoundError(f"Document {document_id} not found")
            if document.is_standard:
                return document
            self._clear_standard(user_id)
            return self._write(document_id, {"is_standard": True})

    def clear_standard_document(self, user_id: str) -> int:
        return self._clear_standard(user_id)

    def transition_status(
        self, document_id: int, status: DocumentStatus, **fields: Any
    ) -> Document:
        """Move a document forward through its lifecycle.

        Extra keyword fields (extracted_text, metadata) are written in the same
        update.

        Raises:
            NotFoundError: if the document does not exist.
            InvalidTransitionError: if the move is not forward or the status
                changed underneath this call.
        """
        unexpected = set(fields) - {"extracted_text", "metadata"}
        if unexpected:
            raise ValidationError(
                f"Cannot set {', '.join(sorted(unexpected))} during a status change"
            )
        current = self.get(document_id)
        if status not in DOCUMENT_TRANSITIONS[current.status]:
            raise InvalidTransitionError(
                f"Document {document_id} cannot move from "
                f"{current.status.value} to {status.value}"
            )
        changes = {"status": status, **fields}
        try:
            return self._write(document_id, changes, expected=[eq("status", current.status)])
        except NotFoundError as exc:
            raise InvalidTransitionError(
                f"Document {document_id} changed status concurrently"
            ) from exc

    def mark_processing(self, document_id: int) -> Document:
        return self.transition_status(document_id, DocumentStatus.PROCESSING)

    def mark_processed(
        self,
        document_id: int,
        extracted_text: str,
        metadata: dict[str, Any] | None = None,
    ) -> Document:
        return self.transition_status(
            document_id,
            DocumentStatus.PROCESSED,
            extracted_text=extracted_text,
            metadata=metadata,
        )

    def mark_error(self, document_id: int, message: str | None = None) -> Document:
        current = self.get(document_id)
        metadata = dict(current.metadata or {})
        if message:
            metadata["error"] = message
        return self.transition_status(
            document_id, DocumentStatus.ERROR, metadata=metadata or None
        )

    def _prepare(self, data: DocumentCreate) -> dict[str, Any]:
        values = super()._prepare(data)
        for name in ("filename", "original_name", "s3_url", "user_id"):
            require_text(values[name], name)
        file_hash = values["file_hash"]
        if not isinstance(file_hash, str) or not _SHA256_RE.match(file_hash.lower()):
            raise ValidationError("'file_hash' must be a 64 character SHA-256 hex digest")
        values["file_hash"] = file_hash.lower()
        size = values["file_size"]
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ValidationError("'file_size' must be a non-negative integer")
        values["status"] = DocumentStatus(values["status"] or DocumentStatus.UPLOADED)
        values["is_standard"] = bool(values["is_standard"])
        return values

    def _clear_standard(self, user_id: str) -> int:
        return self._backend.update_where(
            self.table,
            [eq("user_id", user_id), eq("is_standard", True)],
            {"is_standard": False, "updated_at": self._clock()},
        )
