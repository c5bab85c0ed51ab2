from typing import Any

from doccompare.database.codec import COMPARISON_CODEC
from doccompare.database.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from doccompare.database.filters import any_of, eq, in_
from doccompare.database.models import (
    Comparison,
    ComparisonCreate,
    ComparisonStatus,
)
from doccompare.database.repositories.base_repository import (
    Repository,
    require_id,
    require_text,
)
from doccompare.database.tables import COMPARISONS, DOCUMENTS

COMPARISON_TRANSITIONS: dict[ComparisonStatus, frozenset[ComparisonStatus]] = {
    ComparisonStatus.PENDING: frozenset({ComparisonStatus.PROCESSING}),
    ComparisonStatus.PROCESSING: frozenset(
        {ComparisonStatus.COMPLETED, ComparisonStatus.ERROR}
    ),
    ComparisonStatus.COMPLETED: frozenset(),
    ComparisonStatus.ERROR: frozenset(),
}

RESULT_FIELDS = frozenset(
    {
        "comparison_result_url",
        "comparison_summary",
        "similarity_score",
        "key_differences",
        "error_message",
        "processing_time_ms",
    }
)


class ComparisonRepository(Repository[Comparison, ComparisonCreate]):
    """Database operations for the comparisons table.

    Pairs are ordered: (A, B) and (B, A) are distinct comparisons.
    """

    table = COMPARISONS
    codec = COMPARISON_CODEC
    entity_name = "Comparison"
    guarded_fields = frozenset({"status", "document1_id", "document2_id", "user_id"})

    def create(self, data: ComparisonCreate) -> Comparison:
        """Create a pending comparison between two of the user's documents.

        Raises:
            ValidationError: if both ids are the same document or input is malformed.
            NotFoundError: if either document is missing or owned by someone else.
            ConflictError: if this ordered pair was already compared.
        """
        require_id(data.document1_id, "document1_id")
        require_id(data.document2_id, "document2_id")
        require_text(data.user_id, "user_id")
        if data.document1_id == data.document2_id:
            raise ValidationError("A document cannot be compared with itself")
        with self._backend.atomic():
            for document_id in (data.document1_id, data.document2_id):
                row = self._backend.get(DOCUMENTS, document_id)
                if row is None or row["user_id"] != data.user_id:
                    raise NotFoundError(f"Document {document_id} not found")
            existing = self.find_by_documents(data.document1_id, data.document2_id)
            if existing is not None:
                raise ConflictError(
                    f"Documents {data.document1_id} and {data.document2_id} "
                    f"were already compared (comparison {existing.id})"
                )
            return super().create(data)

    def find_by_documents(
        self, document1_id: int, document2_id: int, *, either_order: bool = False
    ) -> Comparison | None:
        forward = (eq("document1_id", document1_id), eq("document2_id", document2_id))
        if not either_order:
            matches = self.find_where(*forward, limit=1)
        else:
            # Self-comparisons are never stored, so membership in the pair suffices.
            pair = (document1_id, document2_id)
            matches = self.find_where(
                in_("document1_id", pair), in_("document2_id", pair), limit=1
            )
        return matches[0] if matches else None

    def find_by_document(self, document_id: int) -> list[Comparison]:
        return self.find_where(
            any_of(eq("document1_id", document_id), eq("document2_id", document_id))
        )

    def find_by_user(
        self, user_id: str, *, limit: int | None = None, offset: int = 0
    ) -> list[Comparison]:
        return self.find_where(
            eq("user_id", user_id), order_by=("-created_at", "-id"), limit=limit, offset=offset
        )

    def find_by_status(
        self, status: ComparisonStatus, user_id: str | None = None
    ) -> list[Comparison]:
        conditions = [eq("status", status)]
        if user_id is not None:
            conditions.append(eq("user_id", user_id))
        return self.find_where(*conditions)

    def transition_status(
        self, comparison_id: int, status: ComparisonStatus, **fields: Any
    ) -> Comparison:
        """Apply one of pending->processing, processing->completed, processing->error.

        Result fields (summary, score, result url, ...) are written with the
        status in one compare-and-set update.

        Raises:
            NotFoundError: if the comparison does not exist.
            InvalidTransitionError: for any other transition, including a
                concurrent status change.
        """
        unexpected = set(fields) - RESULT_FIELDS
        if unexpected:
            raise ValidationError(
                f"Cannot set {', '.join(sorted(unexpected))} during a status change"
            )
        current = self.get(comparison_id)
        if status not in COMPARISON_TRANSITIONS[current.status]:
            raise InvalidTransitionError(
                f"Comparison {comparison_id} cannot move from "
                f"{current.status.value} to {status.value}"
            )
        try:
            return self._write(
                comparison_id,
                {"status": status, **fields},
                expected=[eq("status", current.status)],
            )
        except NotFoundError as exc:
            raise InvalidTransitionError(
                f"Comparison {comparison_id} changed status concurrently"
            ) from exc

    def update(self, record_id: int, changes: dict[str, Any]) -> Comparison:
        current = self.get(record_id)
        if current.status in (ComparisonStatus.COMPLETED, ComparisonStatus.ERROR):
            raise InvalidTransitionError(
                f"Comparison {record_id} is {current.status.value} and can no longer change"
            )
        return super().update(record_id, changes)

    def _prepare(self, data: ComparisonCreate) -> dict[str, Any]:
        values = super()._prepare(data)
        values["status"] = ComparisonStatus.PENDING
        return values
