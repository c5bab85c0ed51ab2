from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from doccompare.database.backends.base import Backend
from doccompare.database.codec import QUEUE_ITEM_CODEC
from doccompare.database.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from doccompare.database.filters import Query, any_of, eq, in_, is_null, lte, ordered
from doccompare.database.models import QueueItem, QueueItemCreate, QueueStatus, TaskType
from doccompare.database.repositories.base_repository import (
    Clock,
    Repository,
    require_id,
    utc_now,
)
from doccompare.database.tables import PROCESSING_QUEUE
from doccompare.logging.logger import Log

OUTSTANDING = (QueueStatus.PENDING, QueueStatus.PROCESSING)

# Highest priority first, then oldest, then insertion order.
CLAIM_ORDER = ordered("-priority", "created_at", "id")


@dataclass(frozen=True)
class QueueStats:
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.processing + self.completed + self.failed


class QueueRepository(Repository[QueueItem, QueueItemCreate]):
    """Durable task queue over the processing_queue table.

    The queue never changes document status. Callers mark a document
    ``error`` once its item is permanently failed.
    """

    table = PROCESSING_QUEUE
    codec = QUEUE_ITEM_CODEC
    entity_name = "Queue item"
    guarded_fields = frozenset(
        {"status", "attempts", "document_id", "task_type", "started_at", "completed_at"}
    )

    def __init__(
        self,
        backend: Backend,
        *,
        max_attempts: int = 3,
        retry_delay_seconds: int = 60,
        default_priority: int = 5,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(backend, clock)
        self._max_attempts = max_attempts
        self._retry_delay = timedelta(seconds=retry_delay_seconds)
        self._default_priority = default_priority

    def enqueue(
        self,
        document_id: int,
        task_type: TaskType,
        priority: int | None = None,
        scheduled_at: datetime | None = None,
    ) -> QueueItem:
        """Queue a task, or return the outstanding item already queued for it.

        Raises:
            ValidationError: if the document does not exist.
        """
        require_id(document_id, "document_id")
        task_type = TaskType(task_type)
        data = QueueItemCreate(
            document_id=document_id,
            task_type=task_type,
            priority=self._default_priority if priority is None else priority,
            max_attempts=self._max_attempts,
            scheduled_at=scheduled_at,
        )
        try:
            with self._backend.atomic():
                existing = self._find_outstanding(document_id, task_type)
                if existing is not None:
                    return existing
                item = self.create(data)
        except ConflictError:
            # Another enqueue won the insert; its item is the answer.
            existing = self._find_outstanding(document_id, task_type)
            if existing is None:
                raise
            return existing
        Log.info(
            f"Enqueued {task_type.value} for document {document_id}",
            item_id=item.id,
            priority=item.priority,
        )
        return item

    def claim_next(self, task_type: TaskType | None = None) -> QueueItem | None:
        """Atomically mark the next due pending item ``processing`` and return it."""
        now = self._clock()
        conditions = [
            eq("status", QueueStatus.PENDING),
            any_of(is_null("scheduled_at"), lte("scheduled_at", now)),
        ]
        if task_type is not None:
            conditions.append(eq("task_type", TaskType(task_type)))
        row = self._backend.claim(
            self.table,
            Query(conditions=tuple(conditions), order_by=CLAIM_ORDER),
            {
                "status": QueueStatus.PROCESSING.value,
                "started_at": now,
                "updated_at": now,
            },
            increments={"attempts": 1},
        )
        return self._decode(row) if row is not None else None

    def complete(
        self, item_id: int, result: dict[str, Any] | None = None
    ) -> QueueItem:
        """Mark a processing item completed.

        Raises:
            NotFoundError: if the item does not exist.
            InvalidTransitionError: if the item is not processing.
        """
        now = self._clock()
        return self._transition(
            item_id,
            {"status": QueueStatus.COMPLETED, "completed_at": now, "result": result},
            expected_status=QueueStatus.PROCESSING,
        )

    def fail(self, item_id: int, error: str) -> QueueItem:
        """Record a failed attempt.

        The item goes back to ``pending`` after the retry delay while attempts
        remain, and to ``failed`` once ``attempts >= max_attempts``.
        """
        current = self.get(item_id)
        if current.status != QueueStatus.PROCESSING:
            raise InvalidTransitionError(
                f"Queue item {item_id} is {current.status.value}, not processing"
            )
        now = self._clock()
        if current.attempts >= current.max_attempts:
            changes: dict[str, Any] = {
                "status": QueueStatus.FAILED,
                "last_error": error,
                "completed_at": now,
            }
        else:
            changes = {
                "status": QueueStatus.PENDING,
                "last_error": error,
                "scheduled_at": now + self._retry_delay,
            }
        item = self._transition(
            item_id,
            changes,
            expected_status=QueueStatus.PROCESSING,
            expected_attempts=current.attempts,
        )
        if item.status == QueueStatus.FAILED:
            Log.error(
                f"Queue item {item_id} failed permanently after {item.attempts} attempts: {error}"
            )
        else:
            Log.warning(
                f"Queue item {item_id} attempt {item.attempts}/{item.max_attempts} failed, "
                f"retrying at {item.scheduled_at}: {error}"
            )
        return item

    def find_by_document(
        self, document_id: int, task_type: TaskType | None = None
    ) -> list[QueueItem]:
        conditions = [eq("document_id", document_id)]
        if task_type is not None:
            conditions.append(eq("task_type", task_type))
        return self.find_where(*conditions, order_by=("-created_at", "-id"))

    def find_by_status(self, status: QueueStatus) -> list[QueueItem]:
        return self.find_where(eq("status", status))

    def find_pending(self, limit: int = 10) -> list[QueueItem]:
        """Pending items in claim order, including ones scheduled for later."""
        return self.find_where(
            eq("status", QueueStatus.PENDING),
            order_by=("-priority", "created_at", "id"),
            limit=limit,
        )

    def stats(self) -> QueueStats:
        return QueueStats(
            **{status.value: self.count(eq("status", status)) for status in QueueStatus}
        )

    def _find_outstanding(
        self, document_id: int, task_type: TaskType
    ) -> QueueItem | None:
        matches = self.find_where(
            eq("document_id", document_id),
            eq("task_type", task_type),
            in_("status", OUTSTANDING),
            limit=1,
        )
        return matches[0] if matches else None

    def _transition(
        self,
        item_id: int,
        changes: dict[str, Any],
        *,
        expected_status: QueueStatus,
        expected_attempts: int | None = None,
    ) -> QueueItem:
        expected = [eq("status", expected_status)]
        if expected_attempts is not None:
            expected.append(eq("attempts", expected_attempts))
        try:
            return self._write(item_id, changes, expected=expected)
        except NotFoundError as exc:
            current = self.get(item_id)
            raise InvalidTransitionError(
                f"Queue item {item_id} is {current.status.value}, "
                f"not {expected_status.value}"
            ) from exc

    def _prepare(self, data: QueueItemCreate) -> dict[str, Any]:
        values = super()._prepare(data)
        priority = values["priority"]
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValidationError("'priority' must be an integer")
        if values["max_attempts"] < 1:
            raise ValidationError("'max_attempts' must be at least 1")
        values["status"] = QueueStatus.PENDING
        values["attempts"] = 0
        return values
