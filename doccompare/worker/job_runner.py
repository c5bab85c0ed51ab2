from dataclasses import dataclass
from typing import Any

from doccompare.database.exceptions import NotFoundError
from doccompare.database.models import QueueItem, QueueStatus, TaskType
from doccompare.database.repositories.queue_repository import QueueRepository
from doccompare.logging.logger import Log
from doccompare.services.comparison_service import ComparisonService
from doccompare.services.document_service import DocumentService


@dataclass(frozen=True)
class TaskOutcome:
    """What happened to one claimed queue item."""

    item_id: int
    task_type: TaskType
    document_id: int
    # completed, retrying, failed or discarded (item deleted while running)
    status: str
    error: str | None = None


class TaskRunner:
    """Run one claimed queue item, then complete or fail it."""

    def __init__(
        self,
        queue: QueueRepository,
        document_service: DocumentService,
        comparison_service: ComparisonService,
    ) -> None:
        self._queue = queue
        self._document_service = document_service
        self._comparison_service = comparison_service

    def run(self, item: QueueItem) -> TaskOutcome:
        """Execute a single queue item with error handling."""
        Log.info(
            f"Running {item.task_type.value} item {item.id} for document "
            f"{item.document_id} (attempt {item.attempts}/{item.max_attempts})"
        )
        try:
            result = self._dispatch(item)
        except Exception as exc:
            return self._handle_failure(item, exc)

        try:
            self._queue.complete(item.id, result)
        except NotFoundError:
            Log.warning(f"Queue item {item.id} was deleted while running")
            return self._outcome(item, "discarded")
        Log.info(f"Queue item {item.id} completed successfully", result=result)
        return self._outcome(item, "completed")

    def _dispatch(self, item: QueueItem) -> dict[str, Any]:
        if item.task_type == TaskType.EXTRACT_TEXT:
            document = self._document_service.extract_text(item.document_id)
            return {
                "document_status": document.status.value,
                "characters": len(document.extracted_text or ""),
            }
        comparison = self._comparison_service.compare_with_standard(item.document_id)
        return {"comparison_id": comparison.id if comparison is not None else None}

    def _handle_failure(self, item: QueueItem, exc: Exception) -> TaskOutcome:
        """Fail the item; once it is permanently failed, mark the document error."""
        error = str(exc) or type(exc).__name__
        Log.exception(
            f"Queue item {item.id} failed: {error}",
            task_type=item.task_type.value,
            document_id=item.document_id,
            attempt=item.attempts,
        )
        try:
            failed = self._queue.fail(item.id, error)
        except NotFoundError:
            Log.warning(f"Queue item {item.id} was deleted while running")
            return self._outcome(item, "discarded", error)

        if failed.status != QueueStatus.FAILED:
            return self._outcome(item, "retrying", error)
        if item.task_type == TaskType.EXTRACT_TEXT:
            try:
                self._document_service.mark_extraction_failed(item.document_id, error)
            except NotFoundError:
                Log.warning(f"Document {item.document_id} no longer exists")
        return self._outcome(item, "failed", error)

    @staticmethod
    def _outcome(item: QueueItem, status: str, error: str | None = None) -> TaskOutcome:
        return TaskOutcome(
            item_id=item.id,
            task_type=item.task_type,
            document_id=item.document_id,
            status=status,
            error=error,
        )
