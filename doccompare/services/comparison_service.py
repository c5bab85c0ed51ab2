import json
import time
from typing import Any

from doccompare.comparison.base import BaseComparator
from doccompare.comparison.exceptions import ComparisonError
from doccompare.database.exceptions import NotFoundError
from doccompare.database.models import (
    Comparison,
    ComparisonCreate,
    ComparisonStatus,
    Document,
    DocumentStatus,
)
from doccompare.database.repositories.comparison_repository import ComparisonRepository
from doccompare.database.repositories.document_repository import DocumentRepository
from doccompare.logging.logger import Log
from doccompare.services.exceptions import ComparisonFailedError, DocumentNotReadyError
from doccompare.storage.base import BaseBlobStorage
from doccompare.storage.exceptions import StorageError


class ComparisonService:
    """Creates comparisons and drives them from pending to completed or error."""

    def __init__(
        self,
        documents: DocumentRepository,
        comparisons: ComparisonRepository,
        storage: BaseBlobStorage,
        comparator: BaseComparator,
    ) -> None:
        self._documents = documents
        self._comparisons = comparisons
        self._storage = storage
        self._comparator = comparator

    def request_comparison(
        self, user_id: str, document1_id: int, document2_id: int
    ) -> Comparison:
        """Create a pending comparison between two of the user's processed documents.

        Raises:
            NotFoundError: if either document is missing or not the user's.
            DocumentNotReadyError: if either document has no extracted text.
            ConflictError: if the pair was already compared.
        """
        for document_id in (document1_id, document2_id):
            self._ready_document(user_id, document_id)
        return self._comparisons.create(
            ComparisonCreate(
                document1_id=document1_id,
                document2_id=document2_id,
                user_id=user_id,
            )
        )

    def run(self, comparison_id: int) -> Comparison:
        """Run a pending comparison.

        Provider and storage failures move the comparison to ``error`` and the
        errored comparison is returned. Any other exception also moves it to
        ``error`` and is then re-raised.
        """
        comparison = self._comparisons.transition_status(
            comparison_id, ComparisonStatus.PROCESSING
        )
        started = time.monotonic()
        try:
            document1 = self._ready_document(comparison.user_id, comparison.document1_id)
            document2 = self._ready_document(comparison.user_id, comparison.document2_id)
            result = self._comparator.compare(
                document1.extracted_text or "", document2.extracted_text or ""
            )
            payload = {
                "comparison_id": comparison_id,
                "document1_id": comparison.document1_id,
                "document2_id": comparison.document2_id,
                **result.to_dict(),
            }
            url = self._storage.put(
                json.dumps(payload, indent=2).encode("utf-8"),
                f"comparison-{comparison_id}.json",
            )
            completed = self._comparisons.transition_status(
                comparison_id,
                ComparisonStatus.COMPLETED,
                comparison_result_url=url,
                comparison_summary=result.summary,
                similarity_score=result.score,
                key_differences=payload["differences"],
                processing_time_ms=_elapsed_ms(started),
            )
        except (ComparisonError, StorageError, DocumentNotReadyError, NotFoundError) as exc:
            Log.error(f"Comparison {comparison_id} failed: {exc}")
            return self._fail(comparison_id, exc, started)
        except Exception as exc:
            Log.exception(f"Comparison {comparison_id} failed unexpectedly: {exc}")
            self._fail(comparison_id, exc, started)
            raise

        Log.info(
            f"Comparison {comparison_id} completed in {completed.processing_time_ms} ms "
            f"(score {result.score})"
        )
        return completed

    def compare(self, user_id: str, document1_id: int, document2_id: int) -> Comparison:
        comparison = self.request_comparison(user_id, document1_id, document2_id)
        return self.run(comparison.id)

    def compare_with_standard(self, document_id: int) -> Comparison | None:
        """Compare a document against its owner's standard document.

        Returns None when the document is itself the standard. Reruns finish a
        pending comparison or return the completed one.

        Raises:
            DocumentNotReadyError: if the owner has no standard document.
            ComparisonFailedError: if the comparison ended in ``error`` or is
                still ``processing``.
        """
        document = self._documents.get(document_id)
        standard = self._documents.get_standard_document(document.user_id)
        if standard is None:
            raise DocumentNotReadyError(
                f"User {document.user_id} has no standard document to compare against"
            )
        if standard.id == document.id:
            Log.info(f"Document {document_id} is the standard; nothing to compare")
            return None

        comparison = self._comparisons.find_by_documents(standard.id, document.id)
        if comparison is None:
            comparison = self.request_comparison(document.user_id, standard.id, document.id)
        if comparison.status == ComparisonStatus.PENDING:
            comparison = self.run(comparison.id)
        if comparison.status == ComparisonStatus.ERROR:
            raise ComparisonFailedError(
                f"Comparison {comparison.id} failed: {comparison.error_message}"
            )
        if comparison.status != ComparisonStatus.COMPLETED:
            raise ComparisonFailedError(
                f"Comparison {comparison.id} is still {comparison.status.value}"
            )
        return comparison

    def get_comparison(self, user_id: str, comparison_id: int) -> Comparison:
        comparison = self._comparisons.find_by_id(comparison_id)
        if comparison is None or comparison.user_id != user_id:
            raise NotFoundError(f"Comparison {comparison_id} not found")
        return comparison

    def get_result(self, user_id: str, comparison_id: int) -> dict[str, Any]:
        """Load the stored result document of a completed comparison."""
        comparison = self.get_comparison(user_id, comparison_id)
        if comparison.comparison_result_url is None:
            raise NotFoundError(f"Comparison {comparison_id} has no stored result")
        return json.loads(self._storage.get(comparison.comparison_result_url))

    def list_comparisons(
        self, user_id: str, *, limit: int | None = None, offset: int = 0
    ) -> list[Comparison]:
        return self._comparisons.find_by_user(user_id, limit=limit, offset=offset)

    def _fail(self, comparison_id: int, exc: Exception, started: float) -> Comparison:
        return self._comparisons.transition_status(
            comparison_id,
            ComparisonStatus.ERROR,
            error_message=str(exc) or type(exc).__name__,
            processing_time_ms=_elapsed_ms(started),
        )

    def _ready_document(self, user_id: str, document_id: int) -> Document:
        document = self._documents.find_by_id(document_id)
        if document is None or document.user_id != user_id:
            raise NotFoundError(f"Document {document_id} not found")
        if document.status != DocumentStatus.PROCESSED or not document.extracted_text:
            raise DocumentNotReadyError(
                f"Document {document_id} is {document.status.value}; "
                "text extraction has not completed"
            )
        return document


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
