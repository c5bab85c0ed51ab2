from datetime import datetime, timezone

from doccompare.database.exceptions import NotFoundError, ValidationError
from doccompare.database.models import ComparisonStatus, Export, ExportCreate, ExportType
from doccompare.database.repositories.comparison_repository import ComparisonRepository
from doccompare.database.repositories.document_repository import DocumentRepository
from doccompare.database.repositories.export_repository import ExportRepository
from doccompare.logging.logger import Log
from doccompare.services.exceptions import UnsupportedExportTypeError
from doccompare.services.pdf_report import render_comparison_pdf
from doccompare.storage.base import BaseBlobStorage


class ExportService:
    """Renders completed comparisons to files and tracks their downloads."""

    def __init__(
        self,
        documents: DocumentRepository,
        comparisons: ComparisonRepository,
        exports: ExportRepository,
        storage: BaseBlobStorage,
    ) -> None:
        self._documents = documents
        self._comparisons = comparisons
        self._exports = exports
        self._storage = storage

    def export(
        self,
        user_id: str,
        comparison_id: int,
        export_type: ExportType = ExportType.PDF,
    ) -> Export:
        """Render and store a completed comparison, then record the export.

        Raises:
            UnsupportedExportTypeError: for formats without a renderer (docx).
            NotFoundError: if the comparison is missing or not the user's.
            ValidationError: if the comparison is not completed.
        """
        export_type = ExportType(export_type)
        if export_type != ExportType.PDF:
            raise UnsupportedExportTypeError(
                f"Export type '{export_type.value}' cannot be rendered"
            )
        comparison = self._comparisons.find_by_id(comparison_id)
        if comparison is None or comparison.user_id != user_id:
            raise NotFoundError(f"Comparison {comparison_id} not found")
        if comparison.status != ComparisonStatus.COMPLETED:
            raise ValidationError(
                f"Comparison {comparison_id} is {comparison.status.value}; "
                "only completed comparisons can be exported"
            )

        document1 = self._documents.get(comparison.document1_id)
        document2 = self._documents.get(comparison.document2_id)
        pdf = render_comparison_pdf(comparison, document1, document2)
        url = self._storage.put(pdf, f"comparison-{comparison_id}.pdf")
        export = self._exports.create(
            ExportCreate(
                comparison_id=comparison_id,
                export_type=export_type,
                export_url=url,
                user_id=user_id,
                file_size=len(pdf),
                metadata={"generated_at": datetime.now(timezone.utc).isoformat()},
            )
        )
        Log.info(f"Exported comparison {comparison_id} as {export_type.value} (export {export.id})")
        return export

    def download(self, user_id: str, export_id: int) -> tuple[Export, bytes]:
        """Return the export's bytes and count the download."""
        export = self._exports.find_by_id(export_id)
        if export is None or export.user_id != user_id:
            raise NotFoundError(f"Export {export_id} not found")
        data = self._storage.get(export.export_url)
        return self._exports.record_download(export_id), data

    def list_exports(self, user_id: str) -> list[Export]:
        return self._exports.find_by_user(user_id)
