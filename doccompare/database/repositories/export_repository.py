from typing import Any

from doccompare.database.codec import EXPORT_CODEC
from doccompare.database.exceptions import NotFoundError, ValidationError
from doccompare.database.filters import eq
from doccompare.database.models import ComparisonStatus, Export, ExportCreate, ExportType
from doccompare.database.repositories.base_repository import (
    Repository,
    require_id,
    require_text,
)
from doccompare.database.tables import COMPARISONS, EXPORTS


class ExportRepository(Repository[Export, ExportCreate]):
    """Database operations for the exports table."""

    table = EXPORTS
    codec = EXPORT_CODEC
    entity_name = "Export"
    guarded_fields = frozenset({"download_count", "comparison_id", "user_id"})

    def create(self, data: ExportCreate) -> Export:
        """Record an export of a completed comparison.

        Raises:
            NotFoundError: if the comparison is missing or owned by someone else.
            ValidationError: if the comparison is not completed or input is malformed.
        """
        with self._backend.atomic():
            row = self._backend.get(COMPARISONS, require_id(data.comparison_id, "comparison_id"))
            if row is None or row["user_id"] != data.user_id:
                raise NotFoundError(f"Comparison {data.comparison_id} not found")
            if row["status"] != ComparisonStatus.COMPLETED.value:
                raise ValidationError(
                    f"Comparison {data.comparison_id} is {row['status']}; "
                    "only completed comparisons can be exported"
                )
            return super().create(data)

    def record_download(self, export_id: int) -> Export:
        """Increment download_count in place and stamp last_downloaded_at."""
        row = self._backend.increment(
            self.table,
            export_id,
            "download_count",
            1,
            changes={"last_downloaded_at": self._clock(), "updated_at": self._clock()},
        )
        if row is None:
            raise NotFoundError(f"Export {export_id} not found")
        return self._decode(row)

    def find_by_comparison(self, comparison_id: int) -> list[Export]:
        return self.find_where(eq("comparison_id", comparison_id))

    def find_by_user(
        self, user_id: str, *, limit: int | None = None, offset: int = 0
    ) -> list[Export]:
        return self.find_where(
            eq("user_id", user_id), order_by=("-created_at", "-id"), limit=limit, offset=offset
        )

    def _prepare(self, data: ExportCreate) -> dict[str, Any]:
        values = super()._prepare(data)
        require_text(values["export_url"], "export_url")
        require_text(values["user_id"], "user_id")
        try:
            values["export_type"] = ExportType(values["export_type"])
        except ValueError as exc:
            raise ValidationError(
                f"'export_type' must be one of {[t.value for t in ExportType]}"
            ) from exc
        size = values["file_size"]
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ValidationError("'file_size' must be a non-negative integer")
        values["download_count"] = 0
        return values
