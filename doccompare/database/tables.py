from dataclasses import dataclass, field


@dataclass(frozen=True)
class PartialUnique:
    """Uniqueness of ``columns`` among rows where ``where_column`` is in ``where_values``."""

    columns: tuple[str, ...]
    where_column: str
    where_values: tuple[object, ...]


@dataclass(frozen=True)
class TableSpec:
    """Shape and constraints of one persisted table."""

    name: str
    columns: tuple[str, ...]
    json_columns: tuple[str, ...] = ()
    unique: tuple[tuple[str, ...], ...] = ()
    partial_unique: tuple[PartialUnique, ...] = ()
    # column -> referenced table; deletes cascade along these edges
    foreign_keys: dict[str, str] = field(default_factory=dict)


DOCUMENTS = TableSpec(
    name="documents",
    columns=(
        "id",
        "filename",
        "original_name",
        "file_hash",
        "s3_url",
        "file_size",
        "user_id",
        "status",
        "is_standard",
        "extracted_text",
        "metadata",
        "created_at",
        "updated_at",
    ),
    json_columns=("metadata",),
    unique=(("file_hash",),),
    partial_unique=(PartialUnique(("user_id",), "is_standard", (True,)),),
)

COMPARISONS = TableSpec(
    name="comparisons",
    columns=(
        "id",
        "document1_id",
        "document2_id",
        "comparison_result_url",
        "comparison_summary",
        "similarity_score",
        "key_differences",
        "user_id",
        "status",
        "error_message",
        "processing_time_ms",
        "created_at",
        "updated_at",
    ),
    json_columns=("key_differences",),
    unique=(("document1_id", "document2_id"),),
    foreign_keys={"document1_id": "documents", "document2_id": "documents"},
)

EXPORTS = TableSpec(
    name="exports",
    columns=(
        "id",
        "comparison_id",
        "export_type",
        "export_url",
        "file_size",
        "user_id",
        "download_count",
        "last_downloaded_at",
        "metadata",
        "created_at",
        "updated_at",
    ),
    json_columns=("metadata",),
    foreign_keys={"comparison_id": "comparisons"},
)

PROCESSING_QUEUE = TableSpec(
    name="processing_queue",
    columns=(
        "id",
        "document_id",
        "task_type",
        "priority",
        "status",
        "attempts",
        "max_attempts",
        "last_error",
        "scheduled_at",
        "started_at",
        "completed_at",
        "result",
        "created_at",
        "updated_at",
    ),
    json_columns=("result",),
    partial_unique=(
        PartialUnique(("document_id", "task_type"), "status", ("pending", "processing")),
    ),
    foreign_keys={"document_id": "documents"},
)

ALL_TABLES: tuple[TableSpec, ...] = (DOCUMENTS, COMPARISONS, EXPORTS, PROCESSING_QUEUE)
