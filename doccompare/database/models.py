from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class DocumentStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PROCESSED = "processed"
    ERROR = "error"


class ComparisonStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class ExportType(str, Enum):
    PDF = "pdf"
    DOCX = "docx"


class TaskType(str, Enum):
    EXTRACT_TEXT = "extract_text"
    COMPARE = "compare"


class QueueStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Document:
    """Represents a row from the documents table."""

    id: int
    filename: str
    original_name: str
    file_hash: str
    s3_url: str
    file_size: int
    user_id: str
    status: DocumentStatus
    is_standard: bool = False
    extracted_text: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Comparison:
    """Represents a row from the comparisons table."""

    id: int
    document1_id: int
    document2_id: int
    user_id: str
    status: ComparisonStatus
    comparison_result_url: str | None = None
    comparison_summary: str | None = None
    similarity_score: float | None = None
    key_differences: list[Any] | None = None
    error_message: str | None = None
    processing_time_ms: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Export:
    """Represents a row from the exports table."""

    id: int
    comparison_id: int
    export_type: ExportType
    export_url: str
    user_id: str
    file_size: int = 0
    download_count: int = 0
    last_downloaded_at: datetime | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class QueueItem:
    """Represents a row from the processing_queue table."""

    id: int
    document_id: int
    task_type: TaskType
    priority: int
    status: QueueStatus
    attempts: int
    max_attempts: int
    last_error: str | None = None
    scheduled_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class DocumentCreate:
    filename: str
    original_name: str
    file_hash: str
    s3_url: str
    file_size: int
    user_id: str
    status: DocumentStatus = DocumentStatus.UPLOADED
    is_standard: bool = False
    extracted_text: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass
class ComparisonCreate:
    document1_id: int
    document2_id: int
    user_id: str
    comparison_result_url: str | None = None
    comparison_summary: str | None = None


@dataclass
class ExportCreate:
    comparison_id: int
    export_type: ExportType
    export_url: str
    user_id: str
    file_size: int = 0
    metadata: dict[str, Any] | None = None


@dataclass
class QueueItemCreate:
    document_id: int
    task_type: TaskType
    priority: int
    max_attempts: int
    scheduled_at: datetime | None = None
