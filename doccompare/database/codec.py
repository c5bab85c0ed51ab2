"""Conversion between flat persisted rows and typed domain entities."""

import json
from collections.abc import Mapping
from dataclasses import fields
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, TypeVar

from doccompare.database.models import (
    Comparison,
    ComparisonStatus,
    Document,
    DocumentStatus,
    Export,
    ExportType,
    QueueItem,
    QueueStatus,
    TaskType,
)

E = TypeVar("E")


class RowCodec(Generic[E]):
    """Decodes rows into entity dataclasses and encodes values for storage."""

    def __init__(
        self,
        entity_type: type[E],
        *,
        enum_fields: Mapping[str, type[Enum]] | None = None,
        json_fields: tuple[str, ...] = (),
        float_fields: tuple[str, ...] = (),
        int_fields: tuple[str, ...] = (),
    ) -> None:
        self._entity_type = entity_type
        self._field_names = tuple(f.name for f in fields(entity_type))  # type: ignore[arg-type]
        self._enum_fields = dict(enum_fields or {})
        self._json_fields = json_fields
        self._float_fields = float_fields
        self._int_fields = int_fields

    @property
    def field_names(self) -> tuple[str, ...]:
        return self._field_names

    def decode(self, row: Mapping[str, Any]) -> E:
        values = {name: row.get(name) for name in self._field_names if name in row}
        for name, enum_type in self._enum_fields.items():
            if values.get(name) is not None:
                values[name] = enum_type(values[name])
        for name in self._json_fields:
            raw = values.get(name)
            if isinstance(raw, (str, bytes)):
                values[name] = json.loads(raw)
        for name in self._float_fields:
            if values.get(name) is not None:
                values[name] = float(values[name])
        for name in self._int_fields:
            if values.get(name) is not None:
                values[name] = int(values[name])
        return self._entity_type(**values)

    def encode(self, values: Mapping[str, Any]) -> dict[str, Any]:
        row: dict[str, Any] = {}
        for name, value in values.items():
            if isinstance(value, Enum):
                value = value.value
            elif name in self._json_fields and value is not None:
                value = json.dumps(value)
            elif isinstance(value, Decimal):
                value = float(value)
            row[name] = value
        return row


DOCUMENT_CODEC: RowCodec[Document] = RowCodec(
    Document,
    enum_fields={"status": DocumentStatus},
    json_fields=("metadata",),
    int_fields=("file_size",),
)

COMPARISON_CODEC: RowCodec[Comparison] = RowCodec(
    Comparison,
    enum_fields={"status": ComparisonStatus},
    json_fields=("key_differences",),
    float_fields=("similarity_score",),
)

EXPORT_CODEC: RowCodec[Export] = RowCodec(
    Export,
    enum_fields={"export_type": ExportType},
    json_fields=("metadata",),
    int_fields=("file_size", "download_count"),
)

QUEUE_ITEM_CODEC: RowCodec[QueueItem] = RowCodec(
    QueueItem,
    enum_fields={"task_type": TaskType, "status": QueueStatus},
    json_fields=("result",),
)
