from collections.abc import Callable, Mapping, Sequence
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar

from doccompare.database.backends.base import Backend, Row
from doccompare.database.codec import RowCodec
from doccompare.database.exceptions import NotFoundError, ValidationError
from doccompare.database.filters import (
    Filter,
    OrderBy,
    Query,
    from_mapping,
    ordered,
    referenced_columns,
)
from doccompare.database.tables import TableSpec

E = TypeVar("E")
C = TypeVar("C")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Repository(Generic[E, C]):
    """Backend-agnostic CRUD over one table.

    Subclasses set ``table`` and ``codec`` and may override ``_prepare`` to
    validate and default creation input.
    """

    table: ClassVar[TableSpec]
    codec: ClassVar[RowCodec[Any]]
    entity_name: ClassVar[str] = "Record"
    # Fields that only domain operations may change.
    guarded_fields: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, backend: Backend, clock: Clock = utc_now) -> None:
        self._backend = backend
        self._clock = clock

    @property
    def backend(self) -> Backend:
        return self._backend

    def create(self, data: C) -> E:
        values = self._prepare(data)
        now = self._clock()
        values.setdefault("created_at", now)
        values.setdefault("updated_at", now)
        row = self._backend.insert(self.table, self.codec.encode(values))
        return self._decode(row)

    def find_by_id(self, record_id: int) -> E | None:
        row = self._backend.get(self.table, record_id)
        return self._decode(row) if row is not None else None

    def get(self, record_id: int) -> E:
        """Like find_by_id, but a missing record raises NotFoundError."""
        entity = self.find_by_id(record_id)
        if entity is None:
            raise NotFoundError(f"{self.entity_name} {record_id} not found")
        return entity

    def update(self, record_id: int, changes: Mapping[str, Any]) -> E:
        """Merge changes into a record and refresh ``updated_at``.

        Raises:
            NotFoundError: if no record with this ID exists.
            ValidationError: for unknown, immutable or state-machine fields.
        """
        self._check_updatable(changes)
        return self._write(record_id, dict(changes))

    def delete(self, record_id: int) -> bool:
        return self._backend.delete(self.table, record_id)

    def find_by_field(self, name: str, value: Any) -> E | None:
        rows = self.find_by_fields({name: value}, limit=1)
        return rows[0] if rows else None

    def find_by_fields(
        self,
        fields: Mapping[str, Any],
        *,
        order_by: Sequence[str] = ("id",),
        limit: int | None = None,
        offset: int = 0,
    ) -> list[E]:
        return self.find_where(
            *from_mapping(fields), order_by=order_by, limit=limit, offset=offset
        )

    def find_where(
        self,
        *conditions: Filter,
        order_by: Sequence[str] = ("id",),
        limit: int | None = None,
        offset: int = 0,
    ) -> list[E]:
        self._check_columns(referenced_columns(conditions))
        query = Query(
            conditions=conditions,
            order_by=self._ordering(order_by),
            limit=limit,
            offset=offset,
        )
        return [self._decode(row) for row in self._backend.select(self.table, query)]

    def find_all(self, *, limit: int | None = None, offset: int = 0) -> list[E]:
        return self.find_where(limit=limit, offset=offset)

    def count(self, *conditions: Filter) -> int:
        self._check_columns(referenced_columns(conditions))
        return self._backend.count(self.table, conditions)

    def execute_custom_query(
        self, query: str, params: Sequence[Any] = ()
    ) -> list[Row]:
        """Raw SQL escape hatch; raises UnsupportedQueryError on the memory backend."""
        return self._backend.execute_custom_query(query, params)

    def _prepare(self, data: C) -> dict[str, Any]:
        return asdict(data)  # type: ignore[call-overload]

    def _write(
        self,
        record_id: int,
        changes: dict[str, Any],
        expected: Sequence[Filter] = (),
    ) -> E:
        changes["updated_at"] = self._clock()
        row = self._backend.update(
            self.table, record_id, self.codec.encode(changes), expected
        )
        if row is None:
            raise NotFoundError(f"{self.entity_name} {record_id} not found")
        return self._decode(row)

    def _decode(self, row: Row) -> E:
        return self.codec.decode(row)

    def _ordering(self, columns: Sequence[str]) -> tuple[OrderBy, ...]:
        orders = ordered(*columns)
        self._check_columns({order.column for order in orders})
        return orders

    def _check_columns(self, columns: set[str]) -> None:
        unknown = columns - set(self.table.columns)
        if unknown:
            raise ValidationError(
                f"Unknown {self.table.name} column(s): {', '.join(sorted(unknown))}"
            )

    def _check_updatable(self, changes: Mapping[str, Any]) -> None:
        self._check_columns(set(changes))
        immutable = {"id", "created_at", "updated_at"} & set(changes)
        if immutable:
            raise ValidationError(f"Cannot update {', '.join(sorted(immutable))}")
        guarded = self.guarded_fields & set(changes)
        if guarded:
            raise ValidationError(
                f"{self.entity_name} field(s) {', '.join(sorted(guarded))} "
                "change only through their dedicated operations"
            )


def require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field_name}' must be a non-empty string")
    return value


def require_id(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"'{field_name}' must be a positive integer id")
    return value
