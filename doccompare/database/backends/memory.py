"""In-process fallback backend.

Valid for single-instance deployments and tests only: nothing is durable and
nothing is shared across processes. Threads within one process are safe,
every read and write happens under the store's lock.
"""

import threading
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from doccompare.database.backends.base import Backend, Row
from doccompare.database.exceptions import (
    ConflictError,
    UnsupportedQueryError,
    ValidationError,
)
from doccompare.database.filters import Filter, Query
from doccompare.database.tables import ALL_TABLES, TableSpec


class MemoryStore:
    """Tables, id counters and the lock guarding both."""

    def __init__(self, tables: Sequence[TableSpec] = ALL_TABLES) -> None:
        self.lock = threading.RLock()
        self.specs: dict[str, TableSpec] = {table.name: table for table in tables}
        self.rows: dict[str, dict[int, Row]] = {name: {} for name in self.specs}
        self._next_ids: dict[str, int] = {name: 1 for name in self.specs}

    def next_id(self, table_name: str) -> int:
        with self.lock:
            row_id = self._next_ids[table_name]
            self._next_ids[table_name] = row_id + 1
            return row_id

    def clear(self) -> None:
        with self.lock:
            for name in self.specs:
                self.rows[name] = {}
                self._next_ids[name] = 1


def sort_rows(rows: list[Row], query: Query) -> list[Row]:
    """Order and page rows the way ORDER BY/LIMIT/OFFSET would.

    NULLs sort last ascending and first descending, as in PostgreSQL.
    """
    ordered = list(rows)
    for order in reversed(query.order_by):
        present = [r for r in ordered if r.get(order.column) is not None]
        missing = [r for r in ordered if r.get(order.column) is None]
        present.sort(key=lambda r: r[order.column], reverse=order.descending)
        ordered = missing + present if order.descending else present + missing
    end = None if query.limit is None else query.offset + query.limit
    return ordered[query.offset:end]


class MemoryBackend(Backend):
    """Backend over a ``MemoryStore``, enforcing the SQL schema's constraints."""

    name = "memory"

    def __init__(self, store: MemoryStore | None = None) -> None:
        self._store = store if store is not None else MemoryStore()

    @property
    def store(self) -> MemoryStore:
        return self._store

    def insert(self, table: TableSpec, row: Mapping[str, Any]) -> Row:
        with self._store.lock:
            stored: Row = {column: None for column in table.columns}
            stored.update(row)
            self._check_foreign_keys(table, stored)
            stored["id"] = None
            self._check_unique(table, stored)
            stored["id"] = self._store.next_id(table.name)
            self._table(table)[stored["id"]] = stored
            return dict(stored)

    def get(self, table: TableSpec, row_id: int) -> Row | None:
        with self._store.lock:
            row = self._table(table).get(row_id)
            return dict(row) if row is not None else None

    def select(self, table: TableSpec, query: Query) -> list[Row]:
        with self._store.lock:
            matching = [r for r in self._table(table).values() if query.matches(r)]
            return [dict(r) for r in sort_rows(matching, query)]

    def count(self, table: TableSpec, conditions: Sequence[Filter] = ()) -> int:
        query = Query(conditions=tuple(conditions))
        with self._store.lock:
            return sum(1 for r in self._table(table).values() if query.matches(r))

    def update(
        self,
        table: TableSpec,
        row_id: int,
        changes: Mapping[str, Any],
        expected: Sequence[Filter] = (),
    ) -> Row | None:
        with self._store.lock:
            current = self._table(table).get(row_id)
            if current is None:
                return None
            if not all(condition.matches(current) for condition in expected):
                return None
            return self._replace(table, {**current, **changes})

    def update_where(
        self,
        table: TableSpec,
        conditions: Sequence[Filter],
        changes: Mapping[str, Any],
    ) -> int:
        query = Query(conditions=tuple(conditions))
        with self._store.lock:
            matching = [r for r in self._table(table).values() if query.matches(r)]
            for current in matching:
                self._replace(table, {**current, **changes})
            return len(matching)

    def increment(
        self,
        table: TableSpec,
        row_id: int,
        column: str,
        amount: int = 1,
        changes: Mapping[str, Any] | None = None,
    ) -> Row | None:
        with self._store.lock:
            current = self._table(table).get(row_id)
            if current is None:
                return None
            updated = {**current, **(changes or {})}
            updated[column] = (current.get(column) or 0) + amount
            return self._replace(table, updated)

    def delete(self, table: TableSpec, row_id: int) -> bool:
        with self._store.lock:
            if self._table(table).pop(row_id, None) is None:
                return False
            for child in self._store.specs.values():
                columns = [c for c, ref in child.foreign_keys.items() if ref == table.name]
                if not columns:
                    continue
                dependents = [
                    r["id"]
                    for r in self._table(child).values()
                    if any(r.get(column) == row_id for column in columns)
                ]
                for dependent_id in dependents:
                    self.delete(child, dependent_id)
            return True

    def claim(
        self,
        table: TableSpec,
        query: Query,
        changes: Mapping[str, Any],
        increments: Mapping[str, int] | None = None,
    ) -> Row | None:
        with self._store.lock:
            matching = [r for r in self._table(table).values() if query.matches(r)]
            candidates = sort_rows(matching, Query(order_by=query.order_by, limit=1))
            if not candidates:
                return None
            updated = {**candidates[0], **changes}
            for column, amount in (increments or {}).items():
                updated[column] = (candidates[0].get(column) or 0) + amount
            return self._replace(table, updated)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Hold the store lock; restore every table if the block raises.

        Id counters are not rolled back, matching database sequences.
        """
        with self._store.lock:
            snapshot = {name: dict(rows) for name, rows in self._store.rows.items()}
            try:
                yield
            except BaseException:
                self._store.rows.update(snapshot)
                raise

    def execute_custom_query(
        self, query: str, params: Sequence[Any] = ()
    ) -> list[Row]:
        raise UnsupportedQueryError(
            "Custom SQL cannot run on the in-memory backend; use a filter query"
        )

    def _table(self, table: TableSpec) -> dict[int, Row]:
        return self._store.rows[table.name]

    def _replace(self, table: TableSpec, row: Row) -> Row:
        # Rows are replaced, never mutated, so atomic() snapshots stay valid.
        self._check_foreign_keys(table, row)
        self._check_unique(table, row)
        self._table(table)[row["id"]] = row
        return dict(row)

    def _check_unique(self, table: TableSpec, row: Row) -> None:
        others = [r for r in self._table(table).values() if r["id"] != row["id"]]
        for columns in table.unique:
            key = tuple(row.get(c) for c in columns)
            if any(value is None for value in key):
                continue
            if any(tuple(o.get(c) for c in columns) == key for o in others):
                raise ConflictError(
                    f"Duplicate {table.name} row for ({', '.join(columns)})"
                )
        for rule in table.partial_unique:
            if row.get(rule.where_column) not in rule.where_values:
                continue
            key = tuple(row.get(c) for c in rule.columns)
            for other in others:
                if other.get(rule.where_column) not in rule.where_values:
                    continue
                if tuple(other.get(c) for c in rule.columns) == key:
                    raise ConflictError(
                        f"Duplicate {table.name} row for ({', '.join(rule.columns)}) "
                        f"where {rule.where_column} in {list(rule.where_values)}"
                    )

    def _check_foreign_keys(self, table: TableSpec, row: Row) -> None:
        for column, referenced in table.foreign_keys.items():
            value = row.get(column)
            if value is not None and value not in self._store.rows[referenced]:
                raise ValidationError(
                    f"{table.name}.{column} references missing {referenced} row {value}"
                )
