"""PostgreSQL backend built on psycopg 3 and the shared connection pool."""

import threading
from collections.abc import Generator, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import PoolTimeout

from doccompare.database.backends.base import Backend, Row
from doccompare.database.connection import close_pool, get_connection
from doccompare.database.exceptions import (
    BackendUnavailableError,
    ConflictError,
    ValidationError,
)
from doccompare.database.filters import AnyOf, Condition, Filter, OrderBy, Query
from doccompare.database.tables import TableSpec

_COMPARATORS = {"lt": "<", "lte": "<=", "gt": ">", "gte": ">="}


def compile_filter(item: Filter) -> tuple[sql.Composable, list[Any]]:
    """Compile a filter to SQL with the same semantics ``matches`` has in memory."""
    if isinstance(item, AnyOf):
        if not item.conditions:
            return sql.SQL("FALSE"), []
        parts: list[sql.Composable] = []
        params: list[Any] = []
        for condition in item.conditions:
            part, part_params = compile_filter(condition)
            parts.append(part)
            params.extend(part_params)
        return sql.SQL("({})").format(sql.SQL(" OR ").join(parts)), params
    return _compile_condition(item)


def _compile_condition(condition: Condition) -> tuple[sql.Composable, list[Any]]:
    column = sql.Identifier(condition.column)
    if condition.op == "is_null":
        keyword = "IS NULL" if condition.value else "IS NOT NULL"
        return sql.SQL("{} " + keyword).format(column), []
    if condition.op == "eq":
        if condition.value is None:
            return sql.SQL("{} IS NULL").format(column), []
        return sql.SQL("{} = %s").format(column), [condition.value]
    if condition.op == "ne":
        return sql.SQL("{} IS DISTINCT FROM %s").format(column), [condition.value]
    if condition.op == "in":
        if not condition.value:
            return sql.SQL("FALSE"), []
        return sql.SQL("{} = ANY(%s)").format(column), [list(condition.value)]
    operator = _COMPARATORS[condition.op]
    return sql.SQL("{} " + operator + " %s").format(column), [condition.value]


def compile_where(conditions: Sequence[Filter]) -> tuple[sql.Composable, list[Any]]:
    if not conditions:
        return sql.SQL("TRUE"), []
    parts: list[sql.Composable] = []
    params: list[Any] = []
    for condition in conditions:
        part, part_params = compile_filter(condition)
        parts.append(part)
        params.extend(part_params)
    return sql.SQL(" AND ").join(parts), params


def compile_order(order_by: Sequence[OrderBy]) -> sql.Composable:
    if not order_by:
        return sql.SQL("")
    return sql.SQL(" ORDER BY ") + sql.SQL(", ").join(
        sql.SQL("{} DESC" if order.descending else "{} ASC").format(
            sql.Identifier(order.column)
        )
        for order in order_by
    )


def _placeholder(table: TableSpec, column: str) -> sql.Composable:
    if column in table.json_columns:
        return sql.SQL("%s::jsonb")
    return sql.Placeholder()


def compile_assignments(
    table: TableSpec, changes: Mapping[str, Any]
) -> tuple[list[sql.Composable], list[Any]]:
    assignments = [
        sql.SQL("{} = {}").format(sql.Identifier(column), _placeholder(table, column))
        for column in changes
    ]
    return assignments, list(changes.values())


class RelationalBackend(Backend):
    """Backend over PostgreSQL.

    Statements outside ``atomic()`` run on their own pooled connection and
    commit immediately. Inside ``atomic()`` every statement on the current
    thread shares one transaction.
    """

    name = "relational"

    def __init__(self) -> None:
        self._local = threading.local()

    def insert(self, table: TableSpec, row: Mapping[str, Any]) -> Row:
        values = {column: value for column, value in row.items() if column != "id"}
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            sql.Identifier(table.name),
            sql.SQL(", ").join(sql.Identifier(column) for column in values),
            sql.SQL(", ").join(_placeholder(table, column) for column in values),
        )
        with self._cursor() as cur:
            cur.execute(query, list(values.values()))
            created = cur.fetchone()
        if created is None:
            raise ValidationError(f"Insert into {table.name} returned no row")
        return created

    def get(self, table: TableSpec, row_id: int) -> Row | None:
        query = sql.SQL("SELECT * FROM {} WHERE id = %s").format(sql.Identifier(table.name))
        with self._cursor() as cur:
            cur.execute(query, (row_id,))
            return cur.fetchone()

    def select(self, table: TableSpec, query: Query) -> list[Row]:
        where, params = compile_where(query.conditions)
        statement = sql.SQL("SELECT * FROM {} WHERE {}").format(
            sql.Identifier(table.name), where
        ) + compile_order(query.order_by)
        if query.limit is not None:
            statement += sql.SQL(" LIMIT %s")
            params.append(query.limit)
        if query.offset:
            statement += sql.SQL(" OFFSET %s")
            params.append(query.offset)
        with self._cursor() as cur:
            cur.execute(statement, params)
            return cur.fetchall()

    def count(self, table: TableSpec, conditions: Sequence[Filter] = ()) -> int:
        where, params = compile_where(conditions)
        statement = sql.SQL("SELECT COUNT(*) AS total FROM {} WHERE {}").format(
            sql.Identifier(table.name), where
        )
        with self._cursor() as cur:
            cur.execute(statement, params)
            row = cur.fetchone()
        return int(row["total"]) if row is not None else 0

    def update(
        self,
        table: TableSpec,
        row_id: int,
        changes: Mapping[str, Any],
        expected: Sequence[Filter] = (),
    ) -> Row | None:
        assignments, params = compile_assignments(table, changes)
        where, where_params = compile_where(expected)
        statement = sql.SQL("UPDATE {} SET {} WHERE id = %s AND {} RETURNING *").format(
            sql.Identifier(table.name), sql.SQL(", ").join(assignments), where
        )
        with self._cursor() as cur:
            cur.execute(statement, [*params, row_id, *where_params])
            return cur.fetchone()

    def update_where(
        self,
        table: TableSpec,
        conditions: Sequence[Filter],
        changes: Mapping[str, Any],
    ) -> int:
        assignments, params = compile_assignments(table, changes)
        where, where_params = compile_where(conditions)
        statement = sql.SQL("UPDATE {} SET {} WHERE {}").format(
            sql.Identifier(table.name), sql.SQL(", ").join(assignments), where
        )
        with self._cursor() as cur:
            cur.execute(statement, [*params, *where_params])
            return cur.rowcount

    def increment(
        self,
        table: TableSpec,
        row_id: int,
        column: str,
        amount: int = 1,
        changes: Mapping[str, Any] | None = None,
    ) -> Row | None:
        assignments, params = compile_assignments(table, changes or {})
        assignments.insert(
            0, sql.SQL("{0} = COALESCE({0}, 0) + %s").format(sql.Identifier(column))
        )
        statement = sql.SQL("UPDATE {} SET {} WHERE id = %s RETURNING *").format(
            sql.Identifier(table.name), sql.SQL(", ").join(assignments)
        )
        with self._cursor() as cur:
            cur.execute(statement, [amount, *params, row_id])
            return cur.fetchone()

    def delete(self, table: TableSpec, row_id: int) -> bool:
        statement = sql.SQL("DELETE FROM {} WHERE id = %s").format(sql.Identifier(table.name))
        with self._cursor() as cur:
            cur.execute(statement, (row_id,))
            return cur.rowcount > 0

    def claim(
        self,
        table: TableSpec,
        query: Query,
        changes: Mapping[str, Any],
        increments: Mapping[str, int] | None = None,
    ) -> Row | None:
        """Single UPDATE with a SKIP LOCKED subselect, so claims never overlap."""
        increment_parts = [
            sql.SQL("{0} = COALESCE({0}, 0) + %s").format(sql.Identifier(column))
            for column in (increments or {})
        ]
        assignments, params = compile_assignments(table, changes)
        where, where_params = compile_where(query.conditions)
        statement = sql.SQL(
            "UPDATE {table} SET {assignments} WHERE id = ("
            "SELECT id FROM {table} WHERE {where}{order} LIMIT 1 FOR UPDATE SKIP LOCKED"
            ") RETURNING *"
        ).format(
            table=sql.Identifier(table.name),
            assignments=sql.SQL(", ").join([*increment_parts, *assignments]),
            where=where,
            order=compile_order(query.order_by),
        )
        with self._cursor() as cur:
            cur.execute(
                statement, [*(increments or {}).values(), *params, *where_params]
            )
            return cur.fetchone()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if getattr(self._local, "conn", None) is not None:
            yield
            return
        with self._translate_errors(), get_connection() as conn, conn.transaction():
            self._local.conn = conn
            try:
                yield
            finally:
                self._local.conn = None

    def execute_custom_query(
        self, query: str, params: Sequence[Any] = ()
    ) -> list[Row]:
        with self._cursor() as cur:
            cur.execute(query, list(params))
            if cur.description is None:
                return []
            return cur.fetchall()

    def close(self) -> None:
        close_pool()

    @contextmanager
    def _cursor(self) -> Generator[psycopg.Cursor[Row], None, None]:
        active = getattr(self._local, "conn", None)
        with self._translate_errors():
            if active is not None:
                with active.cursor(row_factory=dict_row) as cur:
                    yield cur
                return
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    yield cur
                conn.commit()

    @staticmethod
    @contextmanager
    def _translate_errors() -> Iterator[None]:
        try:
            yield
        except psycopg.errors.UniqueViolation as exc:
            raise ConflictError(f"Unique constraint violated: {exc}") from exc
        except (
            psycopg.errors.ForeignKeyViolation,
            psycopg.errors.NotNullViolation,
            psycopg.errors.CheckViolation,
            psycopg.errors.InvalidTextRepresentation,
        ) as exc:
            raise ValidationError(f"Constraint violated: {exc}") from exc
        except (psycopg.OperationalError, PoolTimeout) as exc:
            raise BackendUnavailableError(f"Database unavailable: {exc}") from exc
