from unittest.mock import MagicMock, patch

import psycopg
import pytest

from doccompare.database.backends.relational import (
    RelationalBackend,
    compile_filter,
    compile_order,
    compile_where,
)
from doccompare.database.exceptions import (
    BackendUnavailableError,
    ConflictError,
    ValidationError,
)
from doccompare.database.filters import (
    Query,
    any_of,
    eq,
    in_,
    is_null,
    lte,
    ne,
    ordered,
)
from doccompare.database.models import QueueStatus
from doccompare.database.tables import DOCUMENTS, PROCESSING_QUEUE


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


def _executed_sql(mock_cursor: MagicMock) -> str:
    statement = mock_cursor.execute.call_args.args[0]
    return statement.as_string(None)


def _sql(composable) -> str:  # type: ignore[no-untyped-def]
    return composable.as_string(None)


class TestCompileFilter:
    def test_eq(self) -> None:
        clause, params = compile_filter(eq("status", QueueStatus.PENDING))
        assert _sql(clause) == '"status" = %s'
        assert params == ["pending"]

    def test_eq_none_is_null_test(self) -> None:
        clause, params = compile_filter(eq("scheduled_at", None))
        assert _sql(clause) == '"scheduled_at" IS NULL'
        assert params == []

    def test_ne_uses_is_distinct_from(self) -> None:
        clause, params = compile_filter(ne("status", "error"))
        assert _sql(clause) == '"status" IS DISTINCT FROM %s'
        assert params == ["error"]

    def test_in_uses_any(self) -> None:
        clause, params = compile_filter(in_("id", (1, 2)))
        assert _sql(clause) == '"id" = ANY(%s)'
        assert params == [[1, 2]]

    def test_empty_in_matches_nothing(self) -> None:
        clause, params = compile_filter(in_("id", ()))
        assert _sql(clause) == "FALSE"
        assert params == []

    def test_any_of(self) -> None:
        clause, params = compile_filter(
            any_of(is_null("scheduled_at"), lte("scheduled_at", "2025-01-01"))
        )
        assert _sql(clause) == '("scheduled_at" IS NULL OR "scheduled_at" <= %s)'
        assert params == ["2025-01-01"]


class TestCompileWhere:
    def test_no_conditions_is_true(self) -> None:
        clause, params = compile_where([])
        assert _sql(clause) == "TRUE"
        assert params == []

    def test_joins_with_and_and_keeps_param_order(self) -> None:
        clause, params = compile_where([eq("user_id", "u1"), eq("is_standard", True)])
        assert _sql(clause) == '"user_id" = %s AND "is_standard" = %s'
        assert params == ["u1", True]

    def test_order(self) -> None:
        assert _sql(compile_order(ordered("-priority", "id"))) == (
            ' ORDER BY "priority" DESC, "id" ASC'
        )


class TestStatements:
    @patch("doccompare.database.backends.relational.get_connection")
    def test_get_returns_row(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {"id": 1}

        row = RelationalBackend().get(DOCUMENTS, 1)

        assert row == {"id": 1}
        assert _executed_sql(mock_cursor) == 'SELECT * FROM "documents" WHERE id = %s'
        mock_conn.commit.assert_called_once()

    @patch("doccompare.database.backends.relational.get_connection")
    def test_insert_skips_id_and_casts_json(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {"id": 7}

        RelationalBackend().insert(DOCUMENTS, {"id": None, "filename": "a", "metadata": "{}"})

        assert _executed_sql(mock_cursor) == (
            'INSERT INTO "documents" ("filename", "metadata") '
            "VALUES (%s, %s::jsonb) RETURNING *"
        )
        assert mock_cursor.execute.call_args.args[1] == ["a", "{}"]

    @patch("doccompare.database.backends.relational.get_connection")
    def test_update_with_expected_state(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        result = RelationalBackend().update(
            PROCESSING_QUEUE, 3, {"status": "completed"}, [eq("status", "processing")]
        )

        assert result is None
        assert _executed_sql(mock_cursor) == (
            'UPDATE "processing_queue" SET "status" = %s '
            'WHERE id = %s AND "status" = %s RETURNING *'
        )
        assert mock_cursor.execute.call_args.args[1] == ["completed", 3, "processing"]

    @patch("doccompare.database.backends.relational.get_connection")
    def test_claim_uses_skip_locked(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {"id": 1}

        RelationalBackend().claim(
            PROCESSING_QUEUE,
            Query(conditions=(eq("status", "pending"),), order_by=ordered("-priority")),
            {"status": "processing"},
            increments={"attempts": 1},
        )

        statement = _executed_sql(mock_cursor)
        assert "FOR UPDATE SKIP LOCKED" in statement
        assert '"attempts" = COALESCE("attempts", 0) + %s' in statement
        assert 'ORDER BY "priority" DESC LIMIT 1' in statement
        assert mock_cursor.execute.call_args.args[1] == [1, "processing", "pending"]

    @patch("doccompare.database.backends.relational.get_connection")
    def test_delete_reports_rowcount(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 0

        assert RelationalBackend().delete(DOCUMENTS, 9) is False

    @patch("doccompare.database.backends.relational.get_connection")
    def test_custom_query_without_result_set(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.description = None

        assert RelationalBackend().execute_custom_query("VACUUM") == []


class TestAtomic:
    @patch("doccompare.database.backends.relational.get_connection")
    def test_statements_share_one_transaction(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {"id": 1}
        backend = RelationalBackend()

        with backend.atomic():
            backend.get(DOCUMENTS, 1)
            backend.get(DOCUMENTS, 2)

        mock_get_conn.assert_called_once()
        mock_conn.transaction.assert_called_once()
        mock_conn.commit.assert_not_called()

    @patch("doccompare.database.backends.relational.get_connection")
    def test_nested_atomic_reuses_connection(self, mock_get_conn: MagicMock) -> None:
        _mock_connection(mock_get_conn)
        backend = RelationalBackend()

        with backend.atomic():
            with backend.atomic():
                backend.get(DOCUMENTS, 1)

        mock_get_conn.assert_called_once()


class TestErrorTranslation:
    @pytest.mark.parametrize(
        ("raised", "expected"),
        [
            (psycopg.errors.UniqueViolation("duplicate key"), ConflictError),
            (psycopg.errors.ForeignKeyViolation("missing parent"), ValidationError),
            (psycopg.errors.CheckViolation("score out of range"), ValidationError),
            (psycopg.OperationalError("connection refused"), BackendUnavailableError),
        ],
    )
    @patch("doccompare.database.backends.relational.get_connection")
    def test_translates_driver_errors(
        self, mock_get_conn: MagicMock, raised: Exception, expected: type[Exception]
    ) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.execute.side_effect = raised

        with pytest.raises(expected):
            RelationalBackend().get(DOCUMENTS, 1)
