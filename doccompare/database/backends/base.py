from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from contextlib import AbstractContextManager
from typing import Any

from doccompare.database.filters import Filter, Query
from doccompare.database.tables import TableSpec

Row = dict[str, Any]


class Backend(ABC):
    """Contract for the storage engines a repository can run on.

    Rows are flat dicts in codec-encoded form. Every method is atomic on its
    own; ``atomic()`` groups several calls into one unit.
    """

    name: str = "backend"

    @abstractmethod
    def insert(self, table: TableSpec, row: Mapping[str, Any]) -> Row:
        """Insert a row, assigning the next id. Returns the stored row."""

    @abstractmethod
    def get(self, table: TableSpec, row_id: int) -> Row | None:
        """Return the row with this id, or None."""

    @abstractmethod
    def select(self, table: TableSpec, query: Query) -> list[Row]:
        """Return rows matching the query, ordered and paged."""

    @abstractmethod
    def count(self, table: TableSpec, conditions: Sequence[Filter] = ()) -> int:
        """Count rows matching all conditions."""

    @abstractmethod
    def update(
        self,
        table: TableSpec,
        row_id: int,
        changes: Mapping[str, Any],
        expected: Sequence[Filter] = (),
    ) -> Row | None:
        """Apply changes to one row if it exists and matches ``expected``.

        Returns the updated row, or None when the row is missing or the
        expectation did not hold (compare-and-set).
        """

    @abstractmethod
    def update_where(
        self,
        table: TableSpec,
        conditions: Sequence[Filter],
        changes: Mapping[str, Any],
    ) -> int:
        """Apply changes to every matching row. Returns the affected count."""

    @abstractmethod
    def increment(
        self,
        table: TableSpec,
        row_id: int,
        column: str,
        amount: int = 1,
        changes: Mapping[str, Any] | None = None,
    ) -> Row | None:
        """Add ``amount`` to an integer column in place."""

    @abstractmethod
    def delete(self, table: TableSpec, row_id: int) -> bool:
        """Delete a row and cascade to rows referencing it."""

    @abstractmethod
    def claim(
        self,
        table: TableSpec,
        query: Query,
        changes: Mapping[str, Any],
        increments: Mapping[str, int] | None = None,
    ) -> Row | None:
        """Pick the first row matching the query and update it in one step.

        No two concurrent callers may receive the same row.
        """

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Run the enclosed calls as one unit of work."""

    @abstractmethod
    def execute_custom_query(
        self, query: str, params: Sequence[Any] = ()
    ) -> list[Row]:
        """Run raw SQL. Only the relational backend supports this."""

    def close(self) -> None:
        """Release backend resources."""

