"""Declarative row filters shared by every storage backend.

A filter is plain data. ``MemoryBackend`` evaluates it with ``matches`` and
``RelationalBackend`` compiles the same description into parameterised SQL,
so a repository method describes its lookup once.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

_OPERATORS = frozenset({"eq", "ne", "in", "lt", "lte", "gt", "gte", "is_null"})


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class Condition:
    """A single ``column <op> value`` test."""

    column: str
    op: str
    value: Any = None

    def __post_init__(self) -> None:
        if self.op not in _OPERATORS:
            raise ValueError(f"Unknown filter operator '{self.op}'")
        if self.op == "in":
            object.__setattr__(self, "value", tuple(_plain(v) for v in self.value))
        else:
            object.__setattr__(self, "value", _plain(self.value))

    def matches(self, row: Mapping[str, Any]) -> bool:
        actual = row.get(self.column)
        if self.op == "is_null":
            return (actual is None) is bool(self.value)
        if self.op == "eq":
            return actual == self.value
        if self.op == "ne":
            return actual != self.value
        if self.op == "in":
            return actual in self.value
        # Ordering comparisons follow SQL: NULL never compares.
        if actual is None or self.value is None:
            return False
        if self.op == "lt":
            return actual < self.value
        if self.op == "lte":
            return actual <= self.value
        if self.op == "gt":
            return actual > self.value
        return actual >= self.value


@dataclass(frozen=True)
class AnyOf:
    """OR group of conditions."""

    conditions: tuple[Condition, ...]

    def matches(self, row: Mapping[str, Any]) -> bool:
        return any(condition.matches(row) for condition in self.conditions)


Filter = Condition | AnyOf


@dataclass(frozen=True)
class OrderBy:
    column: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    """Conditions joined with AND, plus ordering and paging."""

    conditions: tuple[Filter, ...] = ()
    order_by: tuple[OrderBy, ...] = ()
    limit: int | None = None
    offset: int = 0

    def matches(self, row: Mapping[str, Any]) -> bool:
        return all(condition.matches(row) for condition in self.conditions)


def eq(column: str, value: Any) -> Condition:
    return Condition(column, "eq", value)


def ne(column: str, value: Any) -> Condition:
    return Condition(column, "ne", value)


def in_(column: str, values: Iterable[Any]) -> Condition:
    return Condition(column, "in", tuple(values))


def lte(column: str, value: Any) -> Condition:
    return Condition(column, "lte", value)


def is_null(column: str) -> Condition:
    return Condition(column, "is_null", True)


def any_of(*conditions: Condition) -> AnyOf:
    return AnyOf(tuple(conditions))


def from_mapping(fields: Mapping[str, Any]) -> tuple[Condition, ...]:
    """Equality conditions for every ``column: value`` pair."""
    return tuple(eq(column, value) for column, value in fields.items())


def ordered(*columns: str) -> tuple[OrderBy, ...]:
    """Build an ordering from column names; a leading '-' means descending."""
    return tuple(
        OrderBy(column[1:], descending=True) if column.startswith("-") else OrderBy(column)
        for column in columns
    )


def referenced_columns(filters: Iterable[Filter]) -> set[str]:
    """Collect every column name a filter list touches."""
    names: set[str] = set()
    for item in filters:
        if isinstance(item, AnyOf):
            names.update(condition.column for condition in item.conditions)
        else:
            names.add(item.column)
    return names
