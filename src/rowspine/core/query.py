"""Query builder evaluated over a table's rows.

Storage backends expose no query language, so queries run in-process:
every evaluation reads a fresh snapshot from the bound row source, then

    1. filters by the AND of all predicates,
    2. sorts by the accumulated order keys (stable, multi-key),
    3. applies the offset/limit window.

``count()`` and ``exists()`` stop after step 1. Nothing is cached between
evaluations.

Chaining mutates and returns the same builder; :meth:`QueryBuilder.clone`
gives an independent copy.

Example::

    adults = await (
        users.query()
        .where("age", ">=", 18)
        .where_like("name", "A%")
        .order_by("age", "desc")
        .limit(10)
        .exec()
    )
"""

from __future__ import annotations

import copy
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any

from rowspine.core.adapters.base import Row
from rowspine.core.errors import InvalidOperatorError, NoResultsError, ValidationError
from rowspine.core.schema import TableSchema

RowSource = Callable[[], Awaitable[list[Row]]]

COMPARISON_OPERATORS = ("=", "!=", ">", ">=", "<", "<=")
OPERATORS = (*COMPARISON_OPERATORS, "in", "like")
DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class Condition:
    """One ``field operator value`` predicate."""

    field: str
    operator: str
    value: Any

    def matches(self, row: Row) -> bool:
        actual = row.get(self.field)
        op = self.operator
        if op == "=":
            return actual == self.value
        if op == "!=":
            return actual != self.value
        if op == "in":
            return actual in self.value
        if op == "like":
            return _like(actual, self.value)
        return _ordered(actual, op, self.value)


@dataclass(frozen=True)
class OrderKey:
    field: str
    direction: str = "asc"


@dataclass(frozen=True)
class QueryOptions:
    """Snapshot of a builder's accumulated state (see :meth:`QueryBuilder.build`)."""

    where: tuple[Condition, ...] = ()
    order_by: tuple[OrderKey, ...] = ()
    limit: int | None = None
    offset: int | None = None


def _ordered(actual: Any, op: str, expected: Any) -> bool:
    # None and incomparable types never satisfy an ordered comparison
    if actual is None or expected is None:
        return False
    try:
        if op == ">":
            return actual > expected
        if op == ">=":
            return actual >= expected
        if op == "<":
            return actual < expected
        return actual <= expected
    except TypeError:
        return False


def _like(actual: Any, pattern: str) -> bool:
    if not isinstance(actual, str):
        return False
    leading = pattern.startswith("%")
    core = pattern[1:] if leading else pattern
    trailing = core.endswith("%")
    if trailing:
        core = core[:-1]
    if leading and trailing:
        return core in actual
    if leading:
        return actual.endswith(core)
    if trailing:
        return actual.startswith(core)
    return actual == core


def _type_rank(value: Any) -> tuple[int, str]:
    if isinstance(value, (int, float)):
        return (0, "")
    if isinstance(value, str):
        return (1, "")
    return (2, type(value).__name__)


def _compare(left: Any, right: Any) -> int:
    # None sorts after every value; values that do not support < fall back to
    # numbers, then strings, then other types by name, then repr
    if left is None and right is None:
        return 0
    if left is None:
        return 1
    if right is None:
        return -1
    try:
        if left < right:
            return -1
        if right < left:
            return 1
    except TypeError:
        return _fallback_compare(left, right)
    return 0


def _fallback_compare(left: Any, right: Any) -> int:
    left_key = (_type_rank(left), repr(left))
    right_key = (_type_rank(right), repr(right))
    return (left_key > right_key) - (left_key < right_key)


class QueryBuilder:
    """Accumulates predicates, order keys and a window; evaluates on demand.

    Parameters:
        source: Coroutine function returning the table's rows (usually
            ``store.find_all``).
        table: Declared table metadata used to validate field names.
    """

    def __init__(self, source: RowSource, table: TableSchema) -> None:
        self._source = source
        self._table = table
        self._where: list[Condition] = []
        self._order_by: list[OrderKey] = []
        self._limit: int | None = None
        self._offset: int | None = None

    # -- Predicates --------------------------------------------------------

    def where(self, field: str, operator: str, value: Any) -> QueryBuilder:
        """Add a predicate; all predicates are ANDed."""
        self._check_field(field)
        if operator not in OPERATORS:
            raise InvalidOperatorError(operator, COMPARISON_OPERATORS)
        if operator == "in":
            value = self._as_values(field, value)
        elif operator == "like" and not isinstance(value, str):
            raise ValidationError(
                "like pattern must be a string", field=field, value=value, constraint="type"
            )
        self._where.append(Condition(field, operator, value))
        return self

    def where_eq(self, field: str, value: Any) -> QueryBuilder:
        return self.where(field, "=", value)

    def where_not(self, field: str, value: Any) -> QueryBuilder:
        return self.where(field, "!=", value)

    def where_in(self, field: str, values: Iterable[Any]) -> QueryBuilder:
        return self.where(field, "in", values)

    def where_like(self, field: str, pattern: str) -> QueryBuilder:
        """Match strings: ``abc%`` prefix, ``%abc`` suffix, ``%abc%`` substring, ``abc`` exact."""
        return self.where(field, "like", pattern)

    # -- Ordering and window -----------------------------------------------

    def order_by(self, field: str, direction: str = "asc") -> QueryBuilder:
        self._check_field(field)
        direction = direction.lower()
        if direction not in DIRECTIONS:
            raise ValidationError(
                f"Invalid sort direction {direction!r}; use 'asc' or 'desc'",
                field=field,
                value=direction,
                constraint="direction",
            )
        self._order_by.append(OrderKey(field, direction))
        return self

    def limit(self, n: int) -> QueryBuilder:
        self._limit = self._non_negative("limit", n)
        return self

    def offset(self, n: int) -> QueryBuilder:
        self._offset = self._non_negative("offset", n)
        return self

    def page(self, page_number: int, page_size: int) -> QueryBuilder:
        """Window of ``page_size`` rows starting at ``(page_number - 1) * page_size``."""
        for name, value in (("page_number", page_number), ("page_size", page_size)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValidationError(
                    f"{name} must be an integer >= 1", field=name, value=value, constraint="min:1"
                )
        return self.offset((page_number - 1) * page_size).limit(page_size)

    # -- Evaluation --------------------------------------------------------

    async def exec(self) -> list[Row]:
        rows = self._sort(await self._filtered())
        start = self._offset or 0
        stop = None if self._limit is None else start + self._limit
        return rows[start:stop]

    async def count(self) -> int:
        return len(await self._filtered())

    async def exists(self) -> bool:
        rows = await self._source()
        return any(self._matches(row) for row in rows)

    async def first(self) -> Row | None:
        rows = await self.exec()
        return rows[0] if rows else None

    async def first_or_fail(self) -> Row:
        row = await self.first()
        if row is None:
            raise NoResultsError(self._table.name)
        return row

    # -- Introspection -----------------------------------------------------

    def clone(self) -> QueryBuilder:
        other = QueryBuilder(self._source, self._table)
        other._where = copy.deepcopy(self._where)
        other._order_by = list(self._order_by)
        other._limit = self._limit
        other._offset = self._offset
        return other

    def build(self) -> QueryOptions:
        return QueryOptions(
            where=tuple(self._where),
            order_by=tuple(self._order_by),
            limit=self._limit,
            offset=self._offset,
        )

    # -- internals ---------------------------------------------------------

    async def _filtered(self) -> list[Row]:
        rows = await self._source()
        return [row for row in rows if self._matches(row)]

    def _matches(self, row: Row) -> bool:
        return all(condition.matches(row) for condition in self._where)

    def _sort(self, rows: list[Row]) -> list[Row]:
        if not self._order_by:
            return rows
        keys = list(self._order_by)

        def compare(left: Row, right: Row) -> int:
            for key in keys:
                result = _compare(left.get(key.field), right.get(key.field))
                if result:
                    return -result if key.direction == "desc" else result
            return 0

        return sorted(rows, key=cmp_to_key(compare))

    def _check_field(self, field: str) -> None:
        if field not in self._table.field_names:
            raise ValidationError(
                f"Unknown field {field!r} for table {self._table.name!r}",
                field=field,
                constraint="declared-column",
            ).with_context(table=self._table.name)

    @staticmethod
    def _as_values(field: str, values: Any) -> tuple[Any, ...]:
        if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
            raise ValidationError(
                "where_in expects a collection of values",
                field=field,
                value=values,
                constraint="type",
            )
        return tuple(values)

    @staticmethod
    def _non_negative(name: str, value: int) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(
                f"{name} must be a non-negative integer", field=name, value=value, constraint="min:0"
            )
        return value

    def __repr__(self) -> str:
        return (
            f"QueryBuilder(table={self._table.name!r}, where={len(self._where)}, "
            f"order_by={len(self._order_by)}, limit={self._limit}, offset={self._offset})"
        )


__all__ = [
    "QueryBuilder",
    "QueryOptions",
    "Condition",
    "OrderKey",
    "OPERATORS",
    "COMPARISON_OPERATORS",
]
