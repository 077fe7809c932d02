"""Volatile in-memory storage adapter.

Rows live in an insertion-ordered dict keyed by id, so lookups are O(1)
and ``find_all`` returns creation order. Every row handed out is a copy.
Used in tests, in mock clients, and as the default backend when no
remote endpoint is configured.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from rowspine.core.errors import DuplicateKeyError, RowNotFoundError

from .base import Row, RowId, StorageAdapter
from .types import IdPolicy


class InMemoryAdapter(StorageAdapter):
    """
    Dict-backed storage.

    With the sequential policy the next id is one above the highest id
    ever held, so deleting the newest row does not free its id.

    Example::

        store = InMemoryAdapter()
        row = await store.insert({"name": "Alice"})   # {"name": "Alice", "id": 1}
    """

    def __init__(
        self,
        initial_rows: Iterable[Mapping[str, Any]] = (),
        *,
        id_policy: IdPolicy | str = IdPolicy.SEQUENTIAL,
        id_column: str = "id",
        table: str | None = None,
    ):
        super().__init__(id_policy=id_policy, id_column=id_column, table=table)
        self._rows: dict[RowId, Row] = {}
        self._high_water = 0
        self.reset(initial_rows)

    async def insert(self, data: Mapping[str, Any]) -> Row:
        self._check_insert_id(data)
        row = dict(data)
        if self.id_policy is IdPolicy.SEQUENTIAL:
            self._high_water += 1
            row[self.id_column] = self._high_water
        else:
            row_id = row[self.id_column]
            if self._key(row_id) in self._rows:
                raise DuplicateKeyError(row_id, self.table)
        self._rows[self._key(row[self.id_column])] = row
        return dict(row)

    async def find_by_id(self, row_id: RowId) -> Row:
        return dict(self._get(row_id))

    async def find_all(self) -> list[Row]:
        return [dict(row) for row in self._rows.values()]

    async def update(self, row_id: RowId, patch: Mapping[str, Any]) -> Row:
        self._check_patch(patch)
        row = self._get(row_id)
        row.update(patch)
        return dict(row)

    async def delete(self, row_id: RowId) -> None:
        self._get(row_id)
        del self._rows[self._key(row_id)]

    async def remove_field(self, row_id: RowId, column: str) -> Row:
        row = self._get(row_id)
        row.pop(column, None)
        return dict(row)

    # -- test helpers ------------------------------------------------------

    def reset(self, rows: Iterable[Mapping[str, Any]] = ()) -> None:
        """Replace all data; the sequential counter restarts above the new rows."""
        self._rows = {}
        for data in rows:
            row = dict(data)
            row_id = row.get(self.id_column)
            if row_id is None:
                raise ValueError(f"initial rows must carry {self.id_column!r}")
            if self._key(row_id) in self._rows:
                raise DuplicateKeyError(row_id, self.table)
            self._rows[self._key(row_id)] = row
        self._high_water = self._max_int_id([row[self.id_column] for row in self._rows.values()])

    def raw_rows(self) -> list[Row]:
        """Stored rows without copying (test inspection only)."""
        return list(self._rows.values())

    def __len__(self) -> int:
        return len(self._rows)

    # -- internals ---------------------------------------------------------

    @staticmethod
    def _key(row_id: RowId) -> RowId:
        # "7" and 7 address the same row
        return str(row_id)

    def _get(self, row_id: RowId) -> Row:
        try:
            return self._rows[self._key(row_id)]
        except KeyError:
            raise RowNotFoundError(row_id, self.table) from None


__all__ = [
    "InMemoryAdapter",
]
