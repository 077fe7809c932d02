"""Storage adapter base class.

All storage backends share the same row contract: insert, lookup by id,
ordered scan, field-level merge update, delete, and per-element batch
insert/update. The abstract base class fixes that contract so the
repository and engine never depend on a concrete backend.

Features:
    - Abstract ``insert``, ``find_by_id``, ``find_all``, ``update``, ``delete``
    - Concrete ``batch_insert`` / ``batch_update`` running element by element
    - Shared id-policy helpers (sequential high-water mark, client ids)

Every operation is a coroutine. An in-process backend completes without
suspending; a remote backend suspends once per round-trip.

Tags:
    row-spine, storage, abstract-base, adapter-pattern
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from rowspine.core.errors import ValidationError

from .types import IdPolicy

Row = dict[str, Any]
RowId = int | str


@dataclass(frozen=True)
class BatchUpdateItem:
    """One ``batch_update`` entry: the row id and the fields to merge."""

    id: RowId
    data: Mapping[str, Any]

    @classmethod
    def coerce(cls, item: BatchUpdateItem | tuple[RowId, Mapping[str, Any]]) -> BatchUpdateItem:
        if isinstance(item, BatchUpdateItem):
            return item
        row_id, data = item
        return cls(id=row_id, data=data)


class StorageAdapter(ABC):
    """
    Abstract base class for row storage backends.

    Subclasses implement the five single-row operations; batch operations
    are built on top of them here. ``find_by_id``, ``update`` and
    ``delete`` raise :class:`~rowspine.core.errors.RowNotFoundError` for an
    unknown id.
    """

    def __init__(
        self,
        *,
        id_policy: IdPolicy | str = IdPolicy.SEQUENTIAL,
        id_column: str = "id",
        table: str | None = None,
    ):
        self._id_policy = IdPolicy(id_policy)
        self._id_column = id_column
        self._table = table

    @property
    def id_policy(self) -> IdPolicy:
        return self._id_policy

    @property
    def id_column(self) -> str:
        return self._id_column

    @property
    def table(self) -> str | None:
        """Table name used in error messages (set when bound to a table)."""
        return self._table

    def bind_table(self, table: str) -> None:
        if self._table is None:
            self._table = table

    @abstractmethod
    async def insert(self, data: Mapping[str, Any]) -> Row:
        """Store a new row and return it with its id."""
        ...

    @abstractmethod
    async def find_by_id(self, row_id: RowId) -> Row:
        """Return the row with ``row_id``."""
        ...

    @abstractmethod
    async def find_all(self) -> list[Row]:
        """Return every row in creation order."""
        ...

    @abstractmethod
    async def update(self, row_id: RowId, patch: Mapping[str, Any]) -> Row:
        """Merge ``patch`` onto the stored row and return the result."""
        ...

    @abstractmethod
    async def delete(self, row_id: RowId) -> None:
        """Remove the row with ``row_id``."""
        ...

    async def batch_insert(self, rows: Iterable[Mapping[str, Any]]) -> list[Row]:
        """Insert rows one by one in input order.

        The first failing element stops the batch; rows inserted before it
        stay committed.
        """
        results: list[Row] = []
        for data in rows:
            results.append(await self.insert(data))
        return results

    async def batch_update(
        self, items: Iterable[BatchUpdateItem | tuple[RowId, Mapping[str, Any]]]
    ) -> list[Row]:
        """Update rows one by one in input order, results aligned with input.

        The first failing element stops the batch; updates applied before it
        stay committed.
        """
        results: list[Row] = []
        for item in items:
            entry = BatchUpdateItem.coerce(item)
            results.append(await self.update(entry.id, entry.data))
        return results

    async def remove_field(self, row_id: RowId, column: str) -> Row:
        """Clear ``column`` on one row (used by live schema migrations).

        Backends with a fixed column grid can only blank the cell; backends
        storing free-form rows override this to drop the key.
        """
        return await self.update(row_id, {column: None})

    async def aclose(self) -> None:
        """Release backend resources (no-op unless the adapter owns any)."""

    # -- id policy helpers -------------------------------------------------

    def _check_insert_id(self, data: Mapping[str, Any]) -> None:
        has_id = data.get(self._id_column) is not None
        if self._id_policy is IdPolicy.CLIENT and not has_id:
            raise ValidationError(
                f"ID is required when id_policy is 'client' (column {self._id_column!r})",
                field=self._id_column,
                constraint="required",
            )
        if self._id_policy is IdPolicy.SEQUENTIAL and has_id:
            raise ValidationError(
                f"ID must not be supplied when id_policy is 'sequential' (column {self._id_column!r})",
                field=self._id_column,
                value=data[self._id_column],
                constraint="generated",
            )

    def _check_patch(self, patch: Mapping[str, Any]) -> None:
        if self._id_column in patch:
            raise ValidationError(
                f"The id column {self._id_column!r} cannot be updated",
                field=self._id_column,
                value=patch[self._id_column],
                constraint="immutable",
            )

    @staticmethod
    def _max_int_id(ids: Sequence[Any]) -> int:
        """Highest integer id among ``ids`` (0 if none); non-integers are ignored."""
        highest = 0
        for value in ids:
            if isinstance(value, bool):
                continue
            if isinstance(value, int):
                highest = max(highest, value)
            elif isinstance(value, str) and value.isdigit():
                highest = max(highest, int(value))
        return highest


__all__ = [
    "Row",
    "RowId",
    "BatchUpdateItem",
    "StorageAdapter",
]
