"""Per-table repository over a storage adapter.

Provides :class:`Repository`, the object callers get from
:meth:`Engine.from_ <rowspine.core.engine.Engine.from_>`. It pairs one
declared :class:`~rowspine.core.schema.TableSchema` with one
:class:`~rowspine.core.adapters.base.StorageAdapter` and validates every
write against the declared columns before the adapter sees it.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                          Repository                                │
    │                                                                    │
    │   table: TableSchema       ← declared columns, id column           │
    │   store: StorageAdapter    ← memory / remote backend               │
    │                                                                    │
    │   create(data)             → Row                                   │
    │   batch_insert(rows)       → list[Row]                             │
    │   find_by_id(id)           → Row                                   │
    │   find_all()               → list[Row]                             │
    │   update(id, patch)        → Row                                   │
    │   batch_update(items)      → list[Row]                             │
    │   delete(id)               → None                                  │
    │   query()                  → QueryBuilder                          │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> users = engine.from_("users")
    >>> alice = await users.create({"name": "Alice", "age": 30})
    >>> adults = await users.query().where("age", ">=", 18).exec()

Tags:
    repository, crud, row-spine
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from rowspine.core.adapters.base import BatchUpdateItem, Row, RowId, StorageAdapter
from rowspine.core.errors import RowNotFoundError, ValidationError
from rowspine.core.logging import get_logger
from rowspine.core.query import QueryBuilder
from rowspine.core.schema import TableSchema

logger = get_logger(__name__)


class Repository:
    """CRUD facade for one table.

    Parameters:
        table: Declared metadata of the table.
        store: Adapter holding the table's rows.
    """

    def __init__(self, table: TableSchema, store: StorageAdapter) -> None:
        self.table = table
        self.store = store

    @property
    def name(self) -> str:
        return self.table.name

    # -- Writes ------------------------------------------------------------

    async def create(self, data: Mapping[str, Any]) -> Row:
        """Validate ``data`` against the declared columns and insert it."""
        self._validate_fields(data)
        row = await self.store.insert(data)
        logger.debug("repository.created", table=self.name, row_id=row.get(self.table.id_column))
        return row

    async def batch_insert(self, rows: Iterable[Mapping[str, Any]]) -> list[Row]:
        """Insert rows in order; every element is validated up front."""
        rows = list(rows)
        for data in rows:
            self._validate_fields(data)
        created = await self.store.batch_insert(rows)
        logger.debug("repository.batch_inserted", table=self.name, count=len(created))
        return created

    async def update(self, row_id: RowId, patch: Mapping[str, Any]) -> Row:
        """Merge ``patch`` onto the row; unspecified fields keep their values."""
        self._validate_patch(patch)
        row = await self.store.update(row_id, patch)
        logger.debug("repository.updated", table=self.name, row_id=row_id, fields=sorted(patch))
        return row

    async def batch_update(
        self, items: Iterable[BatchUpdateItem | tuple[RowId, Mapping[str, Any]]]
    ) -> list[Row]:
        """Apply updates in input order; results line up with ``items``.

        The first failing element (unknown id, bad field) stops the batch.
        Earlier elements stay applied.
        """
        entries = [BatchUpdateItem.coerce(item) for item in items]
        for entry in entries:
            self._validate_patch(entry.data)
        return await self.store.batch_update(entries)

    async def delete(self, row_id: RowId) -> None:
        await self.store.delete(row_id)
        logger.debug("repository.deleted", table=self.name, row_id=row_id)

    async def delete_if_exists(self, row_id: RowId) -> bool:
        """Delete the row if present; returns whether a row was removed."""
        try:
            await self.store.delete(row_id)
        except RowNotFoundError:
            return False
        return True

    # -- Reads -------------------------------------------------------------

    async def find_by_id(self, row_id: RowId) -> Row:
        return await self.store.find_by_id(row_id)

    async def find_by_id_or_none(self, row_id: RowId) -> Row | None:
        try:
            return await self.store.find_by_id(row_id)
        except RowNotFoundError:
            return None

    async def find_all(self) -> list[Row]:
        return await self.store.find_all()

    async def exists(self, row_id: RowId) -> bool:
        return await self.find_by_id_or_none(row_id) is not None

    async def count(self) -> int:
        return len(await self.store.find_all())

    def query(self) -> QueryBuilder:
        """Start a query; rows are fetched from the store when it is evaluated."""
        return QueryBuilder(self.find_all, self.table)

    # -- Validation --------------------------------------------------------

    def _validate_fields(self, data: Mapping[str, Any]) -> None:
        unknown = self.table.unknown_fields(data)
        if unknown:
            raise ValidationError(
                f"Unknown field {unknown[0]!r} for table {self.name!r}. "
                f"Declared columns: {', '.join(self.table.columns)}",
                field=unknown[0],
                value=data[unknown[0]],
                constraint="declared-column",
            ).with_context(table=self.name)

    def _validate_patch(self, patch: Mapping[str, Any]) -> None:
        self._validate_fields(patch)
        if self.table.id_column in patch:
            raise ValidationError(
                f"The id column {self.table.id_column!r} cannot be updated",
                field=self.table.id_column,
                value=patch[self.table.id_column],
                constraint="immutable",
            ).with_context(table=self.name)

    def __repr__(self) -> str:
        return f"Repository(table={self.name!r}, store={type(self.store).__name__})"


__all__ = [
    "Repository",
]
