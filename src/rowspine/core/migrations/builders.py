"""
Schema builders consumed by migration producers.

A migration's ``up``/``down`` receives a schema builder and calls its
three column operations. Which builder is injected decides whether a run
is a preview or a real change; the runner's algorithm is the same either
way.

Architecture::

    SchemaBuilder (Protocol)        add_column / remove_column / rename_column
        |-- DryRunSchemaBuilder     records + logs operation descriptions
        |-- LiveSchemaBuilder       rewrites rows through storage adapters

    RecordingSchemaBuilder          runner-side proxy: captures every call as
                                    a SchemaOperation and forwards it

Builder methods may be plain or ``async``. A producer written as a plain
function cannot await an async builder, so the recording proxy defers the
returned awaitable and the runner flushes it, in call order, once the
producer returns.

Tags:
    row-spine, migrations, schema-builder, dry-run
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Mapping
from typing import Any, Protocol, runtime_checkable

from rowspine.core.adapters.base import StorageAdapter
from rowspine.core.errors import TableNotFoundError
from rowspine.core.logging import get_logger

from .operations import ColumnOptions, SchemaOperation

logger = get_logger(__name__)


@runtime_checkable
class SchemaBuilder(Protocol):
    """Column-level schema operations available to migrations.

    Implementations may return ``None`` or an awaitable from each method.
    """

    def add_column(
        self, table: str, column: str, options: ColumnOptions | dict[str, Any] | None = None
    ) -> Any: ...

    def remove_column(self, table: str, column: str) -> Any: ...

    def rename_column(self, table: str, old: str, new: str) -> Any: ...


class DryRunSchemaBuilder:
    """No-op builder that only records what would happen.

    Example::

        builder = DryRunSchemaBuilder()
        await runner.apply(builder)
        builder.descriptions   # ["addColumn: users.email", ...]
    """

    def __init__(self) -> None:
        self.operations: list[SchemaOperation] = []

    @property
    def descriptions(self) -> list[str]:
        return [op.describe() for op in self.operations]

    def add_column(
        self, table: str, column: str, options: ColumnOptions | dict[str, Any] | None = None
    ) -> None:
        self._record(SchemaOperation.add_column(table, column, options))

    def remove_column(self, table: str, column: str) -> None:
        self._record(SchemaOperation.remove_column(table, column))

    def rename_column(self, table: str, old: str, new: str) -> None:
        self._record(SchemaOperation.rename_column(table, old, new))

    def _record(self, operation: SchemaOperation) -> None:
        self.operations.append(operation)
        logger.info("migration.preview", operation=operation.describe())


class LiveSchemaBuilder:
    """Applies column operations to the rows held by storage adapters.

    Each operation reads the table once and rewrites affected rows one at
    a time. No step is atomic: a failure leaves earlier rows rewritten.
    Adapters with a fixed column grid only accept columns they were
    created with.

    Parameters:
        stores: Table name -> adapter holding that table's rows.
    """

    def __init__(self, stores: Mapping[str, StorageAdapter]) -> None:
        self._stores = dict(stores)

    @classmethod
    def from_engine(cls, engine: Any) -> LiveSchemaBuilder:
        """Builder over every table bound to an :class:`~rowspine.core.engine.Engine`."""
        return cls({name: engine.get_store(name) for name in engine.tables})

    async def add_column(
        self, table: str, column: str, options: ColumnOptions | dict[str, Any] | None = None
    ) -> None:
        """Give every row lacking ``column`` the default value (``None`` if unset)."""
        store = self._store(table)
        default = ColumnOptions.coerce(options).default
        touched = 0
        for row in await store.find_all():
            if column not in row or (row[column] is None and default is not None):
                await store.update(row[store.id_column], {column: default})
                touched += 1
        logger.info("migration.column_added", table=table, column=column, rows=touched)

    async def remove_column(self, table: str, column: str) -> None:
        store = self._store(table)
        touched = 0
        for row in await store.find_all():
            if column in row:
                await store.remove_field(row[store.id_column], column)
                touched += 1
        logger.info("migration.column_removed", table=table, column=column, rows=touched)

    async def rename_column(self, table: str, old: str, new: str) -> None:
        store = self._store(table)
        touched = 0
        for row in await store.find_all():
            if old not in row:
                continue
            row_id = row[store.id_column]
            await store.update(row_id, {new: row[old]})
            await store.remove_field(row_id, old)
            touched += 1
        logger.info("migration.column_renamed", table=table, old=old, new=new, rows=touched)

    def _store(self, table: str) -> StorageAdapter:
        try:
            return self._stores[table]
        except KeyError:
            raise TableNotFoundError(table, self._stores) from None


class _Deferred:
    """Awaitable wrapper that runs the wrapped awaitable at most once."""

    def __init__(self, awaitable: Awaitable[Any]) -> None:
        self._awaitable = awaitable
        self._started = False
        self._result: Any = None

    @property
    def started(self) -> bool:
        return self._started

    async def _run(self) -> Any:
        if not self._started:
            self._started = True
            self._result = await self._awaitable
        return self._result

    def __await__(self):
        return self._run().__await__()

    def cancel(self) -> None:
        """Drop the wrapped awaitable if it never started."""
        if not self._started and inspect.iscoroutine(self._awaitable):
            self._awaitable.close()
        self._started = True


class RecordingSchemaBuilder:
    """Proxy that records each call before forwarding it to ``inner``."""

    def __init__(self, inner: Any) -> None:
        self._inner = inner
        self.operations: list[SchemaOperation] = []
        self._pending: list[_Deferred] = []

    def add_column(
        self, table: str, column: str, options: ColumnOptions | dict[str, Any] | None = None
    ) -> Any:
        self.operations.append(SchemaOperation.add_column(table, column, options))
        return self._forward(self._inner.add_column(table, column, options))

    def remove_column(self, table: str, column: str) -> Any:
        self.operations.append(SchemaOperation.remove_column(table, column))
        return self._forward(self._inner.remove_column(table, column))

    def rename_column(self, table: str, old: str, new: str) -> Any:
        self.operations.append(SchemaOperation.rename_column(table, old, new))
        return self._forward(self._inner.rename_column(table, old, new))

    async def flush(self) -> None:
        """Await every forwarded call the producer did not await itself."""
        for deferred in self._pending:
            if not deferred.started:
                await deferred
        self._pending.clear()

    def discard(self) -> None:
        """Drop forwarded calls that never ran (the producer failed)."""
        for deferred in self._pending:
            deferred.cancel()
        self._pending.clear()

    def _forward(self, result: Any) -> Any:
        if not inspect.isawaitable(result):
            return result
        deferred = _Deferred(result)
        self._pending.append(deferred)
        return deferred


__all__ = [
    "SchemaBuilder",
    "DryRunSchemaBuilder",
    "LiveSchemaBuilder",
    "RecordingSchemaBuilder",
]
