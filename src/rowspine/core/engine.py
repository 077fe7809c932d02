"""Composition root: schema + adapters -> per-table repositories.

:class:`Engine` is built once from the declared schema map and one storage
adapter per table. Construction fails if any declared table lacks an
adapter. Repositories are created on first access and cached, so every
caller of ``engine.from_("users")`` shares the same instance.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rowspine.core.adapters.base import StorageAdapter
from rowspine.core.errors import ConfigurationError, MissingStoreError, TableNotFoundError
from rowspine.core.logging import get_logger
from rowspine.core.repository import Repository
from rowspine.core.schema import Schema

logger = get_logger(__name__)


class Engine:
    """
    Entry point for table access.

    Example::

        engine = Engine(
            {"tables": {"users": {"columns": ["id", "name"]}}},
            {"users": InMemoryAdapter()},
        )
        users = engine.from_("users")

    Raises:
        ConfigurationError: the schema map is malformed, or an adapter keys
            rows by a different id column than its table declares.
        MissingStoreError: a declared table has no adapter.
    """

    def __init__(
        self,
        schema: Schema | Mapping[str, Any],
        adapters: Mapping[str, StorageAdapter],
    ) -> None:
        self._schema = Schema.from_mapping(schema)
        self._stores: dict[str, StorageAdapter] = {}
        for name in self._schema.names:
            store = adapters.get(name)
            if store is None:
                raise MissingStoreError(name)
            id_column = self._schema.table(name).id_column
            if store.id_column != id_column:
                raise ConfigurationError(
                    f'Store for table "{name}" uses id column "{store.id_column}" '
                    f'but the table declares "{id_column}"'
                ).with_context(table=name)
            store.bind_table(name)
            self._stores[name] = store
        self._repositories: dict[str, Repository] = {}
        logger.debug("engine.created", tables=self._schema.names)

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def tables(self) -> list[str]:
        return self._schema.names

    def from_(self, table: str) -> Repository:
        """Repository for ``table``; the same instance on every call."""
        repository = self._repositories.get(table)
        if repository is None:
            repository = Repository(self._schema.table(table), self.get_store(table))
            self._repositories[table] = repository
        return repository

    def get_store(self, table: str) -> StorageAdapter:
        try:
            return self._stores[table]
        except KeyError:
            raise TableNotFoundError(table, self._stores) from None

    async def aclose(self) -> None:
        """Close every bound adapter (each adapter at most once)."""
        seen: set[int] = set()
        for store in self._stores.values():
            if id(store) not in seen:
                seen.add(id(store))
                await store.aclose()

    async def __aenter__(self) -> Engine:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"Engine(tables={self.tables!r})"


__all__ = [
    "Engine",
]
