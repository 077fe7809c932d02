"""
Client factory: generated schema -> ready-to-use Engine.

The code generator emits a schema map and hands it to
:func:`create_client_factory`; application code then calls the factory
with :class:`ClientOptions` to get an :class:`~rowspine.core.engine.Engine`.

Store selection per table, first match wins:

    1. ``options.stores``     caller-supplied adapters (missing tables
                              fall back to in-memory)
    2. ``options.mock``       in-memory adapters
    3. remote base URL        RemoteRowStoreAdapter (options, then settings)
    4. otherwise              in-memory adapters

Before code generation has run there is no schema to bind. Instead of a
placeholder that fails on every call, :class:`ClientBinding` carries an
explicit ``UNGENERATED``/``GENERATED`` state that is checked when an
engine is requested.

Example::

    factory = create_client_factory(
        {"tables": {"users": {"columns": ["id", "name", "age"]}}}
    )
    async with factory(ClientOptions(mock=True)) as db:
        await db.from_("users").create({"name": "Alice", "age": 30})

Tags:
    row-spine, client, factory, code-generation
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from rowspine.core.adapters import InMemoryAdapter, RemoteRowStoreAdapter, StorageAdapter
from rowspine.core.adapters.types import IdPolicy
from rowspine.core.engine import Engine
from rowspine.core.errors import ConfigurationError
from rowspine.core.logging import get_logger
from rowspine.core.schema import Schema, TableSchema
from rowspine.core.settings import RowSpineSettings, get_settings

logger = get_logger(__name__)


@dataclass
class ClientOptions:
    """Options accepted by a client factory.

    Attributes:
        stores: Adapters by table name; take precedence over everything else.
        mock: Use in-memory adapters for every table.
        base_url: Remote row store endpoint (defaults to settings).
        token: Bearer token for the remote store (defaults to settings).
        id_policy: Id allocation policy for adapters the factory creates.
        http_client: Pre-configured client for the remote store; the
            caller keeps ownership.
        settings: Settings to read defaults from (``get_settings()`` if unset).
    """

    stores: Mapping[str, StorageAdapter] | None = None
    mock: bool = False
    base_url: str | None = None
    token: str | None = None
    id_policy: IdPolicy | str | None = None
    http_client: httpx.AsyncClient | None = None
    settings: RowSpineSettings | None = field(default=None, repr=False)


class ClientFactory:
    """Builds engines for one generated schema."""

    def __init__(self, schema: Schema | Mapping[str, Any]) -> None:
        self.schema = Schema.from_mapping(schema)

    def __call__(self, options: ClientOptions | None = None) -> Engine:
        options = options or ClientOptions()
        settings = options.settings or get_settings()
        id_policy = IdPolicy(options.id_policy or settings.id_policy)

        if options.stores is not None:
            stores = {
                name: options.stores[name]
                if name in options.stores
                else self._memory_store(table, id_policy)
                for name, table in self.schema.tables.items()
            }
            source = "custom"
        elif options.mock:
            stores = self._memory_stores(id_policy)
            source = "mock"
        else:
            base_url = options.base_url or settings.remote_base_url
            if base_url or options.http_client is not None:
                stores = self._remote_stores(options, settings, base_url, id_policy)
                source = "remote"
            else:
                stores = self._memory_stores(id_policy)
                source = "memory"

        logger.debug("client.created", source=source, tables=self.schema.names)
        return Engine(self.schema, stores)

    def _memory_stores(self, id_policy: IdPolicy) -> dict[str, StorageAdapter]:
        return {
            name: self._memory_store(table, id_policy) for name, table in self.schema.tables.items()
        }

    @staticmethod
    def _memory_store(table: TableSchema, id_policy: IdPolicy) -> StorageAdapter:
        return InMemoryAdapter(id_policy=id_policy, id_column=table.id_column, table=table.name)

    def _remote_stores(
        self,
        options: ClientOptions,
        settings: RowSpineSettings,
        base_url: str | None,
        id_policy: IdPolicy,
    ) -> dict[str, StorageAdapter]:
        client = options.http_client
        owns_client = client is None
        if client is None:
            token = options.token or (
                settings.remote_token.get_secret_value() if settings.remote_token else None
            )
            headers = {"Authorization": f"Bearer {token}"} if token else {}
            client = httpx.AsyncClient(
                base_url=base_url or "", headers=headers, timeout=settings.remote_timeout
            )
        return {
            name: RemoteRowStoreAdapter(
                client,
                table.physical_name,
                table.storage_columns(),
                id_policy=id_policy,
                id_column=table.id_column,
                column_types=table.column_types,
                table=name,
                owns_client=owns_client,
            )
            for name, table in self.schema.tables.items()
        }


def create_client_factory(schema: Schema | Mapping[str, Any]) -> ClientFactory:
    """Factory bound to a generated schema map."""
    return ClientFactory(schema)


def create_mock_client(schema: Schema | Mapping[str, Any]) -> Engine:
    """Engine with in-memory adapters for every table (tests, prototyping)."""
    return ClientFactory(schema)(ClientOptions(mock=True))


class BindingState(str, Enum):
    UNGENERATED = "ungenerated"
    GENERATED = "generated"


class ClientBinding:
    """Slot for the generated client, filled in by code generation.

    Example::

        binding = ClientBinding.ungenerated()
        binding.engine()        # ConfigurationError: run code generation first

        binding = ClientBinding.generated(schema)
        db = binding.engine(ClientOptions(mock=True))
    """

    def __init__(self, state: BindingState, factory: ClientFactory | None = None) -> None:
        if (state is BindingState.GENERATED) != (factory is not None):
            raise ValueError("a generated binding needs a factory; an ungenerated one has none")
        self.state = state
        self._factory = factory

    @classmethod
    def ungenerated(cls) -> ClientBinding:
        return cls(BindingState.UNGENERATED)

    @classmethod
    def generated(cls, schema: Schema | Mapping[str, Any]) -> ClientBinding:
        return cls(BindingState.GENERATED, ClientFactory(schema))

    @property
    def is_generated(self) -> bool:
        return self.state is BindingState.GENERATED

    @property
    def factory(self) -> ClientFactory:
        if self._factory is None:
            raise ConfigurationError(
                "Client has not been generated yet. Run code generation for your "
                "schema file, then import the generated client."
            )
        return self._factory

    def engine(self, options: ClientOptions | None = None) -> Engine:
        return self.factory(options)

    def __repr__(self) -> str:
        return f"ClientBinding(state={self.state.value})"


__all__ = [
    "ClientOptions",
    "ClientFactory",
    "create_client_factory",
    "create_mock_client",
    "BindingState",
    "ClientBinding",
]
