"""row-spine core -- storage, repositories, queries and migrations.

Architecture::

    Layer 1 -- Errors, logging, settings
        errors.py          Structured error hierarchy (RowSpineError, ...)
        logging.py         structlog configuration and helpers
        settings.py        RowSpineSettings (ROWSPINE_* environment)

    Layer 2 -- Storage
        adapters/          StorageAdapter ABC, in-memory and remote backends

    Layer 3 -- Data access
        schema.py          TableSchema / Schema declared metadata
        query.py           QueryBuilder (filter -> sort -> window)
        repository.py      Repository (validated CRUD per table)
        engine.py          Engine composition root

    Layer 4 -- Schema evolution
        migrations/        MigrationRunner, schema builders, loader
"""

from rowspine.core.adapters import (
    BatchUpdateItem,
    IdPolicy,
    InMemoryAdapter,
    RemoteRowStoreAdapter,
    StorageAdapter,
)
from rowspine.core.engine import Engine
from rowspine.core.errors import (
    ConfigurationError,
    DuplicateKeyError,
    NotFoundError,
    RowNotFoundError,
    RowSpineError,
    TableNotFoundError,
    ValidationError,
)
from rowspine.core.migrations import DryRunSchemaBuilder, LiveSchemaBuilder, MigrationRunner
from rowspine.core.query import QueryBuilder
from rowspine.core.repository import Repository
from rowspine.core.schema import Schema, TableSchema

__all__ = [
    "StorageAdapter",
    "InMemoryAdapter",
    "RemoteRowStoreAdapter",
    "BatchUpdateItem",
    "IdPolicy",
    "Schema",
    "TableSchema",
    "Repository",
    "QueryBuilder",
    "Engine",
    "MigrationRunner",
    "DryRunSchemaBuilder",
    "LiveSchemaBuilder",
    "RowSpineError",
    "ConfigurationError",
    "NotFoundError",
    "TableNotFoundError",
    "RowNotFoundError",
    "ValidationError",
    "DuplicateKeyError",
]
