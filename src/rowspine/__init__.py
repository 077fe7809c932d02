"""
row-spine - embeddable row-oriented data access.

One CRUD and query interface over interchangeable storage backends, plus
sequential schema migrations.

    Engine           schema + adapters -> cached per-table repositories
    Repository       validated CRUD over one StorageAdapter
    QueryBuilder     where / order_by / page evaluated in-process
    MigrationRunner  ordered apply / rollback against a schema builder
"""

__version__ = "0.1.0"

from rowspine.client import ClientBinding, ClientOptions, create_client_factory, create_mock_client
from rowspine.core import *  # noqa: F403
from rowspine.core import __all__ as _core_all

__all__ = [
    "__version__",
    "ClientBinding",
    "ClientOptions",
    "create_client_factory",
    "create_mock_client",
    *_core_all,
]
