"""Storage adapters: one async row contract over interchangeable backends.

Architecture::

    StorageAdapter (base.py)         Abstract async insert/find/update/delete
        |-- InMemoryAdapter          dict-backed, volatile (tests, mocks)
        |-- RemoteRowStoreAdapter    httpx proxy to a remote grid row store

    AdapterRegistry (registry.py)    name -> adapter class
    IdPolicy / ColumnType (types.py)

Modules
-------
base        Abstract StorageAdapter base class, BatchUpdateItem
types       IdPolicy and ColumnType enums
memory      In-memory adapter
remote      Remote row store adapter (requires httpx)
registry    AdapterRegistry + get_adapter() factory

Tags:
    row-spine, storage, adapters, registry-pattern
"""

from .base import BatchUpdateItem, Row, RowId, StorageAdapter
from .memory import InMemoryAdapter
from .registry import AdapterRegistry, adapter_registry, get_adapter
from .remote import RemoteRowStoreAdapter, deserialize_cell, serialize_cell
from .types import ColumnType, IdPolicy

__all__ = [
    # Base
    "StorageAdapter",
    "BatchUpdateItem",
    "Row",
    "RowId",
    # Types
    "IdPolicy",
    "ColumnType",
    # Implementations
    "InMemoryAdapter",
    "RemoteRowStoreAdapter",
    "serialize_cell",
    "deserialize_cell",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
