"""Storage adapter registry and factory.

Consumers should never hard-code adapter class names. The registry maps
backend names to adapter classes and :func:`get_adapter` creates a
configured instance from keyword arguments.

Pre-registered adapters:
    - ``memory`` / ``in-memory``: :class:`InMemoryAdapter`
    - ``remote``: :class:`RemoteRowStoreAdapter`

Tags:
    row-spine, storage, registry, factory
"""

from __future__ import annotations

from typing import Any

from rowspine.core.errors import ConfigurationError

from .base import StorageAdapter
from .memory import InMemoryAdapter
from .remote import RemoteRowStoreAdapter


class AdapterRegistry:
    """Registry for storage adapter classes."""

    def __init__(self):
        self._factories: dict[str, type[StorageAdapter]] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        self._factories["memory"] = InMemoryAdapter
        self._factories["in-memory"] = InMemoryAdapter  # Alias
        self._factories["remote"] = RemoteRowStoreAdapter

    def register(self, name: str, adapter_class: type[StorageAdapter]) -> None:
        """Register an adapter class under ``name`` (case-insensitive)."""
        self._factories[name.lower()] = adapter_class

    def create(self, name: str, **kwargs: Any) -> StorageAdapter:
        """Create an adapter by name."""
        name = name.lower()
        if name not in self._factories:
            raise ConfigurationError(
                f"Unknown storage adapter: {name}. Available: {', '.join(self.list_adapters())}"
            )
        return self._factories[name](**kwargs)

    def list_adapters(self) -> list[str]:
        return sorted(self._factories)


# Global registry
adapter_registry = AdapterRegistry()


def get_adapter(name: str, **kwargs: Any) -> StorageAdapter:
    """
    Get a storage adapter by name.

    Usage:
        store = get_adapter("memory", id_policy="client")
        store = get_adapter("remote", client=http, sheet="Users", columns=["id", "name"])
    """
    return adapter_registry.create(name, **kwargs)


__all__ = [
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
