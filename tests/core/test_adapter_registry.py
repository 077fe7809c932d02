"""Tests for the storage adapter registry."""

from __future__ import annotations

import httpx
import pytest

from rowspine.core.adapters import IdPolicy, InMemoryAdapter, RemoteRowStoreAdapter
from rowspine.core.adapters.registry import AdapterRegistry, adapter_registry, get_adapter
from rowspine.core.errors import ConfigurationError


class TestAdapterRegistry:
    def test_defaults_registered(self):
        assert {"memory", "in-memory", "remote"} <= set(adapter_registry.list_adapters())

    def test_list_is_sorted(self):
        assert adapter_registry.list_adapters() == sorted(adapter_registry.list_adapters())

    def test_create_by_name(self):
        store = get_adapter("memory", id_policy="client")
        assert isinstance(store, InMemoryAdapter)
        assert store.id_policy is IdPolicy.CLIENT

    def test_alias_and_case_insensitive_lookup(self):
        assert isinstance(get_adapter("In-Memory"), InMemoryAdapter)
        assert isinstance(get_adapter("MEMORY", id_column="uid"), InMemoryAdapter)

    def test_create_remote(self):
        client = httpx.AsyncClient(base_url="http://rows.test")
        store = get_adapter("remote", client=client, sheet="Users", columns=["id", "name"])
        assert isinstance(store, RemoteRowStoreAdapter)
        assert store.id_column == "id"

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError, match="Unknown storage adapter: mongodb") as exc_info:
            adapter_registry.create("mongodb")
        assert "memory" in str(exc_info.value)

    def test_register_custom(self):
        registry = AdapterRegistry()

        class NullAdapter(InMemoryAdapter):
            pass

        registry.register("Null", NullAdapter)
        assert "null" in registry.list_adapters()
        assert isinstance(registry.create("null"), NullAdapter)
        assert "null" not in adapter_registry.list_adapters()
