"""Tests for the remote row store adapter against an in-process fake service."""

from __future__ import annotations

import httpx
import pytest

from rowspine.core.adapters import ColumnType, IdPolicy, RemoteRowStoreAdapter
from rowspine.core.adapters.remote import deserialize_cell, serialize_cell
from rowspine.core.errors import (
    ConfigurationError,
    DuplicateKeyError,
    RowNotFoundError,
    StorageError,
    TransientStorageError,
    ValidationError,
    is_retryable,
)

COLUMNS = ["id", "name", "age", "tags", "active"]
TYPES = {"age": ColumnType.NUMBER, "tags": ColumnType.STRING_LIST, "active": ColumnType.BOOLEAN}


def make_adapter(fake_store, **kwargs) -> RemoteRowStoreAdapter:
    return RemoteRowStoreAdapter(
        fake_store.client(), "Users", COLUMNS, column_types=TYPES, table="users", **kwargs
    )


class TestCellConversion:
    def test_serialize(self):
        assert serialize_cell(None) == ""
        assert serialize_cell(["a", "b"], ColumnType.STRING_LIST) == '["a", "b"]'
        assert serialize_cell(True, ColumnType.BOOLEAN) == "TRUE"
        assert serialize_cell({"k": 1}) == '{"k": 1}'
        assert serialize_cell(5) == 5

    def test_deserialize_typed(self):
        assert deserialize_cell("", ColumnType.STRING_LIST) == []
        assert deserialize_cell("FALSE", ColumnType.BOOLEAN) is False
        assert deserialize_cell("3", ColumnType.NUMBER) == 3
        assert deserialize_cell("2.5", ColumnType.NUMBER) == 2.5

    def test_deserialize_untyped_json_text(self):
        assert deserialize_cell('{"a": 1}') == {"a": 1}
        assert deserialize_cell("[not json") == "[not json"
        assert deserialize_cell("") is None


class TestRemoteCrud:
    @pytest.mark.asyncio
    async def test_first_insert_writes_header(self, fake_store):
        store = make_adapter(fake_store)
        row = await store.insert({"name": "Alice", "age": 30, "tags": ["x"], "active": True})
        assert row == {"id": 1, "name": "Alice", "age": 30, "tags": ["x"], "active": True}
        assert fake_store.sheets["Users"][0] == COLUMNS
        assert fake_store.sheets["Users"][1] == [1, "Alice", 30, '["x"]', "TRUE"]

    @pytest.mark.asyncio
    async def test_find_all_and_find_by_id(self, fake_store):
        store = make_adapter(fake_store)
        await store.batch_insert([{"name": "Alice"}, {"name": "Bob"}])
        rows = await store.find_all()
        assert [r["name"] for r in rows] == ["Alice", "Bob"]
        assert (await store.find_by_id("2"))["name"] == "Bob"

    @pytest.mark.asyncio
    async def test_blank_rows_are_skipped(self, fake_store):
        fake_store.sheets["Users"] = [COLUMNS, ["", "", "", "", ""], [4, "Dana", 9, "", ""]]
        store = make_adapter(fake_store)
        rows = await store.find_all()
        assert len(rows) == 1
        assert rows[0]["id"] == 4
        assert rows[0]["tags"] == []

    @pytest.mark.asyncio
    async def test_update_rewrites_the_row(self, fake_store):
        store = make_adapter(fake_store)
        await store.insert({"name": "Alice", "age": 30})
        updated = await store.update(1, {"age": 31})
        assert updated["age"] == 31
        assert updated["name"] == "Alice"
        assert fake_store.sheets["Users"][1][2] == 31

    @pytest.mark.asyncio
    async def test_delete_then_sequential_id_not_reused(self, fake_store):
        store = make_adapter(fake_store)
        await store.batch_insert([{"name": "a"}, {"name": "b"}])
        await store.delete(2)
        row = await store.insert({"name": "c"})
        assert row["id"] == 3

    @pytest.mark.asyncio
    async def test_missing_row_raises(self, fake_store):
        store = make_adapter(fake_store)
        with pytest.raises(RowNotFoundError):
            await store.find_by_id(1)
        with pytest.raises(RowNotFoundError):
            await store.delete(1)

    @pytest.mark.asyncio
    async def test_client_ids_and_duplicates(self, fake_store):
        store = make_adapter(fake_store, id_policy=IdPolicy.CLIENT)
        await store.insert({"id": "u-1", "name": "Alice"})
        with pytest.raises(DuplicateKeyError):
            await store.insert({"id": "u-1", "name": "Again"})

    @pytest.mark.asyncio
    async def test_unknown_column_rejected(self, fake_store):
        store = make_adapter(fake_store)
        with pytest.raises(ValidationError):
            await store.insert({"email": "x@example.com"})

    def test_id_column_must_be_in_columns(self, fake_store):
        with pytest.raises(ConfigurationError):
            RemoteRowStoreAdapter(fake_store.client(), "Users", ["name"])


class TestRemoteFailures:
    @pytest.mark.asyncio
    async def test_server_error_is_transient(self, fake_store):
        store = make_adapter(fake_store)
        fake_store.fail_with = 503
        with pytest.raises(TransientStorageError) as exc_info:
            await store.find_all()
        assert is_retryable(exc_info.value)

    @pytest.mark.asyncio
    async def test_client_error_is_not_retryable(self, fake_store):
        store = make_adapter(fake_store)
        fake_store.fail_with = 403
        with pytest.raises(StorageError) as exc_info:
            await store.find_all()
        assert not is_retryable(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = httpx.AsyncClient(base_url="https://rows.test", transport=httpx.MockTransport(handler))
        store = RemoteRowStoreAdapter(client, "Users", COLUMNS)
        with pytest.raises(TransientStorageError):
            await store.find_all()

    @pytest.mark.asyncio
    async def test_aclose_only_closes_owned_client(self, fake_store):
        client = fake_store.client()
        await RemoteRowStoreAdapter(client, "Users", COLUMNS).aclose()
        assert not client.is_closed
        await RemoteRowStoreAdapter(client, "Users", COLUMNS, owns_client=True).aclose()
        assert client.is_closed
