"""
Shared pytest fixtures for row-spine tests.

This module provides:
- A users/posts schema map and an Engine over in-memory adapters
- ``FakeRowStore``: an ``httpx.MockTransport`` stand-in for the remote
  grid service, so remote-adapter tests never touch the network
- Settings cache isolation
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from rowspine.core.adapters import InMemoryAdapter
from rowspine.core.engine import Engine
from rowspine.core.settings import clear_settings_cache

USERS_SCHEMA: dict[str, Any] = {
    "tables": {
        "users": {"columns": ["id", "name", "age"]},
        "posts": {"columns": ["id", "title", "user_id"], "storageName": "Posts"},
    }
}


class FakeRowStore:
    """In-process grid service speaking the remote row store protocol."""

    def __init__(self, sheets: dict[str, list[list[Any]]] | None = None) -> None:
        self.sheets: dict[str, list[list[Any]]] = sheets or {}
        self.requests: list[tuple[str, str]] = []
        self.fail_with: int | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, text="boom")

        parts = path.strip("/").split("/")
        sheet = parts[1]
        grid = self.sheets.setdefault(sheet, [])
        body = json.loads(request.content) if request.content else None

        if request.method == "GET":
            return httpx.Response(200, json={"values": grid})
        if request.method == "POST" and parts[2] == "values:append":
            grid.extend(body["values"])
            return httpx.Response(200, json={"updatedRows": len(body["values"])})
        if request.method == "PUT":
            grid[int(parts[3]) - 1] = body["values"][0]
            return httpx.Response(200, json={"updatedRows": 1})
        if request.method == "DELETE":
            del grid[int(parts[3]) - 1]
            return httpx.Response(204)
        return httpx.Response(404, text="unknown route")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url="https://rows.test", transport=httpx.MockTransport(self.handler)
        )


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep ROWSPINE_* variables from the host out of tests."""
    for key in (
        "ROWSPINE_REMOTE_BASE_URL",
        "ROWSPINE_REMOTE_TOKEN",
        "ROWSPINE_MIGRATIONS_DIR",
        "ROWSPINE_ID_POLICY",
        "ROWSPINE_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def schema_map() -> dict[str, Any]:
    return USERS_SCHEMA


@pytest.fixture
def engine(schema_map: dict[str, Any]) -> Engine:
    return Engine(schema_map, {"users": InMemoryAdapter(), "posts": InMemoryAdapter()})


@pytest.fixture
def fake_store() -> FakeRowStore:
    return FakeRowStore()
