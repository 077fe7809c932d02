"""Remote row-store adapter (HTTP).

Proxies the storage contract to a spreadsheet-like service that holds
each table as a grid: one header row followed by one row of cells per
record. The service speaks a small JSON protocol::

    GET    /sheets/{sheet}/values                -> {"values": [[header], [cells], ...]}
    POST   /sheets/{sheet}/values:append         body {"values": [[cells], ...]}
    PUT    /sheets/{sheet}/values/{row_number}   body {"values": [[cells]]}
    DELETE /sheets/{sheet}/rows/{row_number}

Row numbers are 1-based and count the header, so the first record is
row 2. The service has no query language: every operation reads the
grid, which makes each call a latency-bound round-trip. Calls are
awaited one after another; the adapter never issues concurrent requests.

Cells are plain JSON scalars. Lists and objects are stored as JSON text,
booleans as ``TRUE``/``FALSE`` and ``None`` as an empty cell; declared
:class:`~rowspine.core.adapters.types.ColumnType` values drive the
conversion back, and untyped cells that look like JSON arrays or objects
are parsed.

Tags:
    row-spine, storage, remote, httpx, latency-bound
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any
from urllib.parse import quote

import httpx

from rowspine.core.errors import (
    ConfigurationError,
    DuplicateKeyError,
    RowNotFoundError,
    StorageError,
    TransientStorageError,
    ValidationError,
)
from rowspine.core.logging import get_logger

from .base import Row, RowId, StorageAdapter
from .types import ColumnType, IdPolicy

logger = get_logger(__name__)

_LIST_TYPES = (ColumnType.STRING_LIST, ColumnType.NUMBER_LIST)
_OBJECT_TYPES = (ColumnType.OBJECT, ColumnType.JSON)


def serialize_cell(value: Any, column_type: ColumnType | None = None) -> Any:
    """Convert a Python value to a grid cell."""
    if value is None:
        return ""
    if column_type in _LIST_TYPES:
        return json.dumps(list(value)) if isinstance(value, (list, tuple)) else "[]"
    if column_type in _OBJECT_TYPES:
        return json.dumps(value) if isinstance(value, (dict, list)) else ""
    if column_type is ColumnType.BOOLEAN:
        return "TRUE" if value else "FALSE"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if column_type is None and isinstance(value, (list, tuple, dict)):
        return json.dumps(value)
    return value


def deserialize_cell(value: Any, column_type: ColumnType | None = None) -> Any:
    """Convert a grid cell back to a Python value."""
    if column_type is None:
        if value == "":
            return None
        if isinstance(value, str):
            trimmed = value.strip()
            if (trimmed.startswith("[") and trimmed.endswith("]")) or (
                trimmed.startswith("{") and trimmed.endswith("}")
            ):
                try:
                    return json.loads(trimmed)
                except ValueError:
                    return value
        return value

    if value == "" or value is None:
        if column_type in _LIST_TYPES:
            return []
        if column_type is ColumnType.BOOLEAN:
            return False
        return None

    if column_type in _LIST_TYPES or column_type in _OBJECT_TYPES:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                return [] if column_type in _LIST_TYPES else None
        return value
    if column_type is ColumnType.BOOLEAN:
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)
    if column_type is ColumnType.NUMBER:
        number = float(value)
        return int(number) if number.is_integer() else number
    if column_type is ColumnType.STRING:
        return str(value)
    return value


class RemoteRowStoreAdapter(StorageAdapter):
    """
    Storage adapter over the remote grid service.

    Parameters
    ----------
    client
        ``httpx.AsyncClient`` with ``base_url`` (and auth headers) set.
        The adapter does not own the client; close it in the caller.
    sheet
        Physical grid name on the service.
    columns
        Column order of the grid; must include the id column.
    column_types
        Optional per-column :class:`ColumnType` for cell conversion.
    owns_client
        Close ``client`` in :meth:`aclose` (set by the client factory when
        it created the client).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        sheet: str,
        columns: Sequence[str],
        *,
        id_policy: IdPolicy | str = IdPolicy.SEQUENTIAL,
        id_column: str = "id",
        column_types: Mapping[str, ColumnType | str] | None = None,
        table: str | None = None,
        owns_client: bool = False,
    ):
        super().__init__(id_policy=id_policy, id_column=id_column, table=table or sheet)
        if id_column not in columns:
            raise ConfigurationError(
                f"ID column {id_column!r} must be included in columns for sheet {sheet!r}"
            )
        self._client = client
        self._owns_client = owns_client
        self._sheet = sheet
        self._columns = list(columns)
        self._column_types = {
            name: ColumnType(kind) for name, kind in (column_types or {}).items()
        }
        self._base_path = f"/sheets/{quote(sheet, safe='')}"
        # ids handed out by this instance; the grid alone forgets deleted maxima
        self._high_water = 0

    @property
    def sheet(self) -> str:
        return self._sheet

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    # -- StorageAdapter ----------------------------------------------------

    async def insert(self, data: Mapping[str, Any]) -> Row:
        self._check_insert_id(data)
        self._check_columns(data)
        has_header, records = await self._read()

        row = dict(data)
        if self.id_policy is IdPolicy.SEQUENTIAL:
            existing = self._max_int_id([record[self.id_column] for _, record in records])
            self._high_water = max(self._high_water, existing) + 1
            row[self.id_column] = self._high_water
        elif self._locate(records, row[self.id_column]) is not None:
            raise DuplicateKeyError(row[self.id_column], self.table)

        cells = self._to_cells(row)
        values = [cells] if has_header else [self._columns, cells]
        await self._request("POST", f"{self._base_path}/values:append", json={"values": values})
        logger.debug("remote.inserted", sheet=self._sheet, row_id=row[self.id_column])
        return self._from_cells(cells)

    async def find_by_id(self, row_id: RowId) -> Row:
        _, records = await self._read()
        found = self._locate(records, row_id)
        if found is None:
            raise RowNotFoundError(row_id, self.table)
        return found[1]

    async def find_all(self) -> list[Row]:
        _, records = await self._read()
        return [record for _, record in records]

    async def update(self, row_id: RowId, patch: Mapping[str, Any]) -> Row:
        self._check_patch(patch)
        self._check_columns(patch)
        _, records = await self._read()
        found = self._locate(records, row_id)
        if found is None:
            raise RowNotFoundError(row_id, self.table)

        row_number, current = found
        cells = self._to_cells({**current, **patch})
        await self._request(
            "PUT", f"{self._base_path}/values/{row_number}", json={"values": [cells]}
        )
        return self._from_cells(cells)

    async def delete(self, row_id: RowId) -> None:
        _, records = await self._read()
        found = self._locate(records, row_id)
        if found is None:
            raise RowNotFoundError(row_id, self.table)
        await self._request("DELETE", f"{self._base_path}/rows/{found[0]}")

    async def aclose(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    # -- internals ---------------------------------------------------------

    async def _read(self) -> tuple[bool, list[tuple[int, Row]]]:
        """Fetch the grid; returns (header present, [(row_number, row), ...])."""
        payload = await self._request("GET", f"{self._base_path}/values")
        values = payload.get("values") if isinstance(payload, dict) else None
        if values is None:
            raise StorageError(f"Malformed grid payload for sheet {self._sheet!r}").with_context(
                table=self.table
            )
        if not values:
            return False, []

        records: list[tuple[int, Row]] = []
        for index, cells in enumerate(values[1:], start=2):
            if all(cell in ("", None) for cell in cells):
                continue
            records.append((index, self._from_cells(cells)))
        return True, records

    def _locate(self, records: list[tuple[int, Row]], row_id: RowId) -> tuple[int, Row] | None:
        wanted = str(row_id)
        for row_number, record in records:
            if str(record.get(self.id_column)) == wanted:
                return row_number, record
        return None

    def _check_columns(self, data: Mapping[str, Any]) -> None:
        unknown = [key for key in data if key not in self._columns]
        if unknown:
            raise ValidationError(
                f"Unknown column(s) for sheet {self._sheet!r}: {', '.join(unknown)}",
                field=unknown[0],
                constraint="declared-column",
            )

    def _to_cells(self, row: Mapping[str, Any]) -> list[Any]:
        return [serialize_cell(row.get(name), self._column_types.get(name)) for name in self._columns]

    def _from_cells(self, cells: Sequence[Any]) -> Row:
        row: Row = {}
        for index, name in enumerate(self._columns):
            cell = cells[index] if index < len(cells) else ""
            value = deserialize_cell(cell, self._column_types.get(name))
            if name == self.id_column and isinstance(value, float) and value.is_integer():
                value = int(value)
            row[name] = value
        return row

    async def _request(self, method: str, url: str, *, json: Any = None) -> Any:
        logger.debug("remote.request", method=method, url=url)
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.TransportError as exc:
            raise TransientStorageError(
                f"{method} {url} failed: {exc}", cause=exc
            ).with_context(table=self.table) from exc

        if response.status_code >= 500:
            raise TransientStorageError(
                f"{method} {url} returned {response.status_code}"
            ).with_context(table=self.table, http_status=response.status_code)
        if response.status_code >= 400:
            raise StorageError(
                f"{method} {url} returned {response.status_code}: {response.text}"
            ).with_context(table=self.table, http_status=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StorageError(f"{method} {url} returned invalid JSON", cause=exc).with_context(
                table=self.table
            ) from exc


__all__ = [
    "RemoteRowStoreAdapter",
    "serialize_cell",
    "deserialize_cell",
]
