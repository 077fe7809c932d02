"""Adapter-level enums: id allocation policy and remote column types."""

from __future__ import annotations

from enum import Enum


class IdPolicy(str, Enum):
    """How an adapter assigns row identifiers.

    - ``sequential``: the adapter allocates ``1 + highest id seen`` and never
      hands out an id again after the row holding it is deleted.
    - ``client``: the caller supplies the id on insert.
    """

    SEQUENTIAL = "sequential"
    CLIENT = "client"


class ColumnType(str, Enum):
    """Cell types understood by the remote row store serializer."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    STRING_LIST = "string[]"
    NUMBER_LIST = "number[]"
    OBJECT = "object"
    JSON = "json"


__all__ = [
    "IdPolicy",
    "ColumnType",
]
