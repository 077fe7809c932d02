"""
Declared table metadata.

The external code generator hands the engine a table-schema map::

    {
        "tables": {
            "users": {"columns": ["id", "name", "age"], "storageName": "Users"},
            "posts": {"columns": ["id", "title", "user_id"]},
        }
    }

:meth:`Schema.from_mapping` validates that map into frozen models. Once an
:class:`~rowspine.core.engine.Engine` is built from it the declared column
sets never change.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from rowspine.core.adapters.types import ColumnType
from rowspine.core.errors import ConfigurationError, TableNotFoundError


class TableSchema(BaseModel):
    """Metadata for one logical table.

    Fields
    ──────
    name         : Logical table name (the key callers pass to ``Engine.from_``)
    columns      : Declared column names, in storage order
    storage_name : Physical name in the backend (sheet name); defaults to ``name``
    id_column    : Identifier field name
    column_types : Optional per-column cell types for the remote serializer
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    columns: tuple[str, ...]
    storage_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("storage_name", "storageName", "sheetName"),
    )
    id_column: str = Field(
        default="id",
        min_length=1,
        validation_alias=AliasChoices("id_column", "idColumn"),
    )
    column_types: dict[str, ColumnType] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("column_types", "columnTypes"),
    )

    @field_validator("columns")
    @classmethod
    def _unique_columns(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        seen: set[str] = set()
        for column in value:
            if not column:
                raise ValueError("column names must be non-empty")
            if column in seen:
                raise ValueError(f"duplicate column {column!r}")
            seen.add(column)
        return value

    @model_validator(mode="after")
    def _typed_columns_are_declared(self) -> TableSchema:
        undeclared = sorted(set(self.column_types) - set(self.columns))
        if undeclared:
            raise ValueError(f"column_types references undeclared columns: {', '.join(undeclared)}")
        return self

    @property
    def physical_name(self) -> str:
        return self.storage_name or self.name

    @property
    def field_names(self) -> frozenset[str]:
        """Every field a row of this table may carry (columns plus the id)."""
        return frozenset(self.columns) | {self.id_column}

    def storage_columns(self) -> list[str]:
        """Column order used by a grid backend; the id column is always present."""
        if self.id_column in self.columns:
            return list(self.columns)
        return [self.id_column, *self.columns]

    def unknown_fields(self, keys: Iterable[str]) -> list[str]:
        allowed = self.field_names
        return [key for key in keys if key not in allowed]


class Schema(BaseModel):
    """Immutable table-name -> :class:`TableSchema` map."""

    model_config = ConfigDict(frozen=True)

    tables: dict[str, TableSchema]

    @model_validator(mode="after")
    def _keys_match_names(self) -> Schema:
        for key, table in self.tables.items():
            if key != table.name:
                raise ValueError(f"table key {key!r} does not match table name {table.name!r}")
        return self

    @classmethod
    def from_mapping(cls, data: Schema | Mapping[str, Any]) -> Schema:
        """Validate an external ``{"tables": {...}}`` map.

        Table entries may omit ``name``; the map key is used.

        Raises:
            ConfigurationError: the map is malformed.
        """
        if isinstance(data, Schema):
            return data
        if "tables" not in data:
            raise ConfigurationError('Schema map must have a "tables" key')

        tables: dict[str, Any] = {}
        for key, entry in dict(data["tables"]).items():
            if isinstance(entry, TableSchema):
                tables[key] = entry
            else:
                tables[key] = {"name": key, **dict(entry)}

        try:
            return cls.model_validate({"tables": tables})
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid schema: {exc}", cause=exc) from exc

    @property
    def names(self) -> list[str]:
        return list(self.tables)

    def table(self, name: str) -> TableSchema:
        try:
            return self.tables[name]
        except KeyError:
            raise TableNotFoundError(name, self.tables) from None


__all__ = [
    "TableSchema",
    "Schema",
]
