"""Schema operations produced by migrations.

A migration's ``up``/``down`` producer calls a schema builder; each call
is captured as a :class:`SchemaOperation` so runs can be previewed,
logged and compared in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class OperationKind(str, Enum):
    ADD_COLUMN = "add_column"
    REMOVE_COLUMN = "remove_column"
    RENAME_COLUMN = "rename_column"


_MISSING = object()


@dataclass(frozen=True)
class ColumnOptions:
    """Options for ``add_column``: an optional default value and type hint.

    ``has_default`` separates "no default" from an explicit ``None`` default.
    """

    default: Any = None
    type: str | None = None
    has_default: bool = False

    @classmethod
    def coerce(cls, options: ColumnOptions | dict[str, Any] | None) -> ColumnOptions:
        if options is None:
            return cls()
        if isinstance(options, ColumnOptions):
            return options
        default = options.get("default", _MISSING)
        return cls(
            default=None if default is _MISSING else default,
            type=options.get("type"),
            has_default=default is not _MISSING,
        )


@dataclass(frozen=True)
class SchemaOperation:
    """One column-level schema change."""

    kind: OperationKind
    table: str
    column: str | None = None
    old_column: str | None = None
    new_column: str | None = None
    options: ColumnOptions = field(default_factory=ColumnOptions)

    @classmethod
    def add_column(
        cls, table: str, column: str, options: ColumnOptions | dict[str, Any] | None = None
    ) -> SchemaOperation:
        return cls(OperationKind.ADD_COLUMN, table, column=column, options=ColumnOptions.coerce(options))

    @classmethod
    def remove_column(cls, table: str, column: str) -> SchemaOperation:
        return cls(OperationKind.REMOVE_COLUMN, table, column=column)

    @classmethod
    def rename_column(cls, table: str, old: str, new: str) -> SchemaOperation:
        return cls(OperationKind.RENAME_COLUMN, table, old_column=old, new_column=new)

    def describe(self) -> str:
        """Human-readable form, e.g. ``addColumn: users.email (default: x)``."""
        if self.kind is OperationKind.ADD_COLUMN:
            text = f"addColumn: {self.table}.{self.column}"
            if self.options.has_default:
                text += f" (default: {self.options.default})"
            return text
        if self.kind is OperationKind.REMOVE_COLUMN:
            return f"removeColumn: {self.table}.{self.column}"
        return f"renameColumn: {self.table}.{self.old_column} -> {self.new_column}"

    def __str__(self) -> str:
        return self.describe()


__all__ = [
    "OperationKind",
    "ColumnOptions",
    "SchemaOperation",
]
