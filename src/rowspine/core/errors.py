"""
Structured error types for row-spine.

Every failure the engine surfaces is a :class:`RowSpineError` carrying a
category, a retry flag, structured context (table, row id, migration
version) and an optional chained cause. Callers branch on the subclass;
log pipelines serialize with :meth:`RowSpineError.to_dict`.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        RowSpineError                          │
        │        (category, retryable, context, cause)                  │
        ├──────────────────────────────────────────────────────────────┤
        │  ConfigurationError      NotFoundError        ValidationError │
        │  (CONFIG)                (NOT_FOUND)          (VALIDATION)    │
        │      │                       │                     │          │
        │  MissingStoreError       TableNotFoundError   InvalidOperator │
        │                          RowNotFoundError     MigrationDef... │
        │                          NoResultsError                       │
        │                                                               │
        │  DuplicateKeyError       StorageError         MigrationError  │
        │  (CONFLICT)              (STORAGE)            (MIGRATION)     │
        │                              │                     │          │
        │                     TransientStorageError  MigrationExecution │
        └──────────────────────────────────────────────────────────────┘

Propagation:
    - ConfigurationError is raised at construction time (Engine, runner)
      and aborts construction entirely.
    - NotFound / Validation / DuplicateKey errors are raised to the
      immediate caller and never leave committed rows half-written.
    - MigrationDefinitionError is the one non-fatal error: the runner
      records it, logs a warning and continues with the valid set.

Examples:
    >>> err = RowNotFoundError(7, table="users")
    >>> str(err)
    'Row with id "7" not found in table "users"'
    >>> err.to_dict()["category"]
    'NOT_FOUND'

Tags:
    error-handling, exception-hierarchy, row-spine
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for routing and logging."""

    CONFIG = "CONFIG"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    STORAGE = "STORAGE"
    MIGRATION = "MIGRATION"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only non-None fields are emitted by :meth:`to_dict`; anything that does
    not fit a named field goes into ``metadata``.

    Attributes:
        table: Logical table name involved in the failure
        row_id: Row identifier involved in the failure
        version: Migration version involved in the failure
        metadata: Additional key-value pairs
    """

    table: str | None = None
    row_id: int | str | None = None
    version: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ("table", "row_id", "version"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RowSpineError(Exception):
    """
    Base exception for all row-spine errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override both per instance.

    Examples:
        >>> error = RowSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(table="users").context.table
        'users'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RowSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StorageError("append failed").with_context(table="users")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(RowSpineError):
    """
    Configuration error.

    Never retryable - the schema, adapter map or migration set must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingStoreError(ConfigurationError):
    """A declared table has no storage adapter bound to it."""

    def __init__(self, table: str, **kwargs: Any):
        super().__init__(
            f'Missing store for table "{table}"',
            context=ErrorContext(table=table),
            **kwargs,
        )
        self.table = table


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(RowSpineError):
    """Lookup of a table, row or query result came back empty."""

    default_category = ErrorCategory.NOT_FOUND
    default_retryable = False


class TableNotFoundError(NotFoundError):
    """Unknown table name; the message lists every known table."""

    def __init__(self, table: str, available: Iterable[str], **kwargs: Any):
        self.table = table
        self.available = list(available)
        super().__init__(
            f'Table "{table}" not found. Available: {", ".join(self.available)}',
            context=ErrorContext(table=table),
            **kwargs,
        )


class RowNotFoundError(NotFoundError):
    """No row with the given id."""

    def __init__(self, row_id: int | str, table: str | None = None, **kwargs: Any):
        self.row_id = row_id
        self.table = table
        table_info = f' in table "{table}"' if table else ""
        super().__init__(
            f'Row with id "{row_id}" not found{table_info}',
            context=ErrorContext(table=table, row_id=row_id),
            **kwargs,
        )


class NoResultsError(NotFoundError):
    """A query expected at least one row and matched none."""

    def __init__(self, table: str | None = None, **kwargs: Any):
        self.table = table
        table_info = f' in table "{table}"' if table else ""
        super().__init__(
            f"No results found{table_info}",
            context=ErrorContext(table=table),
            **kwargs,
        )


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(RowSpineError):
    """
    Data validation error.

    Never retryable - the input must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.constraint = constraint

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        if self.constraint:
            result["constraint"] = self.constraint
        return result


class InvalidOperatorError(ValidationError):
    """Comparison operator outside the supported set."""

    def __init__(self, operator: str, valid_operators: Iterable[str], **kwargs: Any):
        self.operator = operator
        self.valid_operators = list(valid_operators)
        super().__init__(
            f'Invalid operator "{operator}". Valid operators: {", ".join(self.valid_operators)}',
            value=operator,
            constraint="operator",
            **kwargs,
        )


class MigrationDefinitionError(ValidationError):
    """A migration definition is malformed (bad version, name or producers)."""


# =============================================================================
# CONFLICT ERRORS
# =============================================================================


class DuplicateKeyError(RowSpineError):
    """A client-supplied id is already present in the table."""

    default_category = ErrorCategory.CONFLICT
    default_retryable = False

    def __init__(self, row_id: int | str, table: str | None = None, **kwargs: Any):
        self.row_id = row_id
        self.table = table
        table_info = f' in table "{table}"' if table else ""
        super().__init__(
            f'Duplicate id "{row_id}"{table_info}',
            context=ErrorContext(table=table, row_id=row_id),
            **kwargs,
        )


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageError(RowSpineError):
    """Backend storage failure (bad response, unexpected payload)."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


class TransientStorageError(StorageError):
    """Backend temporarily unavailable (transport failure, 5xx)."""

    default_retryable = True


# =============================================================================
# MIGRATION ERRORS
# =============================================================================


class MigrationError(RowSpineError):
    """Migration run failure."""

    default_category = ErrorCategory.MIGRATION
    default_retryable = False


class MigrationExecutionError(MigrationError):
    """An ``up`` or ``down`` producer raised while running."""

    def __init__(self, version: int, name: str, cause: BaseException, **kwargs: Any):
        self.version = version
        self.migration_name = name
        super().__init__(
            f"Migration {version} ({name}) failed: {cause}",
            context=ErrorContext(version=version, metadata={"migration": name}),
            cause=cause,
            **kwargs,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, RowSpineError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RowSpineError",
    # Config
    "ConfigurationError",
    "MissingStoreError",
    # Not found
    "NotFoundError",
    "TableNotFoundError",
    "RowNotFoundError",
    "NoResultsError",
    # Validation
    "ValidationError",
    "InvalidOperatorError",
    "MigrationDefinitionError",
    # Conflict
    "DuplicateKeyError",
    # Storage
    "StorageError",
    "TransientStorageError",
    # Migration
    "MigrationError",
    "MigrationExecutionError",
    # Utilities
    "is_retryable",
]
