"""
Structured error types for schemadb.

Every failure the data-access layer raises on its own behalf is a
``SchemaDBError`` subclass carrying a category, a structured context and an
optional chained cause.  Errors raised by the storage engine for individual
statements (constraint violations, SQL syntax errors) are **not** wrapped:
they reach the caller as the original ``sqlite3.Error``.

Manifesto:
    - **Typed hierarchy:** One class per failure domain (schema, validation,
      codec, query, transaction, migration, storage, config)
    - **Rich context:** Errors carry table/column/migration metadata
    - **Error chaining:** Original exceptions are preserved as ``cause``
    - **No retries:** Nothing in this package retries; errors surface at once

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      SchemaDBError                           │
        │               (category, context, cause)                     │
        ├─────────────────────────────────────────────────────────────┤
        │  SchemaError        ValidationError      CodecError          │
        │  (SCHEMA)           (VALIDATION)         (CODEC)             │
        │                                                              │
        │  QueryError         TransactionError     MigrationError      │
        │  (QUERY)            (TRANSACTION)        (MIGRATION)         │
        │                                                              │
        │  StorageError       ConfigError                              │
        │  (STORAGE)          (CONFIG)                                 │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = SchemaError("Table users does not exist").with_context(table="users")
    >>> error.context.table
    'users'
    >>> error.to_dict()["category"]
    'SCHEMA'

Guardrails:
    ❌ DON'T: Wrap engine errors for individual statements
    ✅ DO: Let ``sqlite3.IntegrityError`` and friends propagate unmodified

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as ``cause=`` for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, schemadb
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and logging."""

    SCHEMA = "SCHEMA"             # Undefined table, invalid column definitions
    VALIDATION = "VALIDATION"     # Payload rejected by a registered validator
    CODEC = "CODEC"               # Value could not be encoded for storage
    QUERY = "QUERY"               # Invalid query options
    TRANSACTION = "TRANSACTION"   # Transaction handle misuse
    MIGRATION = "MIGRATION"       # A migration unit failed
    STORAGE = "STORAGE"           # Engine lifecycle, backup, connect
    CONFIG = "CONFIG"             # Invalid settings
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        table: Table the failing operation referenced
        column: Column involved, if any
        operation: Public operation name (``insert``, ``find``, ``migrate``...)
        migration: Migration unit name
        metadata: Additional key-value pairs
    """

    table: str | None = None
    column: str | None = None
    operation: str | None = None
    migration: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["table", "column", "operation", "migration"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SchemaDBError(Exception):
    """
    Base exception for all schemadb errors.

    Subclasses set ``default_category`` so callers and log processors can
    route on ``error.category`` without isinstance chains.

    Examples:
        >>> error = SchemaDBError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> try:
        ...     raise ValueError("bad")
        ... except ValueError as e:
        ...     error = SchemaDBError("Wrapped", cause=e)
        >>> error.cause
        ValueError('bad')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SchemaDBError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SchemaError("Unknown column").with_context(
                table="users",
                column="nickname",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
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
# SCHEMA ERRORS
# =============================================================================


class SchemaError(SchemaDBError):
    """Operation referenced an undefined table, or a schema is invalid."""

    default_category = ErrorCategory.SCHEMA


class TableNotFoundError(SchemaError):
    """Table has not been defined on this database instance."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(
            f"Table {table} does not exist",
            context=ErrorContext(table=table),
        )


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(SchemaDBError):
    """
    Payload failed the table's registered validator.

    ``errors`` holds the validator's structured error list (for pydantic
    validators, the output of ``ValidationError.errors()``).
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.errors = errors or []

    @property
    def fields(self) -> list[str]:
        """Dotted field paths that failed validation."""
        return [".".join(str(p) for p in err.get("loc", ())) for err in self.errors]

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.errors:
            result["fields"] = self.fields
        return result


# =============================================================================
# CODEC / QUERY ERRORS
# =============================================================================


class CodecError(SchemaDBError):
    """A value could not be encoded for storage.

    Only raised on the write path; decode failures are swallowed.
    """

    default_category = ErrorCategory.CODEC


class QueryError(SchemaDBError):
    """Query options or payload shape cannot be turned into SQL."""

    default_category = ErrorCategory.QUERY


# =============================================================================
# TRANSACTION / MIGRATION ERRORS
# =============================================================================


class TransactionError(SchemaDBError):
    """Transaction handle used twice, or a nested transaction was requested."""

    default_category = ErrorCategory.TRANSACTION


class MigrationError(SchemaDBError):
    """A migration unit failed; its changes and ledger write were rolled back."""

    default_category = ErrorCategory.MIGRATION

    def __init__(self, name: str, direction: str, cause: BaseException | None = None):
        self.name = name
        self.direction = direction
        super().__init__(
            f"Migration {name} failed ({direction}): {cause}",
            context=ErrorContext(migration=name, operation=f"migrate:{direction}"),
            cause=cause,
        )


# =============================================================================
# STORAGE / CONFIG ERRORS
# =============================================================================


class StorageError(SchemaDBError):
    """Storage engine lifecycle error (closed connection, backup, connect)."""

    default_category = ErrorCategory.STORAGE


class ConfigError(SchemaDBError):
    """Configuration value is missing or invalid."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SchemaDBError",
    "SchemaError",
    "TableNotFoundError",
    "ValidationError",
    "CodecError",
    "QueryError",
    "TransactionError",
    "MigrationError",
    "StorageError",
    "ConfigError",
]
