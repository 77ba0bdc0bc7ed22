"""schemadb core -- schema-driven data access over SQLite.

Manifesto:
    Declare each table once as a mapping of column flags.  Everything the
    data-access layer does afterwards (DDL, encryption of sensitive
    columns, JSON columns, soft deletes, validation, change events) is
    derived from that declaration.

Architecture::

    Layer 1 -- Errors, Logging & Settings
        errors.py          Structured error hierarchy (SchemaDBError)
        logging.py         structlog configuration + get_logger
        settings.py        SchemaDBSettings (SCHEMADB_* environment)

    Layer 2 -- Storage
        dialect.py         SQLite identifiers, placeholders, literals
        engine.py          SQLiteEngine (run / all / pragma / backup)

    Layer 3 -- Data Access
        schema.py          ColumnDefinition + SchemaRegistry (DDL)
        codec.py           FieldCodec (JSON + Fernet encryption)
        query.py           QueryBuilder (parameterised CRUD SQL)
        validation.py      ValidationGate (pydantic validators)
        transaction.py     TransactionManager (begin / atomic)
        events/            Topic, Event, InMemoryEventBus
        migrations/        MigrationRunner + file loader

    Layer 4 -- Facade
        database.py        Database
"""

from schemadb.core.codec import FieldCodec
from schemadb.core.database import Database
from schemadb.core.engine import RunResult, SQLiteEngine
from schemadb.core.errors import (
    CodecError,
    ConfigError,
    ErrorCategory,
    MigrationError,
    QueryError,
    SchemaDBError,
    SchemaError,
    StorageError,
    TableNotFoundError,
    TransactionError,
    ValidationError,
)
from schemadb.core.events import Event, Topic
from schemadb.core.events.memory import InMemoryEventBus
from schemadb.core.migrations import Migration, MigrationResult, MigrationRunner
from schemadb.core.query import OrderBy, QueryOptions
from schemadb.core.schema import ColumnDefinition, ColumnType, ForeignKey
from schemadb.core.settings import SchemaDBSettings, load_settings
from schemadb.core.transaction import Transaction

__all__ = [
    # Facade
    "Database",
    # Schema
    "ColumnDefinition",
    "ColumnType",
    "ForeignKey",
    # Queries
    "OrderBy",
    "QueryOptions",
    "RunResult",
    # Components
    "FieldCodec",
    "SQLiteEngine",
    "Transaction",
    "InMemoryEventBus",
    "Event",
    "Topic",
    "Migration",
    "MigrationResult",
    "MigrationRunner",
    # Settings
    "SchemaDBSettings",
    "load_settings",
    # Errors
    "ErrorCategory",
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
