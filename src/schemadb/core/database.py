"""
The ``Database`` facade: one SQLite file, its schemas, validators and events.

Manifesto:
    Application code talks to a single object.  It declares tables once,
    then reads and writes plain dicts; encryption, JSON columns, soft
    deletes and validation are applied from the declared schema so the
    caller never repeats them per query.

Architecture:
    ::

        Database
          ├── SQLiteEngine        connection, PRAGMAs, backup, close
          ├── SchemaRegistry      table → schema, DDL
          ├── FieldCodec          json / encrypted columns
          ├── QueryBuilder        parameterised SQL
          ├── ValidationGate      optional per-table validators
          ├── TransactionManager  BEGIN / COMMIT / ROLLBACK
          └── InMemoryEventBus    <table>:insert|update|delete, transaction:*

    Write: validate → encode → build SQL → run → publish
    Read:  build SQL → run → decode

Examples:
    >>> db = Database(":memory:", encryption_key="s3cret")
    >>> db.create_table("users", {
    ...     "id": {"type": "INTEGER", "primary": True},
    ...     "email": {"type": "TEXT", "unique": True},
    ...     "password": {"type": "TEXT", "encrypted": True},
    ...     "settings": {"type": "TEXT", "json": True},
    ...     "deleted_at": {"type": "DATETIME", "softDelete": True},
    ... })
    >>> db.insert("users", {"email": "a@b.com", "password": "secret123",
    ...                     "settings": {"theme": "dark"}})
    >>> db.find_one("users", {"email": "a@b.com"})["settings"]
    {'theme': 'dark'}

Guardrails:
    ❌ DON'T: Share one ``Database`` across threads
    ✅ DO: Open one instance per thread / process

    ❌ DON'T: Rely on ``encrypted`` columns without configuring a key
    ✅ DO: Set ``encryption_key`` (or ``SCHEMADB_ENCRYPTION_KEY``)

Tags:
    schemadb, facade, sqlite, crud, schema, encryption
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel

from schemadb.core.codec import FieldCodec
from schemadb.core.engine import MEMORY, RunResult, SQLiteEngine
from schemadb.core.events import Event, EventHandler, Topic
from schemadb.core.events.memory import InMemoryEventBus
from schemadb.core.logging import get_logger
from schemadb.core.migrations.loader import create_migration, load_migrations
from schemadb.core.migrations.runner import Migration, MigrationResult, MigrationRunner
from schemadb.core.query import QueryBuilder, QueryOptions
from schemadb.core.schema import ColumnDefinition, SchemaRegistry, TableSchema
from schemadb.core.settings import SchemaDBSettings, load_settings
from schemadb.core.transaction import Transaction, TransactionManager
from schemadb.core.validation import ValidationGate, Validator

logger = get_logger(__name__)

ColumnSpec = ColumnDefinition | Mapping[str, Any]
Row = dict[str, Any]

_UNSET: Any = object()


def _utcnow() -> str:
    return datetime.now(UTC).isoformat()


class Database:
    """
    Schema-driven access to one SQLite database.

    Explicit keyword arguments win over ``settings``; ``settings`` (or the
    ``SCHEMADB_*`` environment when omitted) fills in the rest.

    Args:
        path: Database file, or ``":memory:"``
        encryption_key: Secret for ``encrypted`` columns; ``None`` disables
            encryption (values are stored as plaintext)
        timeout: Busy-wait timeout in seconds
        readonly: Open read-only
        file_must_exist: Fail instead of creating a missing file
        migration_path: Directory ``migrate()`` loads units from
        settings: Pre-built settings object
    """

    def __init__(
        self,
        path: str | Path = _UNSET,
        *,
        encryption_key: str | bytes | None = _UNSET,
        timeout: float = _UNSET,
        readonly: bool = _UNSET,
        file_must_exist: bool = _UNSET,
        migration_path: str | Path | None = _UNSET,
        settings: SchemaDBSettings | None = None,
    ):
        settings = settings or load_settings()

        self.path = str(MEMORY if path is _UNSET else path)
        self.migration_path = Path(
            settings.migration_path if migration_path in (_UNSET, None) else migration_path
        )
        key = settings.secret_key() if encryption_key is _UNSET else encryption_key

        self.engine = SQLiteEngine(
            self.path,
            timeout=settings.timeout if timeout is _UNSET else timeout,
            readonly=settings.readonly if readonly is _UNSET else readonly,
            file_must_exist=(
                settings.file_must_exist if file_must_exist is _UNSET else file_must_exist
            ),
            journal_mode=settings.journal_mode,
        )
        self.events = InMemoryEventBus()
        self.transactions = TransactionManager(self.engine, self.events)
        self.schemas = SchemaRegistry(self.engine, self.transactions)
        self.codec = FieldCodec(key)
        self.queries = QueryBuilder()
        self.validators = ValidationGate()

        logger.info("database.opened", path=self.path, encrypted=self.codec.encrypts)

    @classmethod
    def from_settings(cls, settings: SchemaDBSettings | None = None) -> Database:
        """Open the database named by ``settings.database``."""
        settings = settings or load_settings()
        return cls(settings.database, settings=settings)

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def create_table(self, name: str, schema: Mapping[str, ColumnSpec]) -> Database:
        """Register ``schema`` and create the table if it does not exist."""
        self.schemas.define(name, schema)
        return self

    def alter_table(self, name: str, columns: Mapping[str, ColumnSpec]) -> Database:
        """Add ``columns`` to an existing table."""
        self.schemas.alter(name, columns)
        return self

    def drop_column(self, name: str, column: str) -> Database:
        """Remove ``column`` by rebuilding the table atomically."""
        self.schemas.drop_column(name, column)
        return self

    def get_schema(self, name: str) -> TableSchema:
        return dict(self.schemas.get(name))

    def tables(self) -> list[str]:
        return self.schemas.tables()

    def set_validator(self, table: str, validator: Validator | type[BaseModel] | None) -> Database:
        """Attach a validator to ``table``; ``None`` removes it."""
        if validator is None:
            self.validators.unregister(table)
        else:
            self.validators.register(table, validator)
        return self

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def insert(self, table: str, data: Mapping[str, Any]) -> RunResult:
        schema = self.schemas.get(table)
        payload = self.validators.validate_insert(table, data)
        query = self.queries.insert(table, schema, self.codec.encode_row(schema, payload))

        result = self.engine.run(query.sql, query.params)
        self.events.publish(Topic.table(table, "insert"), {**payload, "id": result.inserted_id})
        return result

    def find(
        self,
        table: str,
        where: Mapping[str, Any] | None = None,
        options: QueryOptions | Mapping[str, Any] | None = None,
    ) -> list[Row]:
        """Rows matching all ``where`` equalities, decoded per column."""
        schema = self.schemas.get(table)
        query = self.queries.select(table, schema, where, QueryOptions.coerce(options))
        rows = self.engine.all(query.sql, query.params)
        return [self.codec.decode_row(schema, row) for row in rows]

    def find_one(
        self,
        table: str,
        where: Mapping[str, Any] | None = None,
        options: QueryOptions | Mapping[str, Any] | None = None,
    ) -> Row | None:
        opts = QueryOptions.coerce(options)
        rows = self.find(
            table,
            where,
            QueryOptions(
                limit=1,
                offset=opts.offset,
                include_deleted=opts.include_deleted,
                order_by=opts.order_by,
            ),
        )
        return rows[0] if rows else None

    def update(
        self,
        table: str,
        data: Mapping[str, Any],
        where: Mapping[str, Any] | None = None,
    ) -> RunResult:
        """Set ``data`` on every row matching ``where`` (all rows when empty)."""
        schema = self.schemas.get(table)
        payload = self.validators.validate_update(table, data)
        query = self.queries.update(table, schema, self.codec.encode_row(schema, payload), where)

        result = self.engine.run(query.sql, query.params)
        self.events.publish(
            Topic.table(table, "update"), {"where": dict(where or {}), "data": payload}
        )
        return result

    def delete(self, table: str, where: Mapping[str, Any] | None = None) -> RunResult:
        """Delete matching rows; tables with a soft-delete column are stamped instead."""
        schema = self.schemas.get(table)
        soft = self.schemas.soft_delete_column(table) is not None
        query = self.queries.delete(table, schema, where, _utcnow())

        result = self.engine.run(query.sql, query.params)
        self.events.publish(
            Topic.table(table, "delete"), {"where": dict(where or {}), "soft": soft}
        )
        return result

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        """Run raw SQL; rows come back undecoded."""
        return self.engine.all(sql, params)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def transaction(self) -> Transaction:
        """Begin a transaction; the caller must commit or roll back."""
        return self.transactions.begin()

    @contextmanager
    def atomic(self) -> Iterator[Transaction | None]:
        """Scoped transaction: commit on success, roll back on error."""
        with self.transactions.atomic() as tx:
            yield tx

    @property
    def in_transaction(self) -> bool:
        return self.transactions.in_transaction

    # ------------------------------------------------------------------
    # Migrations
    # ------------------------------------------------------------------

    def migrator(self, migrations: Sequence[Migration] | None = None) -> MigrationRunner:
        """Runner over ``migrations``, or the units found in ``migration_path``."""
        if migrations is None:
            migrations = load_migrations(self.migration_path)
        return MigrationRunner(self, migrations)

    def migrate(
        self,
        direction: Literal["up", "down"] = "up",
        migrations: Sequence[Migration] | None = None,
        *,
        steps: int | None = None,
    ) -> MigrationResult:
        return self.migrator(migrations).migrate(direction, steps=steps)

    def create_migration(self, name: str) -> Path:
        return create_migration(self.migration_path, name)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, topic: Topic | str, handler: EventHandler) -> str:
        """Subscribe ``handler``; returns the subscription id for ``off``."""
        return self.events.subscribe(topic, handler)

    def off(self, subscription_id: str) -> bool:
        return self.events.unsubscribe(subscription_id)

    def emit(self, topic: Topic | str, payload: dict[str, Any] | None = None) -> Event:
        return self.events.publish(topic, payload)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def backup(self, destination: str | Path) -> Path:
        return self.engine.backup(destination)

    @property
    def closed(self) -> bool:
        return self.engine.closed

    def close(self) -> None:
        """Close the connection.  Safe to call more than once."""
        if not self.engine.closed:
            self.engine.close()
            logger.info("database.closed", path=self.path)

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Database({self.path!r}, tables={self.schemas.tables()})"


__all__ = ["Database", "Row"]
