"""
Declarative table schemas and the registry that turns them into DDL.

A table schema is an ordered mapping of column name to ``ColumnDefinition``.
Definitions are validated when a table is registered, so a typo in a flag
name or a second soft-delete column fails at ``create_table`` time rather
than producing surprising SQL later.

Manifesto:
    The schema is the source of truth for two things: the DDL issued to the
    engine, and how each column's values are coded on the way in and out.
    Both are derived from the same validated ``ColumnDefinition`` objects.

Architecture:
    ::

        {"email": {"type": "TEXT", "unique": True, "index": True}, ...}
            │  coerce_schema()  (pydantic, extra="forbid")
            ▼
        dict[str, ColumnDefinition]
            │  validate_schema()  (identifiers, ≤ 1 soft-delete column)
            ▼
        SchemaRegistry.define()
            ├── CREATE TABLE IF NOT EXISTS users (..., FOREIGN KEY ...)
            └── CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)

Examples:
    >>> registry = SchemaRegistry(SQLiteEngine())
    >>> registry.define("users", {
    ...     "id": {"type": "INTEGER", "primary": True},
    ...     "email": {"type": "TEXT", "unique": True, "index": True},
    ...     "deleted_at": {"type": "DATETIME", "softDelete": True},
    ... })
    >>> registry.soft_delete_column("users")
    'deleted_at'

Guardrails:
    - Re-defining a table replaces the in-memory schema, but
      ``CREATE TABLE IF NOT EXISTS`` leaves the stored table untouched.
      Drift between the two is not detected.
    - ``alter`` surfaces engine limitations (e.g. ``NOT NULL`` without a
      default on a non-empty table) as the engine's own error.

Tags:
    schema, ddl, registry, pydantic, schemadb
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from schemadb.core.dialect import SQLITE, SQLiteDialect
from schemadb.core.errors import SchemaError, TableNotFoundError
from schemadb.core.logging import get_logger

if TYPE_CHECKING:
    from schemadb.core.engine import SQLiteEngine
    from schemadb.core.transaction import TransactionManager

logger = get_logger(__name__)

ReferentialAction = Literal["CASCADE", "SET NULL", "RESTRICT", "NO ACTION", "SET DEFAULT"]


class ColumnType(str, Enum):
    """Storage classes accepted for columns."""

    TEXT = "TEXT"
    INTEGER = "INTEGER"
    REAL = "REAL"
    BLOB = "BLOB"
    NULL = "NULL"
    DATETIME = "DATETIME"


class ForeignKey(BaseModel):
    """Reference from a column to ``table(column)``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    table: str = Field(validation_alias=AliasChoices("table", "target_table", "targetTable"))
    column: str = Field(validation_alias=AliasChoices("column", "target_column", "targetColumn"))
    on_delete: ReferentialAction | None = Field(
        default=None, validation_alias=AliasChoices("on_delete", "onDelete")
    )
    on_update: ReferentialAction | None = Field(
        default=None, validation_alias=AliasChoices("on_update", "onUpdate")
    )

    @field_validator("on_delete", "on_update", mode="before")
    @classmethod
    def _upper_action(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class ColumnDefinition(BaseModel):
    """
    One column of a table schema.

    Only the recognised flags are accepted; anything else is a
    registration error.  ``default`` distinguishes "no default" from
    "default NULL" through ``has_default``.  The JSON flag is spelled
    ``json`` on input and stored as ``json_`` (``BaseModel.json`` is taken).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: ColumnType
    primary: bool = False
    unique: bool = False
    not_null: bool = Field(default=False, validation_alias=AliasChoices("not_null", "notNull"))
    default: Any = None
    encrypted: bool = False
    indexed: bool = Field(default=False, validation_alias=AliasChoices("indexed", "index"))
    json_: bool = Field(default=False, validation_alias=AliasChoices("json", "json_"))
    soft_delete: bool = Field(
        default=False, validation_alias=AliasChoices("soft_delete", "softDelete")
    )
    foreign_key: ForeignKey | None = Field(
        default=None, validation_alias=AliasChoices("foreign_key", "foreignKey")
    )

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_flags(self) -> ColumnDefinition:
        if self.soft_delete and self.not_null:
            raise ValueError("a soft-delete column must be nullable")
        if self.soft_delete and self.primary:
            raise ValueError("a soft-delete column cannot be the primary key")
        return self

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set


TableSchema = dict[str, ColumnDefinition]


def coerce_column(name: str, definition: ColumnDefinition | Mapping[str, Any]) -> ColumnDefinition:
    """Validate one column definition given as a model or a plain mapping."""
    if isinstance(definition, ColumnDefinition):
        return definition
    try:
        return ColumnDefinition.model_validate(definition)
    except PydanticValidationError as exc:
        raise SchemaError(
            f"Invalid definition for column {name}: {exc}", cause=exc
        ).with_context(column=name) from exc


def coerce_schema(schema: Mapping[str, ColumnDefinition | Mapping[str, Any]]) -> TableSchema:
    """Validate every column of a schema, preserving declaration order."""
    return {name: coerce_column(name, definition) for name, definition in schema.items()}


def validate_schema(table: str, schema: TableSchema, dialect: SQLiteDialect = SQLITE) -> None:
    """Check identifiers and cross-column invariants of a coerced schema."""
    dialect.check_identifier(table, "table")
    if not schema:
        raise SchemaError(f"Table {table} must declare at least one column").with_context(
            table=table
        )

    soft_delete = [name for name, col in schema.items() if col.soft_delete]
    if len(soft_delete) > 1:
        raise SchemaError(
            f"Table {table} declares more than one soft-delete column: {', '.join(soft_delete)}"
        ).with_context(table=table, columns=soft_delete)

    primary = [name for name, col in schema.items() if col.primary]
    if len(primary) > 1:
        raise SchemaError(
            f"Table {table} declares more than one primary key column: {', '.join(primary)}"
        ).with_context(table=table, columns=primary)

    for name, col in schema.items():
        dialect.check_identifier(name, "column")
        if col.foreign_key is not None:
            dialect.check_identifier(col.foreign_key.table, "table")
            dialect.check_identifier(col.foreign_key.column, "column")


def find_soft_delete_column(schema: TableSchema) -> str | None:
    for name, col in schema.items():
        if col.soft_delete:
            return name
    return None


class SchemaRegistry:
    """
    Owns the table-name → schema mapping of one ``Database`` instance.

    The registry issues all DDL through the engine.  ``drop_column`` runs
    its rebuild inside ``transactions.atomic()`` when a transaction
    manager is supplied.
    """

    def __init__(
        self,
        engine: SQLiteEngine,
        transactions: TransactionManager | None = None,
        dialect: SQLiteDialect = SQLITE,
    ):
        self._engine = engine
        self._transactions = transactions
        self._dialect = dialect
        self._tables: dict[str, TableSchema] = {}

    # -- Lookup ------------------------------------------------------------

    def get(self, name: str) -> TableSchema:
        """Return the schema for ``name``; raise ``TableNotFoundError`` if undefined."""
        try:
            return self._tables[name]
        except KeyError:
            raise TableNotFoundError(name) from None

    def tables(self) -> list[str]:
        return list(self._tables)

    def soft_delete_column(self, name: str) -> str | None:
        return find_soft_delete_column(self.get(name))

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    # -- DDL generation ----------------------------------------------------

    def column_sql(self, name: str, col: ColumnDefinition, *, inline_references: bool = False) -> str:
        parts = [name, col.type.value]
        if col.primary:
            parts.append("PRIMARY KEY")
        if col.unique:
            parts.append("UNIQUE")
        if col.not_null:
            parts.append("NOT NULL")
        if col.has_default:
            parts.append(f"DEFAULT {self._dialect.literal(col.default)}")
        if inline_references and col.foreign_key is not None:
            parts.append(self._references_sql(col.foreign_key))
        return " ".join(parts)

    def _references_sql(self, fk: ForeignKey) -> str:
        sql = f"REFERENCES {fk.table}({fk.column})"
        if fk.on_delete:
            sql += f" ON DELETE {fk.on_delete}"
        if fk.on_update:
            sql += f" ON UPDATE {fk.on_update}"
        return sql

    def create_table_sql(
        self, name: str, schema: TableSchema, *, if_not_exists: bool = True
    ) -> str:
        definitions = [self.column_sql(col_name, col) for col_name, col in schema.items()]
        definitions += [
            f"FOREIGN KEY ({col_name}) {self._references_sql(col.foreign_key)}"
            for col_name, col in schema.items()
            if col.foreign_key is not None
        ]
        body = ",\n    ".join(definitions)
        guard = "IF NOT EXISTS " if if_not_exists else ""
        return f"CREATE TABLE {guard}{name} (\n    {body}\n)"

    def index_sql(self, name: str, schema: TableSchema) -> list[str]:
        return [
            f"CREATE INDEX IF NOT EXISTS idx_{name}_{col_name} ON {name}({col_name})"
            for col_name, col in schema.items()
            if col.indexed
        ]

    # -- Operations --------------------------------------------------------

    def define(self, name: str, schema: Mapping[str, ColumnDefinition | Mapping[str, Any]]) -> TableSchema:
        """Register ``schema`` under ``name`` and create the table if absent."""
        columns = coerce_schema(schema)
        validate_schema(name, columns, self._dialect)

        if self._engine.table_exists(name):
            logger.debug("table.exists", table=name, redefined=name in self._tables)

        self._engine.run(self.create_table_sql(name, columns))
        for statement in self.index_sql(name, columns):
            self._engine.run(statement)

        self._tables[name] = columns
        logger.info("table.defined", table=name, columns=len(columns))
        return columns

    def alter(self, name: str, new_columns: Mapping[str, ColumnDefinition | Mapping[str, Any]]) -> TableSchema:
        """Add columns to an existing table."""
        schema = self.get(name)
        additions = coerce_schema(new_columns)

        for col_name in additions:
            if col_name in schema:
                raise SchemaError(
                    f"Column {col_name} already exists on table {name}"
                ).with_context(table=name, column=col_name)

        merged = {**schema, **additions}
        validate_schema(name, merged, self._dialect)

        for col_name, col in additions.items():
            self._engine.run(
                f"ALTER TABLE {name} ADD COLUMN "
                f"{self.column_sql(col_name, col, inline_references=True)}"
            )
        for statement in self.index_sql(name, additions):
            self._engine.run(statement)

        self._tables[name] = merged
        logger.info("table.altered", table=name, added=list(additions))
        return merged

    def drop_column(self, name: str, column: str) -> TableSchema:
        """
        Remove ``column`` by rebuilding the table.

        Steps: create ``<name>_temp`` with the reduced schema, copy the
        remaining columns, drop the original, rename the copy into place,
        recreate indices.  Dropping the original must not fire ``ON DELETE``
        actions in referencing tables, so foreign-key enforcement is
        suspended for the rebuild.  Inside a caller transaction it cannot be
        suspended; if enforcement is on and other tables reference ``name``
        the rebuild is refused with ``SchemaError``.
        """
        schema = self.get(name)
        if column not in schema:
            raise SchemaError(f"Column {column} does not exist on table {name}").with_context(
                table=name, column=column
            )
        reduced = {col_name: col for col_name, col in schema.items() if col_name != column}
        validate_schema(name, reduced, self._dialect)

        temp = f"{name}_temp"
        if self._engine.table_exists(temp):
            raise SchemaError(
                f"Cannot rebuild {name}: table {temp} already exists"
            ).with_context(table=name, column=column)

        columns = ", ".join(reduced)
        with self._engine.foreign_keys_suspended():
            if self._engine.foreign_keys:
                children = self._engine.referencing_tables(name)
                if children:
                    raise SchemaError(
                        f"Cannot rebuild {name} inside a transaction while "
                        f"{', '.join(children)} reference it"
                    ).with_context(table=name, column=column)
            with self._atomic():
                self._engine.run(self.create_table_sql(temp, reduced, if_not_exists=False))
                self._engine.run(f"INSERT INTO {temp} ({columns}) SELECT {columns} FROM {name}")
                self._engine.run(f"DROP TABLE {name}")
                self._engine.run(f"ALTER TABLE {temp} RENAME TO {name}")
                for statement in self.index_sql(name, reduced):
                    self._engine.run(statement)

        self._tables[name] = reduced
        logger.info("table.column_dropped", table=name, column=column)
        return reduced

    def _atomic(self) -> contextlib.AbstractContextManager[Any]:
        if self._transactions is None:
            return contextlib.nullcontext()
        return self._transactions.atomic()

    def __iter__(self) -> Iterator[str]:
        return iter(self._tables)


__all__ = [
    "ColumnType",
    "ForeignKey",
    "ColumnDefinition",
    "TableSchema",
    "SchemaRegistry",
    "coerce_schema",
    "validate_schema",
    "find_soft_delete_column",
]
