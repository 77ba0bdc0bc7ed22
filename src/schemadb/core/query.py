"""
Parameterised SQL for create/read/update/delete.

The builder is stateless: every method takes the table's schema and the
caller's payload/predicates and returns a ``Query(sql, params)``.  Values
are always bound; identifiers are checked against the schema before they
are interpolated.

Predicates are conjunctive equality only::

    {"email": "a@b.com", "age": 30}  →  email = ? AND age = ?
    {"deleted_at": None}             →  deleted_at IS NULL

Read queries on a table with a soft-delete column get an implicit
``<column> IS NULL`` term unless ``QueryOptions.include_deleted`` is set.
Deletes on such tables become ``UPDATE … SET <column> = ?`` with the
current timestamp.

Ordering:
    ``ORDER BY`` column and direction cannot be bound and are written into
    the SQL text.  The column must be declared in the table schema and the
    direction must be ``ASC`` or ``DESC``; anything else raises
    ``QueryError`` instead of reaching the engine.

Examples:
    >>> q = QueryBuilder().select("users", schema, {"email": "a@b.com"},
    ...                           QueryOptions(limit=10))
    >>> q.sql
    'SELECT * FROM users WHERE deleted_at IS NULL AND email = ? LIMIT ?'
    >>> q.params
    ('a@b.com', 10)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from schemadb.core.dialect import SQLITE, SQLiteDialect
from schemadb.core.errors import QueryError, SchemaError
from schemadb.core.schema import TableSchema, find_soft_delete_column

Direction = Literal["ASC", "DESC"]


@dataclass(frozen=True)
class Query:
    """SQL text plus its bound values."""

    sql: str
    params: tuple[Any, ...] = ()


@dataclass(frozen=True)
class OrderBy:
    column: str
    direction: Direction = "ASC"


@dataclass(frozen=True)
class QueryOptions:
    """Read options for ``find`` / ``find_one``."""

    limit: int | None = None
    offset: int | None = None
    include_deleted: bool = False
    order_by: OrderBy | None = None

    @classmethod
    def coerce(cls, options: QueryOptions | Mapping[str, Any] | None) -> QueryOptions:
        """Accept an instance, a mapping (``orderBy`` / ``includeDeleted`` too) or ``None``."""
        if options is None:
            return cls()
        if isinstance(options, QueryOptions):
            return options

        data = dict(options)
        order = data.pop("order_by", data.pop("orderBy", None))
        include_deleted = data.pop("include_deleted", data.pop("includeDeleted", False))
        try:
            if isinstance(order, Mapping):
                order = OrderBy(**order)
            elif isinstance(order, tuple):
                order = OrderBy(*order)
            return cls(order_by=order, include_deleted=include_deleted, **data)
        except TypeError as exc:
            raise QueryError(f"Invalid query options: {exc}", cause=exc) from exc


class QueryBuilder:
    """Builds ``Query`` objects for one dialect."""

    def __init__(self, dialect: SQLiteDialect = SQLITE):
        self._dialect = dialect

    # -- Helpers -----------------------------------------------------------

    def _check_columns(self, table: str, schema: TableSchema, columns: Mapping[str, Any]) -> None:
        for column in columns:
            if column not in schema:
                raise SchemaError(f"Unknown column {column!r} for table {table}").with_context(
                    table=table, column=str(column)
                )

    def _where(
        self, table: str, schema: TableSchema, where: Mapping[str, Any]
    ) -> tuple[list[str], list[Any]]:
        self._check_columns(table, schema, where)
        conditions: list[str] = []
        params: list[Any] = []
        for column, value in where.items():
            if value is None:
                conditions.append(f"{column} IS NULL")
            else:
                conditions.append(f"{column} = {self._dialect.placeholder()}")
                params.append(value)
        return conditions, params

    @staticmethod
    def _non_negative(name: str, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise QueryError(f"{name} must be a non-negative integer, got {value!r}")
        return value

    def _order_by(self, table: str, schema: TableSchema, order: OrderBy) -> str:
        if order.column not in schema:
            raise QueryError(
                f"Cannot order by {order.column!r}: not a column of {table}"
            ).with_context(table=table, column=str(order.column))
        direction = order.direction.upper() if isinstance(order.direction, str) else order.direction
        if direction not in ("ASC", "DESC"):
            raise QueryError(f"Invalid order direction {order.direction!r}; use ASC or DESC")
        return f" ORDER BY {order.column} {direction}"

    # -- Read --------------------------------------------------------------

    def select(
        self,
        table: str,
        schema: TableSchema,
        where: Mapping[str, Any] | None = None,
        options: QueryOptions | None = None,
    ) -> Query:
        options = options or QueryOptions()
        conditions: list[str] = []

        soft_delete = find_soft_delete_column(schema)
        if soft_delete and not options.include_deleted:
            conditions.append(f"{soft_delete} IS NULL")

        terms, params = self._where(table, schema, where or {})
        conditions += terms

        sql = f"SELECT * FROM {table}"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)

        if options.order_by is not None:
            sql += self._order_by(table, schema, options.order_by)

        if options.limit is not None:
            sql += " LIMIT ?"
            params.append(self._non_negative("limit", options.limit))
        elif options.offset is not None:
            sql += " LIMIT -1"
        if options.offset is not None:
            sql += " OFFSET ?"
            params.append(self._non_negative("offset", options.offset))

        return Query(sql, tuple(params))

    # -- Write -------------------------------------------------------------

    def insert(self, table: str, schema: TableSchema, row: Mapping[str, Any]) -> Query:
        """Insert using the payload's own keys; absent columns get engine defaults."""
        self._check_columns(table, schema, row)
        if not row:
            return Query(f"INSERT INTO {table} DEFAULT VALUES")
        columns = ", ".join(row)
        placeholders = self._dialect.placeholders(len(row))
        return Query(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            tuple(row.values()),
        )

    def update(
        self,
        table: str,
        schema: TableSchema,
        data: Mapping[str, Any],
        where: Mapping[str, Any] | None = None,
    ) -> Query:
        if not data:
            raise QueryError(f"Update on {table} needs at least one column to set").with_context(
                table=table
            )
        self._check_columns(table, schema, data)
        assignments = ", ".join(f"{column} = {self._dialect.placeholder()}" for column in data)
        conditions, where_params = self._where(table, schema, where or {})

        sql = f"UPDATE {table} SET {assignments}"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        return Query(sql, (*data.values(), *where_params))

    def delete(
        self,
        table: str,
        schema: TableSchema,
        where: Mapping[str, Any] | None,
        now: str,
    ) -> Query:
        """Soft delete (stamp ``now``) when the schema allows it, else ``DELETE``."""
        soft_delete = find_soft_delete_column(schema)
        if soft_delete:
            return self.update(table, schema, {soft_delete: now}, where)

        conditions, params = self._where(table, schema, where or {})
        sql = f"DELETE FROM {table}"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        return Query(sql, tuple(params))


__all__ = ["Query", "QueryBuilder", "QueryOptions", "OrderBy", "Direction"]
