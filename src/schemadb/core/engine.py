"""SQLite storage engine adapter.

Thin wrapper around the standard library ``sqlite3`` driver exposing the
small statement interface the data-access layer is written against:

==================  ==============================================
``run(sql, p)``     execute, return ``RunResult(rows_affected, inserted_id)``
``all(sql, p)``     execute, return rows as ``list[dict]``
``pragma(stmt)``    ``PRAGMA <stmt>``, return rows
``backup(dest)``    consistent online snapshot to ``dest``
``close()``         close the connection (once)
==================  ==============================================

The connection is opened in autocommit mode (``isolation_level=None``):
``sqlite3`` never opens implicit transactions, so literal ``BEGIN`` /
``COMMIT`` / ``ROLLBACK`` statements issued by the transaction manager are
the only transaction boundaries.  Statement errors (``sqlite3.Error``) are
propagated unmodified.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from schemadb.core.dialect import SQLITE
from schemadb.core.errors import StorageError
from schemadb.core.logging import get_logger

logger = get_logger(__name__)

MEMORY = ":memory:"


@dataclass(frozen=True)
class RunResult:
    """Outcome of a write statement."""

    rows_affected: int
    inserted_id: int | None


class SQLiteEngine:
    """
    SQLite engine used by ``Database``.

    Foreign-key enforcement is switched on at connect and the journal mode
    (WAL by default) selected for reader/writer concurrency.  ``timeout`` is
    the busy-wait timeout in seconds; there is no other cancellation.
    """

    def __init__(
        self,
        path: str | Path = MEMORY,
        *,
        timeout: float = 5.0,
        readonly: bool = False,
        file_must_exist: bool = False,
        journal_mode: str = "WAL",
    ):
        self._path = str(path)
        self._timeout = timeout
        self._readonly = readonly
        self._file_must_exist = file_must_exist
        self._journal_mode = journal_mode
        self._conn: sqlite3.Connection | None = None
        self._closed = False
        self.connect()

    @property
    def path(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_transaction(self) -> bool:
        return self._connection().in_transaction

    def connect(self) -> None:
        """Open the connection and apply pragmas."""
        target, uri = self._target()
        try:
            self._conn = sqlite3.connect(
                target,
                timeout=self._timeout,
                isolation_level=None,
                uri=uri,
            )
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to open SQLite database {self._path}: {e}",
                cause=e,
            ).with_context(path=self._path) from e

        self._conn.row_factory = sqlite3.Row
        self.pragma("foreign_keys = ON")
        if not self._readonly and self._path != MEMORY:
            self.pragma(f"journal_mode = {self._journal_mode}")

        logger.debug(
            "engine.connected",
            path=self._path,
            readonly=self._readonly,
            journal_mode=self._journal_mode,
        )

    def _target(self) -> tuple[str, bool]:
        if self._path == MEMORY:
            return MEMORY, False
        if self._readonly:
            return f"{Path(self._path).resolve().as_uri()}?mode=ro", True
        if self._file_must_exist:
            return f"{Path(self._path).resolve().as_uri()}?mode=rw", True
        return self._path, False

    def _connection(self) -> sqlite3.Connection:
        if self._closed or self._conn is None:
            raise StorageError("Database connection is closed").with_context(path=self._path)
        return self._conn

    # -- Statements --------------------------------------------------------

    def run(self, sql: str, params: Sequence[Any] = ()) -> RunResult:
        """Execute a statement and report affected rows / last row id."""
        cursor = self._connection().execute(sql, tuple(params))
        try:
            return RunResult(rows_affected=cursor.rowcount, inserted_id=cursor.lastrowid)
        finally:
            cursor.close()

    def all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Execute a query and return every row as a dict."""
        cursor = self._connection().execute(sql, tuple(params))
        try:
            return [dict(row) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def pragma(self, statement: str) -> list[dict[str, Any]]:
        return self.all(f"PRAGMA {statement}")

    def table_exists(self, table: str) -> bool:
        return bool(self.all(SQLITE.table_exists_query(), (table,)))

    def referencing_tables(self, table: str) -> list[str]:
        """Other tables holding a foreign key into ``table``."""
        names = [
            row["name"]
            for row in self.all(
                "SELECT name FROM sqlite_master WHERE type='table' AND name <> ?", (table,)
            )
        ]
        return [
            name
            for name in names
            if any(fk["table"].lower() == table.lower() for fk in self.pragma(f"foreign_key_list({name})"))
        ]

    # -- Foreign keys ------------------------------------------------------

    @property
    def foreign_keys(self) -> bool:
        return bool(self.pragma("foreign_keys")[0]["foreign_keys"])

    @contextmanager
    def foreign_keys_suspended(self) -> Iterator[bool]:
        """
        Switch foreign-key enforcement off for the block.

        SQLite ignores the pragma inside a transaction, so enforcement is only
        suspended when none is open.  Yields whether it was suspended.
        """
        suspend = not self.in_transaction and self.foreign_keys
        if suspend:
            self.pragma("foreign_keys = OFF")
        try:
            yield suspend
        finally:
            if suspend:
                self.pragma("foreign_keys = ON")

    # -- Lifecycle ---------------------------------------------------------

    def backup(self, destination: str | Path) -> Path:
        """Write a consistent snapshot of the database to ``destination``."""
        conn = self._connection()
        dest = Path(destination)
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            target = sqlite3.connect(str(dest))
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open backup target {dest}: {e}", cause=e) from e
        try:
            conn.backup(target)
        finally:
            target.close()
        logger.info("engine.backup", path=self._path, destination=str(dest))
        return dest

    def close(self) -> None:
        """Close the connection.  Later calls are no-ops."""
        if self._closed:
            return
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        self._closed = True
        logger.debug("engine.closed", path=self._path)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"SQLiteEngine({self._path!r}, {state})"


__all__ = ["RunResult", "SQLiteEngine", "MEMORY"]
