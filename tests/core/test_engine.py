"""Tests for the SQLite engine adapter."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from schemadb.core.engine import MEMORY, RunResult, SQLiteEngine
from schemadb.core.errors import StorageError


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def engine():
    e = SQLiteEngine(MEMORY)
    e.run("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT UNIQUE)")
    yield e
    e.close()


# ── Statements ────────────────────────────────────────────────────────


class TestStatements:
    def test_run_reports_inserted_id(self, engine):
        result = engine.run("INSERT INTO items (name) VALUES (?)", ("a",))
        assert result == RunResult(rows_affected=1, inserted_id=1)

    def test_run_reports_rows_affected(self, engine):
        engine.run("INSERT INTO items (name) VALUES (?)", ("a",))
        engine.run("INSERT INTO items (name) VALUES (?)", ("b",))
        result = engine.run("UPDATE items SET name = name || '!'")
        assert result.rows_affected == 2

    def test_all_returns_dicts(self, engine):
        engine.run("INSERT INTO items (name) VALUES (?)", ("a",))
        assert engine.all("SELECT id, name FROM items") == [{"id": 1, "name": "a"}]

    def test_constraint_errors_propagate_unmodified(self, engine):
        engine.run("INSERT INTO items (name) VALUES (?)", ("a",))
        with pytest.raises(sqlite3.IntegrityError):
            engine.run("INSERT INTO items (name) VALUES (?)", ("a",))

    def test_syntax_errors_propagate_unmodified(self, engine):
        with pytest.raises(sqlite3.OperationalError):
            engine.all("SELEKT 1")

    def test_foreign_keys_enabled(self, engine):
        assert engine.pragma("foreign_keys") == [{"foreign_keys": 1}]

    def test_table_exists(self, engine):
        assert engine.table_exists("items") is True
        assert engine.table_exists("missing") is False

    def test_autocommit_outside_transactions(self, engine):
        engine.run("INSERT INTO items (name) VALUES (?)", ("a",))
        assert engine.in_transaction is False


# ── Foreign keys ──────────────────────────────────────────────────────


class TestForeignKeys:
    def test_referencing_tables(self, engine):
        engine.run("CREATE TABLE tags (id INTEGER PRIMARY KEY, item_id INTEGER REFERENCES items(id))")
        engine.run("CREATE TABLE notes (id INTEGER PRIMARY KEY)")
        assert engine.referencing_tables("items") == ["tags"]
        assert engine.referencing_tables("notes") == []

    def test_suspended_outside_transaction(self, engine):
        with engine.foreign_keys_suspended() as suspended:
            assert suspended is True
            assert engine.foreign_keys is False
        assert engine.foreign_keys is True

    def test_restored_after_error(self, engine):
        with pytest.raises(RuntimeError), engine.foreign_keys_suspended():
            raise RuntimeError("boom")
        assert engine.foreign_keys is True

    def test_not_suspended_inside_transaction(self, engine):
        engine.run("BEGIN")
        with engine.foreign_keys_suspended() as suspended:
            assert suspended is False
            assert engine.foreign_keys is True
        engine.run("ROLLBACK")


# ── File databases ────────────────────────────────────────────────────


class TestFileDatabase:
    def test_wal_journal_mode(self, tmp_path: Path):
        engine = SQLiteEngine(tmp_path / "wal.sqlite")
        try:
            assert engine.pragma("journal_mode") == [{"journal_mode": "wal"}]
        finally:
            engine.close()

    def test_file_must_exist(self, tmp_path: Path):
        with pytest.raises(StorageError, match="Failed to open"):
            SQLiteEngine(tmp_path / "missing.sqlite", file_must_exist=True)

    def test_readonly_rejects_writes(self, tmp_path: Path):
        path = tmp_path / "ro.sqlite"
        writer = SQLiteEngine(path)
        writer.run("CREATE TABLE t (x INTEGER)")
        writer.close()

        reader = SQLiteEngine(path, readonly=True)
        try:
            assert reader.all("SELECT * FROM t") == []
            with pytest.raises(sqlite3.OperationalError):
                reader.run("INSERT INTO t VALUES (1)")
        finally:
            reader.close()

    def test_backup_produces_consistent_copy(self, tmp_path: Path):
        engine = SQLiteEngine(tmp_path / "src.sqlite")
        engine.run("CREATE TABLE t (x INTEGER)")
        engine.run("INSERT INTO t VALUES (7)")

        dest = engine.backup(tmp_path / "backups" / "copy.sqlite")
        engine.close()

        copy = SQLiteEngine(dest)
        try:
            assert copy.all("SELECT x FROM t") == [{"x": 7}]
        finally:
            copy.close()


# ── Lifecycle ─────────────────────────────────────────────────────────


class TestLifecycle:
    def test_close_is_idempotent(self):
        engine = SQLiteEngine()
        engine.close()
        engine.close()
        assert engine.closed is True

    def test_operations_after_close_raise(self):
        engine = SQLiteEngine()
        engine.close()
        with pytest.raises(StorageError, match="closed"):
            engine.all("SELECT 1")

    def test_repr(self):
        engine = SQLiteEngine()
        assert repr(engine) == "SQLiteEngine(':memory:', open)"
        engine.close()
        assert repr(engine) == "SQLiteEngine(':memory:', closed)"
