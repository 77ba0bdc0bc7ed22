"""
Shared pytest fixtures for schemadb tests.

This module provides:
- Environment isolation (no ``SCHEMADB_*`` variables leak into tests)
- Logging reset so CLI invocations do not keep a captured stream
- ``db`` / ``file_db`` facades and the canonical ``users`` / ``posts`` schemas
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog

from schemadb.core.database import Database
from schemadb.core.settings import SchemaDBSettings

TEST_KEY = "test-secret-key"


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Strip SCHEMADB_* variables and run from a directory without a .env file."""
    for key in list(os.environ):
        if key.startswith("SCHEMADB_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    structlog.reset_defaults()


# =============================================================================
# Schemas
# =============================================================================


@pytest.fixture
def users_schema() -> dict[str, dict[str, Any]]:
    return {
        "id": {"type": "INTEGER", "primary": True},
        "email": {"type": "TEXT", "unique": True, "notNull": True, "index": True},
        "password": {"type": "TEXT", "encrypted": True},
        "settings": {"type": "TEXT", "json": True},
        "deleted_at": {"type": "DATETIME", "softDelete": True},
    }


@pytest.fixture
def posts_schema() -> dict[str, dict[str, Any]]:
    return {
        "id": {"type": "INTEGER", "primary": True},
        "user_id": {
            "type": "INTEGER",
            "notNull": True,
            "foreignKey": {"table": "users", "column": "id", "onDelete": "CASCADE"},
        },
        "title": {"type": "TEXT", "notNull": True},
        "content": {"type": "TEXT"},
        "status": {"type": "TEXT", "default": "draft"},
    }


# =============================================================================
# Databases
# =============================================================================


@pytest.fixture
def settings() -> SchemaDBSettings:
    return SchemaDBSettings(_env_file=None)


@pytest.fixture
def db(settings: SchemaDBSettings) -> Iterator[Database]:
    """In-memory database with an encryption key."""
    database = Database(":memory:", encryption_key=TEST_KEY, settings=settings)
    yield database
    database.close()


@pytest.fixture
def file_db(tmp_path: Path, settings: SchemaDBSettings) -> Iterator[Database]:
    """File-backed database (WAL) with an encryption key and a migrations dir."""
    database = Database(
        tmp_path / "test.sqlite",
        encryption_key=TEST_KEY,
        migration_path=tmp_path / "migrations",
        settings=settings,
    )
    yield database
    database.close()


@pytest.fixture
def users_db(db: Database, users_schema: dict[str, Any]) -> Database:
    db.create_table("users", users_schema)
    return db
