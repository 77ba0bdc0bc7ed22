"""Discover migration modules on disk and scaffold new ones.

A migration directory holds one Python module per unit::

    migrations/
        20250101120000_create_users.py
        20250102090000_add_status.py

Each module defines ``up(db)`` and ``down(db)``; the file stem is the
migration name recorded in the ledger.  Files starting with ``_`` are
ignored, so helpers can live next to the units.
"""

from __future__ import annotations

import importlib.util
import re
from datetime import datetime
from pathlib import Path

from schemadb.core.errors import MigrationError, SchemaError
from schemadb.core.logging import get_logger
from schemadb.core.migrations.runner import Migration

logger = get_logger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")

MIGRATION_TEMPLATE = '''"""Migration: {name}"""


def up(db):
    """Apply this migration."""
    # db.create_table("example", {{"id": {{"type": "INTEGER", "primary": True}}}})


def down(db):
    """Revert this migration."""
    # db.query("DROP TABLE IF EXISTS example")
'''


def load_migrations(directory: str | Path) -> list[Migration]:
    """Import every migration module in ``directory``, sorted by file name.

    A missing directory yields an empty list.  A module that cannot be
    imported, or that lacks ``up``/``down``, raises ``MigrationError``.
    """
    path = Path(directory)
    if not path.is_dir():
        logger.debug("migration.directory_missing", path=str(path))
        return []

    migrations = []
    for file in sorted(path.glob("*.py")):
        if file.name.startswith("_"):
            continue
        migrations.append(_load_file(file))

    logger.debug("migration.loaded", path=str(path), count=len(migrations))
    return migrations


def _load_file(file: Path) -> Migration:
    name = file.stem
    spec = importlib.util.spec_from_file_location(f"schemadb_migration_{name}", file)
    if spec is None or spec.loader is None:
        raise MigrationError(name, "load", cause=ImportError(f"cannot import {file}"))

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise MigrationError(name, "load", cause=exc) from exc

    up = getattr(module, "up", None)
    down = getattr(module, "down", None)
    if not callable(up) or not callable(down):
        raise MigrationError(
            name, "load", cause=AttributeError("migration must define up(db) and down(db)")
        )
    return Migration(name=name, up=up, down=down)


def create_migration(directory: str | Path, name: str, *, now: datetime | None = None) -> Path:
    """Write a new ``<YYYYMMDDHHMMSS>_<name>.py`` migration from the template."""
    if not _NAME_RE.match(name):
        raise SchemaError(
            f"Invalid migration name {name!r}: use letters, digits and underscores"
        ).with_context(migration=name)

    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    file = path / f"{stamp}_{name}.py"
    if file.exists():
        raise SchemaError(f"Migration file already exists: {file}").with_context(migration=name)

    file.write_text(MIGRATION_TEMPLATE.format(name=f"{stamp}_{name}"), encoding="utf-8")
    logger.info("migration.created", path=str(file))
    return file


__all__ = ["load_migrations", "create_migration", "MIGRATION_TEMPLATE"]
