"""Versioned schema migrations for schemadb.

Manifesto:
    Schemas evolve across deployments.  Each change ships as a named unit
    with ``up`` and ``down`` procedures; the ``migrations`` ledger table
    records what has been applied so running the same set twice is a
    no-op.

Modules
-------
runner    Migration / MigrationRunner with migrate(), applied(), pending()
loader    load_migrations() / create_migration() for on-disk units

Tags:
    schemadb, migrations, schema, ledger, idempotent
"""

from schemadb.core.migrations.loader import create_migration, load_migrations
from schemadb.core.migrations.runner import (
    Migration,
    MigrationRecord,
    MigrationResult,
    MigrationRunner,
)

__all__ = [
    "Migration",
    "MigrationRecord",
    "MigrationResult",
    "MigrationRunner",
    "create_migration",
    "load_migrations",
]
