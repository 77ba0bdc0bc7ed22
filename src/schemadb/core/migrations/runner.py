"""Migration runner backed by the ``migrations`` ledger table.

Applies ``Migration`` units (name + ``up`` + ``down`` procedures) in
lexicographic name order, recording each applied unit in the ledger so a
second ``migrate("up")`` is a no-op.  ``migrate("down")`` walks the units
in **reverse** order, newest first, reverting those present in the ledger.

Each unit runs inside ``TransactionManager.atomic()``: its procedure and
its ledger write commit together or not at all.  Procedures must not open
their own transactions (no nesting); plain DDL/DML issued through the
``Database`` joins the unit's transaction.

Foreign-key enforcement is switched off while a unit runs (when no caller
transaction is open), so table rebuilds do not fire ``ON DELETE`` actions.
``PRAGMA foreign_key_check`` runs before the ledger write; any violation
fails the unit and rolls it back.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from schemadb.core.errors import MigrationError, SchemaError
from schemadb.core.logging import get_logger

if TYPE_CHECKING:
    from schemadb.core.database import Database

logger = get_logger(__name__)

Direction = Literal["up", "down"]

LEDGER_TABLE = "migrations"

LEDGER_DDL = f"""
    CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        executed_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
"""

Procedure = Callable[["Database"], Any]


@dataclass(frozen=True)
class Migration:
    """A versioned schema-change unit.

    ``name`` is the ledger key; timestamp prefixes
    (``20250101120000_add_status``) give chronological order.
    """

    name: str
    up: Procedure
    down: Procedure


@dataclass
class MigrationRecord:
    """Record of a single applied migration."""

    id: int
    name: str
    executed_at: str


@dataclass
class MigrationResult:
    """Result of a migration run."""

    direction: Direction
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class MigrationRunner:
    """Applies and reverts migrations against one ``Database``.

    Example::

        runner = MigrationRunner(db, load_migrations("migrations"))
        result = runner.migrate("up")
        print(f"Applied {len(result.applied)} migrations")
    """

    def __init__(self, db: Database, migrations: Iterable[Migration] = ()):
        self._db = db
        self._migrations: dict[str, Migration] = {}
        for migration in migrations:
            self.add(migration)
        self._ledger_ready = False

    def add(self, migration: Migration) -> None:
        if migration.name in self._migrations:
            raise SchemaError(f"Duplicate migration name: {migration.name}").with_context(
                migration=migration.name
            )
        self._migrations[migration.name] = migration

    @property
    def migrations(self) -> list[Migration]:
        """Registered units in lexicographic name order."""
        return [self._migrations[name] for name in sorted(self._migrations)]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def migrate(self, direction: Direction = "up", *, steps: int | None = None) -> MigrationResult:
        """Apply (``up``) or revert (``down``) migrations.

        ``steps`` limits how many units are applied/reverted; ``None`` means
        all of them.  The first failing unit raises ``MigrationError``;
        units after it are not attempted.
        """
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")

        self._ensure_ledger()
        result = MigrationResult(direction=direction)
        executed = {record.name for record in self.applied()}

        units = self.migrations
        if direction == "down":
            units.reverse()

        for migration in units:
            if steps is not None and len(result.applied) >= steps:
                break
            pending = migration.name not in executed
            if pending == (direction == "down"):
                result.skipped.append(migration.name)
                continue
            self._run(migration, direction)
            result.applied.append(migration.name)

        logger.info(
            "migration.completed",
            direction=direction,
            applied=len(result.applied),
            skipped=len(result.skipped),
        )
        return result

    def applied(self) -> list[MigrationRecord]:
        """Return ledger rows in the order they were applied."""
        self._ensure_ledger()
        rows = self._db.engine.all(
            f"SELECT id, name, executed_at FROM {LEDGER_TABLE} ORDER BY id"
        )
        return [MigrationRecord(**row) for row in rows]

    def pending(self) -> list[str]:
        """Names of registered migrations not yet in the ledger."""
        executed = {record.name for record in self.applied()}
        return [m.name for m in self.migrations if m.name not in executed]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_ledger(self) -> None:
        if not self._ledger_ready:
            self._db.engine.run(LEDGER_DDL)
            self._ledger_ready = True

    def _run(self, migration: Migration, direction: Direction) -> None:
        procedure = migration.up if direction == "up" else migration.down
        engine = self._db.engine
        try:
            with engine.foreign_keys_suspended() as suspended, self._db.atomic():
                procedure(self._db)
                if suspended:
                    self._check_foreign_keys()
                if direction == "up":
                    engine.run(f"INSERT INTO {LEDGER_TABLE} (name) VALUES (?)", (migration.name,))
                else:
                    engine.run(f"DELETE FROM {LEDGER_TABLE} WHERE name = ?", (migration.name,))
        except Exception as exc:
            logger.error(
                "migration.failed",
                migration=migration.name,
                direction=direction,
                error=str(exc),
            )
            raise MigrationError(migration.name, direction, cause=exc) from exc

        logger.info("migration.applied", migration=migration.name, direction=direction)

    def _check_foreign_keys(self) -> None:
        violations = self._db.engine.pragma("foreign_key_check")
        if violations:
            tables = sorted({row["table"] for row in violations})
            raise SchemaError(
                f"Foreign key violations in {', '.join(tables)}"
            ).with_context(operation="foreign_key_check")


__all__ = [
    "Migration",
    "MigrationRecord",
    "MigrationResult",
    "MigrationRunner",
    "LEDGER_TABLE",
]
