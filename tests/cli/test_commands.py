"""
Tests for CLI app structure and commands.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import structlog
from typer.testing import CliRunner

from schemadb import __version__
from schemadb.cli.app import app
from schemadb.core.database import Database
from schemadb.core.settings import SchemaDBSettings

runner = CliRunner()

MIGRATION = """\
def up(db):
    db.create_table("items", {"id": {"type": "INTEGER", "primary": True}, "name": {"type": "TEXT"}})


def down(db):
    db.query("DROP TABLE items")
"""


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def paths(tmp_path: Path) -> dict[str, Path]:
    return {"database": tmp_path / "cli.sqlite", "migrations": tmp_path / "migrations"}


def invoke(paths, *args, **kwargs):
    result = runner.invoke(
        app,
        ["--database", str(paths["database"]), "--migrations", str(paths["migrations"]), *args],
        **kwargs,
    )
    # The CLI points structlog at the runner's captured stderr
    structlog.reset_defaults()
    return result


def _write_migration(paths, name="20250101000000_create_items"):
    paths["migrations"].mkdir(exist_ok=True)
    path = paths["migrations"] / f"{name}.py"
    path.write_text(MIGRATION, encoding="utf-8")
    return path


# ── Root app ──────────────────────────────────────────────────────────


class TestRootApp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("create-migration", "migrate", "status", "shell", "backup"):
            assert command in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"schemadb {__version__}" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)


# ── create-migration ──────────────────────────────────────────────────


class TestCreateMigration:
    def test_creates_file(self, paths):
        result = invoke(paths, "create-migration", "add_users")
        assert result.exit_code == 0, result.output
        assert "Created migration" in result.output
        [created] = list(paths["migrations"].glob("*_add_users.py"))
        assert "def up(db):" in created.read_text(encoding="utf-8")

    def test_invalid_name(self, paths):
        result = invoke(paths, "create-migration", "bad name")
        assert result.exit_code == 1


# ── migrate / status ──────────────────────────────────────────────────


class TestMigrate:
    def test_up_then_down(self, paths):
        _write_migration(paths)

        result = invoke(paths, "migrate")
        assert result.exit_code == 0, result.output
        assert "Applied" in result.output
        assert "Migrations completed successfully" in result.output

        result = invoke(paths, "migrate")
        assert result.exit_code == 0
        assert "Nothing to migrate" in result.output

        result = invoke(paths, "migrate", "--down")
        assert result.exit_code == 0
        assert "Reverted" in result.output

        with Database(paths["database"], settings=SchemaDBSettings(_env_file=None)) as db:
            assert not db.engine.table_exists("items")
            assert db.query("SELECT name FROM migrations") == []

    def test_steps(self, paths):
        _write_migration(paths, "001_first")
        _write_migration(paths, "002_second")
        (paths["migrations"] / "002_second.py").write_text(
            "def up(db):\n    pass\n\n\ndef down(db):\n    pass\n", encoding="utf-8"
        )
        result = invoke(paths, "migrate", "--steps", "1")
        assert result.exit_code == 0, result.output
        assert "001_first" in result.output
        assert "002_second" not in result.output

    def test_failure_exits_non_zero(self, paths):
        paths["migrations"].mkdir()
        (paths["migrations"] / "001_broken.py").write_text(
            "def up(db):\n    db.query('INSERT INTO nowhere VALUES (1)')\n\n\n"
            "def down(db):\n    pass\n",
            encoding="utf-8",
        )
        result = invoke(paths, "migrate")
        assert result.exit_code == 1
        assert "001_broken" in result.output

    def test_status(self, paths):
        _write_migration(paths, "001_first")
        invoke(paths, "migrate")
        _write_migration(paths, "002_second")

        result = invoke(paths, "status")
        assert result.exit_code == 0, result.output
        assert "001_first" in result.output
        assert "applied" in result.output
        assert "002_second" in result.output
        assert "pending" in result.output

    def test_status_empty(self, paths):
        result = invoke(paths, "status")
        assert result.exit_code == 0
        assert "No migrations found" in result.output


# ── shell / backup ────────────────────────────────────────────────────


class TestShell:
    def test_runs_queries_until_exit(self, paths):
        result = invoke(
            paths,
            "shell",
            input="CREATE TABLE t (answer INTEGER)\nINSERT INTO t VALUES (42)\nSELECT answer FROM t\nexit\n",
        )
        assert result.exit_code == 0, result.output
        assert "answer" in result.output
        assert "42" in result.output

    def test_errors_do_not_end_session(self, paths):
        result = invoke(paths, "shell", input="SELEKT 1\nSELECT 7 AS seven\nexit\n")
        assert result.exit_code == 0
        assert "Error" in result.output
        assert "seven" in result.output


class TestBackup:
    def test_writes_snapshot(self, paths, tmp_path: Path):
        with Database(paths["database"], settings=SchemaDBSettings(_env_file=None)) as db:
            db.query("CREATE TABLE t (x INTEGER)")
            db.query("INSERT INTO t VALUES (1)")

        dest = tmp_path / "snap" / "backup.sqlite"
        result = invoke(paths, "backup", str(dest))
        assert result.exit_code == 0, result.output
        assert "Backup written" in result.output

        with Database(dest, settings=SchemaDBSettings(_env_file=None)) as copy:
            assert copy.query("SELECT x FROM t") == [{"x": 1}]
