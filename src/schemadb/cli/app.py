"""
Root Typer application for the schemadb CLI.

Global options (``--database``, ``--migrations``) override the
``SCHEMADB_*`` settings for every sub-command.
"""

from __future__ import annotations

from pathlib import Path

import typer
from typer import Typer

from schemadb.cli.migrations import create_migration_cmd, migrate_cmd, status_cmd
from schemadb.cli.shell import backup_cmd, shell_cmd
from schemadb.cli.utils import CLIState, fail
from schemadb.core.errors import ConfigError
from schemadb.core.logging import configure_logging
from schemadb.core.settings import load_settings

app = Typer(
    name="schemadb",
    help="schemadb — schema-driven SQLite: migrations, shell, backups.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from schemadb import __version__

        typer.echo(f"schemadb {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    database: str | None = typer.Option(
        None, "--database", "-d", help="Database file (default: SCHEMADB_DATABASE)."
    ),
    migrations: Path | None = typer.Option(
        None, "--migrations", "-m", help="Migration directory (default: SCHEMADB_MIGRATION_PATH)."
    ),
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """schemadb CLI — run migrations, query and back up a database."""
    overrides: dict[str, object] = {}
    if database is not None:
        overrides["database"] = database
    if migrations is not None:
        overrides["migration_path"] = migrations
    try:
        settings = load_settings(**overrides)
    except ConfigError as e:
        fail(e.message, code=2)

    configure_logging(level=settings.log_level, json_format=settings.log_json)
    ctx.obj = CLIState(settings=settings)


# ── Command registration ─────────────────────────────────────────────────

app.command("create-migration")(create_migration_cmd)
app.command("migrate")(migrate_cmd)
app.command("status")(status_cmd)
app.command("shell")(shell_cmd)
app.command("backup")(backup_cmd)
