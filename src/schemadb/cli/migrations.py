"""
CLI: ``schemadb create-migration`` / ``migrate`` / ``status``.
"""

from __future__ import annotations

import typer
from rich.table import Table

from schemadb.cli.utils import console, fail, get_state, open_database
from schemadb.core.errors import MigrationError, SchemaError
from schemadb.core.migrations import create_migration


def create_migration_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Migration name, e.g. add_status_to_users"),
) -> None:
    """Create a new timestamped migration file."""
    directory = get_state(ctx).settings.migration_path
    try:
        path = create_migration(directory, name)
    except SchemaError as e:
        fail(e.message)
    console.print(f"[green]Created migration:[/green] {path}")


def migrate_cmd(
    ctx: typer.Context,
    down: bool = typer.Option(False, "--down", help="Roll back applied migrations"),
    steps: int | None = typer.Option(None, "--steps", "-n", min=1, help="Only apply N migrations"),
) -> None:
    """Run pending migrations (or roll back with --down)."""
    direction = "down" if down else "up"
    with open_database(ctx) as db:
        try:
            result = db.migrate(direction, steps=steps)
        except MigrationError as e:
            fail(e.message)

    if not result.applied:
        console.print("[dim]Nothing to migrate.[/dim]")
        return
    verb = "Reverted" if down else "Applied"
    for name in result.applied:
        console.print(f"  [cyan]{verb}[/cyan] {name}")
    console.print("[green]Migrations completed successfully[/green]")


def status_cmd(ctx: typer.Context) -> None:
    """Show applied and pending migrations."""
    with open_database(ctx) as db:
        runner = db.migrator()
        applied = runner.applied()
        pending = runner.pending()

    table = Table(title="Migrations", pad_edge=False)
    table.add_column("name", overflow="fold")
    table.add_column("status")
    table.add_column("executed_at")
    for record in applied:
        table.add_row(record.name, "[green]applied[/green]", str(record.executed_at))
    for name in pending:
        table.add_row(name, "[yellow]pending[/yellow]", "")

    if not applied and not pending:
        console.print("[dim]No migrations found.[/dim]")
        return
    console.print(table)
    console.print(f"\n[dim]{len(applied)} applied, {len(pending)} pending[/dim]")
