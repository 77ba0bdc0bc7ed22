"""
CLI: ``schemadb shell`` / ``backup`` — interactive SQL and snapshots.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer

from schemadb.cli.utils import console, err_console, fail, open_database, print_rows
from schemadb.core.errors import StorageError

EXIT_WORDS = {"exit", "quit", ".exit", ".quit"}


def shell_cmd(ctx: typer.Context) -> None:
    """Start an interactive SQL prompt (type "exit" to quit)."""
    with open_database(ctx) as db:
        console.print(f"[bold blue]schemadb shell[/bold blue] [dim]{db.path}[/dim]")
        while True:
            command = typer.prompt("sql", prompt_suffix="> ").strip()
            if command.lower() in EXIT_WORDS:
                break
            if not command:
                continue
            try:
                rows = db.query(command)
            except sqlite3.Error as e:
                err_console.print(f"[red]Error:[/red] {e}")
                continue
            print_rows(rows)


def backup_cmd(
    ctx: typer.Context,
    destination: Path = typer.Argument(..., help="Backup file to write"),
) -> None:
    """Write a consistent snapshot of the database."""
    with open_database(ctx) as db:
        try:
            path = db.backup(destination)
        except StorageError as e:
            fail(e.message)
    console.print(f"[green]Backup written:[/green] {path}")
