"""
CLI utility helpers — output formatting and database handles.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from schemadb.core.database import Database
from schemadb.core.settings import SchemaDBSettings

console = Console()
err_console = Console(stderr=True)


@dataclass
class CLIState:
    """Per-invocation state built by the root callback."""

    settings: SchemaDBSettings


# ── Database helper ──────────────────────────────────────────────────────


def get_state(ctx: typer.Context) -> CLIState:
    state = ctx.find_root().obj
    if not isinstance(state, CLIState):
        fail("CLI state missing; invoke commands through the schemadb app")
    return state


@contextmanager
def open_database(ctx: typer.Context) -> Iterator[Database]:
    """Open the database named by ``--database`` and close it afterwards."""
    db = Database.from_settings(get_state(ctx).settings)
    try:
        yield db
    finally:
        db.close()


# ── Output helpers ───────────────────────────────────────────────────────


def fail(message: str, *, code: int = 1) -> NoReturn:
    err_console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(code=code)


def print_rows(rows: Sequence[dict[str, Any]], *, title: str = "") -> None:
    """Render query rows as a Rich table."""
    if not rows:
        console.print("[dim]No rows.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*("NULL" if v is None else str(v) for v in row.values()))
    console.print(table)
