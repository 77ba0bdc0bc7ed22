"""
CLI layer for schemadb.

Provides a Typer application whose commands delegate to
``schemadb.core``.  This package handles only terminal transport:
argument parsing, coloured output, and table formatting.

Entry point::

    schemadb --help
"""

from schemadb.cli.app import app

__all__ = ["app"]
