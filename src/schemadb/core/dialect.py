"""SQLite SQL fragments used by the schema registry and query builder.

Every method returns a **SQL fragment** (string).  Keeping placeholder
style, literal rendering and identifier checks in one place means the
registry and the builder never format SQL values ad hoc.

Identifiers (table and column names) cannot be bound as parameters, so they
are interpolated into SQL text.  ``check_identifier`` is the single gate
every identifier passes through before that happens.

Examples:
    >>> d = SQLiteDialect()
    >>> d.placeholders(3)
    '?, ?, ?'
    >>> d.literal("it's")
    "'it''s'"
    >>> d.literal(True)
    '1'

Guardrails:
    ❌ DON'T: ``f"WHERE {col} = '{value}'"``
    ✅ DO: ``f"WHERE {d.check_identifier(col)} = {d.placeholder()}"`` + params

Tags:
    dialect, sql, sqlite, identifiers, schemadb
"""

from __future__ import annotations

import re
from typing import Any

from schemadb.core.errors import SchemaError

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Keyword defaults rendered verbatim instead of as string literals
_TIME_KEYWORDS = frozenset({"CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME"})


class SQLiteDialect:
    """SQLite dialect — ``?`` placeholders, ``1``/``0`` booleans."""

    @property
    def name(self) -> str:
        return "sqlite"

    # -- Placeholders ------------------------------------------------------

    def placeholder(self) -> str:
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    # -- Identifiers -------------------------------------------------------

    def is_identifier(self, name: object) -> bool:
        return isinstance(name, str) and bool(_IDENTIFIER.fullmatch(name))

    def check_identifier(self, name: object, kind: str = "identifier") -> str:
        """Return ``name`` unchanged if it is a plain SQL identifier.

        Raises:
            SchemaError: for anything that would need quoting (spaces,
                punctuation, leading digits, empty strings).
        """
        if not self.is_identifier(name):
            raise SchemaError(f"Invalid {kind} name: {name!r}")
        return name  # type: ignore[return-value]

    # -- Literals ----------------------------------------------------------

    def literal(self, value: Any) -> str:
        """Render a Python value as a SQL literal for DDL ``DEFAULT`` clauses."""
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return self.boolean_true() if value else self.boolean_false()
        if isinstance(value, (int, float)):
            return repr(value)
        if isinstance(value, str):
            if value.upper() in _TIME_KEYWORDS:
                return value.upper()
            return "'" + value.replace("'", "''") + "'"
        if isinstance(value, bytes):
            return f"X'{value.hex()}'"
        raise SchemaError(f"Unsupported default value: {value!r}")

    def boolean_true(self) -> str:
        return "1"

    def boolean_false(self) -> str:
        return "0"

    # -- Introspection -----------------------------------------------------

    def table_exists_query(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type='table' AND name = ?"


# Dialects are stateless
SQLITE = SQLiteDialect()


__all__ = ["SQLiteDialect", "SQLITE"]
