"""Environment-driven settings for schemadb.

``SchemaDBSettings`` collects every knob the ``Database`` facade and the CLI
accept.  Values come from ``SCHEMADB_*`` environment variables or a ``.env``
file; explicit constructor arguments on ``Database`` always win.

Examples:
    >>> import os
    >>> os.environ["SCHEMADB_DATABASE"] = "app.db"
    >>> SchemaDBSettings().database
    'app.db'

Tags:
    settings, configuration, pydantic, environment, schemadb
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from schemadb.core.errors import ConfigError

JournalMode = Literal["WAL", "DELETE", "TRUNCATE", "PERSIST", "MEMORY", "OFF"]


class SchemaDBSettings(BaseSettings):
    """Settings shared by the ``Database`` facade and the CLI.

    Fields
    ──────
    database         : SQLite file path (``:memory:`` for an ephemeral DB)
    encryption_key   : Secret for ``encrypted`` columns (unset = no encryption)
    timeout          : Busy-wait timeout in seconds, set once at connect
    readonly         : Open the database read-only
    file_must_exist  : Refuse to create a missing database file
    migration_path   : Directory holding migration modules
    journal_mode     : SQLite journal mode (WAL by default)
    log_level        : Structlog log level
    log_json         : Force JSON (True) / console (False) log rendering
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHEMADB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database: str = "database.sqlite"
    timeout: float = Field(default=5.0, ge=0)
    readonly: bool = False
    file_must_exist: bool = False
    journal_mode: JournalMode = "WAL"

    # ── Security ─────────────────────────────────────────────────
    encryption_key: SecretStr | None = None

    # ── Migrations ───────────────────────────────────────────────
    migration_path: Path = Path("migrations")

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    @field_validator("journal_mode", mode="before")
    @classmethod
    def _upper_journal_mode(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level

    def secret_key(self) -> str | None:
        """Plain-text encryption key, or ``None`` when encryption is off."""
        return self.encryption_key.get_secret_value() if self.encryption_key else None


def load_settings(**overrides: object) -> SchemaDBSettings:
    """Build settings, converting pydantic failures into ``ConfigError``."""
    try:
        return SchemaDBSettings(**overrides)
    except ValidationError as exc:
        raise ConfigError(f"Invalid schemadb settings: {exc}", cause=exc) from exc


__all__ = ["SchemaDBSettings", "load_settings"]
