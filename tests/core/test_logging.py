"""Tests for structured logging helpers."""

from __future__ import annotations

import json

import structlog

from schemadb.core.logging import LogContext, bind_context, configure_logging, get_logger, unbind_context


class TestConfigureLogging:
    def test_json_output(self, capsys):
        configure_logging(level="INFO", json_format=True)
        get_logger("schemadb.test").info("table.defined", table="users")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "table.defined"
        assert record["table"] == "users"
        assert record["level"] == "info"
        assert record["logger_name"] == "schemadb.test"
        assert record["service"] == "schemadb"
        assert "timestamp" in record

    def test_level_filtering(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        get_logger("schemadb.test").info("hidden")
        assert capsys.readouterr().err == ""


class TestContext:
    def test_log_context_binds_and_unbinds(self, capsys):
        configure_logging(level="INFO", json_format=True)
        logger = get_logger("schemadb.test")
        with LogContext(migration="001_init"):
            logger.info("migration.applied")
        logger.info("after")

        lines = [json.loads(x) for x in capsys.readouterr().err.strip().splitlines()]
        assert lines[0]["migration"] == "001_init"
        assert "migration" not in lines[1]

    def test_bind_and_unbind(self):
        bind_context(database="app.db")
        assert structlog.contextvars.get_contextvars()["database"] == "app.db"
        unbind_context("database")
        assert "database" not in structlog.contextvars.get_contextvars()
