"""Tests for the SQLite dialect helpers."""

import pytest

from schemadb.core.dialect import SQLITE, SQLiteDialect
from schemadb.core.errors import SchemaError


class TestPlaceholders:
    def test_single(self):
        assert SQLITE.placeholder() == "?"

    def test_many(self):
        assert SQLITE.placeholders(3) == "?, ?, ?"

    def test_name(self):
        assert SQLiteDialect().name == "sqlite"


class TestIdentifiers:
    @pytest.mark.parametrize("name", ["users", "_private", "user_id2", "Users"])
    def test_valid(self, name):
        assert SQLITE.check_identifier(name) == name

    @pytest.mark.parametrize(
        "name", ["", "2users", "user id", "users;DROP TABLE x", "a-b", "t.c", None, 3]
    )
    def test_invalid(self, name):
        assert SQLITE.is_identifier(name) is False
        with pytest.raises(SchemaError, match="Invalid column name"):
            SQLITE.check_identifier(name, "column")


class TestLiterals:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "NULL"),
            (True, "1"),
            (False, "0"),
            (42, "42"),
            (1.5, "1.5"),
            ("draft", "'draft'"),
            ("it's", "'it''s'"),
            ("current_timestamp", "CURRENT_TIMESTAMP"),
            ("CURRENT_DATE", "CURRENT_DATE"),
            (b"\x01\xff", "X'01ff'"),
        ],
    )
    def test_literal(self, value, expected):
        assert SQLITE.literal(value) == expected

    def test_unsupported(self):
        with pytest.raises(SchemaError):
            SQLITE.literal({"a": 1})
