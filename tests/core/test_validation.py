"""Tests for per-table payload validation."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import BaseModel, Field

from schemadb.core.errors import ValidationError
from schemadb.core.validation import PydanticValidator, ValidationGate, Validator


class User(BaseModel):
    email: str = Field(pattern=r".+@.+")
    password: str = Field(min_length=8)
    age: int | None = None


class UpperCaser:
    """Hand-written validator: upper-cases ``code``, rejects empty payloads."""

    def parse(self, payload: dict[str, Any]) -> dict[str, Any]:
        if not payload:
            raise ValidationError("empty payload")
        return self.parse_partial(payload)

    def parse_partial(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {k: v.upper() if k == "code" else v for k, v in payload.items()}


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def gate():
    g = ValidationGate()
    g.register("users", User)
    return g


# ── PydanticValidator ─────────────────────────────────────────────────


class TestPydanticValidator:
    def test_parse_coerces(self):
        result = PydanticValidator(User).parse(
            {"email": "a@b.com", "password": "secret123", "age": "30"}
        )
        assert result == {"email": "a@b.com", "password": "secret123", "age": 30}

    def test_parse_omits_unset_defaults(self):
        result = PydanticValidator(User).parse({"email": "a@b.com", "password": "secret123"})
        assert "age" not in result

    def test_parse_collects_errors(self):
        with pytest.raises(ValidationError) as exc_info:
            PydanticValidator(User).parse({"email": "nope", "password": "short"})
        assert sorted(exc_info.value.fields) == ["email", "password"]

    def test_parse_partial_ignores_missing_fields(self):
        assert PydanticValidator(User).parse_partial({"age": "41"}) == {"age": 41}

    def test_parse_partial_applies_constraints(self):
        with pytest.raises(ValidationError) as exc_info:
            PydanticValidator(User).parse_partial({"password": "short"})
        assert exc_info.value.fields == ["password"]

    def test_parse_partial_skips_unknown_keys(self):
        assert PydanticValidator(User).parse_partial({"id": 1}) == {}

    def test_satisfies_protocol(self):
        assert isinstance(PydanticValidator(User), Validator)


# ── ValidationGate ────────────────────────────────────────────────────


class TestValidationGate:
    def test_no_validator_passes_through(self):
        gate = ValidationGate()
        payload = {"anything": object()}
        assert gate.validate_insert("posts", payload) == payload

    def test_insert_rejection_names_table(self, gate):
        with pytest.raises(ValidationError, match="Payload for users failed validation") as exc_info:
            gate.validate_insert("users", {"email": "a@b.com", "password": "short"})
        assert exc_info.value.context.table == "users"
        assert exc_info.value.context.operation == "insert"

    def test_insert_keeps_undeclared_keys(self, gate):
        result = gate.validate_insert(
            "users", {"id": 7, "email": "a@b.com", "password": "secret123", "age": "30"}
        )
        assert result == {"id": 7, "email": "a@b.com", "password": "secret123", "age": 30}

    def test_update_is_partial(self, gate):
        assert gate.validate_update("users", {"age": "5"}) == {"age": 5}

    def test_update_rejection(self, gate):
        with pytest.raises(ValidationError) as exc_info:
            gate.validate_update("users", {"email": "not-an-email"})
        assert exc_info.value.context.operation == "update"

    def test_custom_validator(self):
        gate = ValidationGate()
        gate.register("codes", UpperCaser())
        assert gate.validate_insert("codes", {"code": "abc"}) == {"code": "ABC"}
        with pytest.raises(ValidationError, match="empty payload"):
            gate.validate_insert("codes", {})

    def test_custom_validator_value_error_is_wrapped(self):
        class Strict:
            def parse(self, payload):
                raise ValueError("nope")

            def parse_partial(self, payload):
                return payload

        gate = ValidationGate()
        gate.register("t", Strict())
        with pytest.raises(ValidationError, match="nope"):
            gate.validate_insert("t", {"x": 1})

    def test_register_rejects_non_validators(self):
        with pytest.raises(TypeError):
            ValidationGate().register("t", object())

    def test_unregister(self, gate):
        assert "users" in gate
        gate.unregister("users")
        assert "users" not in gate
        assert gate.get("users") is None
