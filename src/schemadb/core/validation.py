"""
Optional per-table payload validation.

A table may have one validator.  Inserts are checked with ``parse`` (full
payload), updates with ``parse_partial`` (only the keys being set).  A
rejection raises ``ValidationError`` before any SQL is built or any codec
runs.  Tables without a validator pass payloads through untouched.

Validators are either pydantic models (wrapped in ``PydanticValidator``) or
any object with ``parse(payload)`` / ``parse_partial(payload)`` methods
returning the (possibly coerced) payload.

Coercion:
    Values returned by the validator replace the caller's values (``"30"``
    becomes ``30`` for an ``int`` field).  Payload keys the validator does
    not declare (``id``, timestamps, ...) are kept as given.

Examples:
    >>> class User(BaseModel):
    ...     email: str
    ...     password: str = Field(min_length=8)
    >>> gate = ValidationGate()
    >>> gate.register("users", User)
    >>> gate.validate_insert("users", {"email": "a@b.com", "password": "short"})
    Traceback (most recent call last):
    ...
    ValidationError: Payload for users failed validation: ...
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Protocol, runtime_checkable

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from schemadb.core.errors import ValidationError


@runtime_checkable
class Validator(Protocol):
    def parse(self, payload: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def parse_partial(self, payload: Mapping[str, Any]) -> Mapping[str, Any]: ...


def _pydantic_errors(exc: PydanticValidationError, prefix: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
    return [
        {"loc": prefix + tuple(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]


class PydanticValidator:
    """Adapts a pydantic model class to the ``Validator`` protocol.

    ``parse_partial`` validates each supplied field on its own, with the
    field's full constraints, so missing required fields are not errors.
    """

    def __init__(self, model: type[BaseModel]):
        self.model = model
        self._adapters: dict[str, TypeAdapter[Any]] = {}

    def parse(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        try:
            instance = self.model.model_validate(dict(payload))
        except PydanticValidationError as exc:
            raise ValidationError(
                f"{exc.error_count()} validation error(s)",
                errors=_pydantic_errors(exc),
                cause=exc,
            ) from exc
        return instance.model_dump(exclude_unset=True)

    def parse_partial(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        validated: dict[str, Any] = {}
        errors: list[dict[str, Any]] = []

        for key, value in payload.items():
            adapter = self._adapter(key)
            if adapter is None:
                continue
            try:
                validated[key] = adapter.dump_python(adapter.validate_python(value))
            except PydanticValidationError as exc:
                errors += _pydantic_errors(exc, prefix=(key,))

        if errors:
            raise ValidationError(
                f"{len(errors)} validation error(s)",
                errors=errors,
            )
        return validated

    def _adapter(self, name: str) -> TypeAdapter[Any] | None:
        if name not in self._adapters:
            field = self.model.model_fields.get(name)
            if field is None:
                return None
            self._adapters[name] = TypeAdapter(Annotated[field.annotation, field])
        return self._adapters[name]

    def __repr__(self) -> str:
        return f"PydanticValidator({self.model.__name__})"


class ValidationGate:
    """Holds the validator map of one ``Database`` instance."""

    def __init__(self) -> None:
        self._validators: dict[str, Validator] = {}

    def register(self, table: str, validator: Validator | type[BaseModel]) -> Validator:
        if isinstance(validator, type) and issubclass(validator, BaseModel):
            validator = PydanticValidator(validator)
        if not isinstance(validator, Validator):
            raise TypeError(
                f"Validator for {table} must be a pydantic model or define parse/parse_partial"
            )
        self._validators[table] = validator
        return validator

    def unregister(self, table: str) -> None:
        self._validators.pop(table, None)

    def get(self, table: str) -> Validator | None:
        return self._validators.get(table)

    def __contains__(self, table: object) -> bool:
        return table in self._validators

    def validate_insert(self, table: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        return self._run(table, payload, partial=False)

    def validate_update(self, table: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        return self._run(table, payload, partial=True)

    def _run(self, table: str, payload: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
        validator = self._validators.get(table)
        if validator is None:
            return dict(payload)

        parse = validator.parse_partial if partial else validator.parse
        try:
            coerced = parse(payload)
        except ValidationError as exc:
            exc.message = f"Payload for {table} failed validation: {exc.message}"
            exc.args = (exc.message,)
            raise exc.with_context(table=table, operation="update" if partial else "insert")
        except ValueError as exc:
            errors = _pydantic_errors(exc) if isinstance(exc, PydanticValidationError) else []
            raise ValidationError(
                f"Payload for {table} failed validation: {exc}",
                errors=errors,
                cause=exc,
            ).with_context(table=table, operation="update" if partial else "insert") from exc

        return {**payload, **coerced}


__all__ = ["Validator", "PydanticValidator", "ValidationGate"]
