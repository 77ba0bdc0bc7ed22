"""
Per-column value transforms: JSON encoding and symmetric encryption.

Write path (``encode``), in this fixed order:

1. ``json`` column, value not ``None``: strings pass through untouched,
   anything else is serialised to canonical JSON text (sorted keys,
   compact separators).
2. ``encrypted`` column, value is ``str``: encrypted with Fernet
   (AES-128-CBC + HMAC-SHA256).  Because step 1 runs first, a column that
   is both ``json`` and ``encrypted`` stores ciphertext, never readable JSON.

Read path (``decode``) reverses it: decrypt, then parse JSON.

Security contract:
    With **no key configured**, ``encrypted`` columns are stored as
    plaintext.  This is a silent no-op, not an error; a warning is logged
    once when the codec is built.  Callers that require encryption must
    make sure a key is configured.

Fail-open contract:
    ``decode`` never raises.  If decryption or JSON parsing fails, the
    stored value comes back as-is.  This keeps reads working on legacy or
    plaintext rows, and also means corrupted ciphertext is returned to the
    caller looking like an ordinary string.  ``encode`` failures always
    raise ``CodecError``.

Tags:
    codec, encryption, fernet, cryptography, json, schemadb
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
from collections.abc import Mapping
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from schemadb.core.errors import CodecError
from schemadb.core.logging import get_logger
from schemadb.core.schema import ColumnDefinition, TableSchema

logger = get_logger(__name__)


def derive_key(secret: str | bytes) -> bytes:
    """Turn a configured secret into a Fernet key.

    A secret that already is a Fernet key (urlsafe base64 of 32 bytes) is
    used as-is; any other passphrase is hashed with SHA-256.
    """
    raw = secret.encode("utf-8") if isinstance(secret, str) else secret
    try:
        if len(base64.urlsafe_b64decode(raw)) == 32:
            return raw
    except (binascii.Error, ValueError):
        pass
    return base64.urlsafe_b64encode(hashlib.sha256(raw).digest())


def to_json(value: Any) -> str:
    """Canonical JSON text for ``value``."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class FieldCodec:
    """Encode/decode column values according to their definitions."""

    def __init__(self, encryption_key: str | bytes | None = None):
        self._fernet = Fernet(derive_key(encryption_key)) if encryption_key else None
        if self._fernet is None:
            logger.warning(
                "codec.no_encryption_key",
                detail="encrypted columns are stored as plaintext",
            )

    @property
    def encrypts(self) -> bool:
        return self._fernet is not None

    # -- Write path --------------------------------------------------------

    def encode(self, value: Any, column: ColumnDefinition) -> Any:
        if column.json_ and value is not None and not isinstance(value, str):
            try:
                value = to_json(value)
            except (TypeError, ValueError) as exc:
                raise CodecError(
                    f"Value of type {type(value).__name__} is not JSON serialisable",
                    cause=exc,
                ) from exc

        if column.encrypted and isinstance(value, str) and self._fernet is not None:
            value = self._fernet.encrypt(value.encode("utf-8")).decode("ascii")

        return value

    # -- Read path ---------------------------------------------------------

    def decode(self, value: Any, column: ColumnDefinition) -> Any:
        stored = value
        decrypted = False

        if column.encrypted and isinstance(value, str) and self._fernet is not None:
            try:
                value = self._fernet.decrypt(value.encode("ascii")).decode("utf-8")
            except (InvalidToken, UnicodeError) as exc:
                logger.debug("codec.decrypt_failed", error=type(exc).__name__)
                return stored
            decrypted = True

        if column.json_ and isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                logger.debug("codec.json_decode_failed")
                # Strings pass through encode unserialised
                return value if decrypted else stored

        return value

    # -- Rows --------------------------------------------------------------

    def encode_row(self, schema: TableSchema, row: Mapping[str, Any]) -> dict[str, Any]:
        return {
            key: self.encode(value, schema[key]) if key in schema else value
            for key, value in row.items()
        }

    def decode_row(self, schema: TableSchema, row: Mapping[str, Any]) -> dict[str, Any]:
        return {
            key: self.decode(value, schema[key]) if key in schema else value
            for key, value in row.items()
        }


__all__ = ["FieldCodec", "derive_key", "to_json"]
