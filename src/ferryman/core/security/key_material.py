# src/ferryman/core/security/key_material.py
"""Field encryption key loading.

The 256-bit AES key is supplied as standard base64, either in an environment
variable (fast path for containers and CI) or in a key file mounted from the
credential store. Sources are tried in order; the first one that has the key
wins.

Usage:
    from ferryman.core.security.key_material import load_field_key

    field_key = load_field_key(key_id="pii-2024", key_env="FERRYMAN_FIELD_KEY")
    cipher = FieldCipher(field_key.key, field_key.key_id)

The key value is never logged or included in exception messages.
"""

from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from ferryman.contracts.errors import KeyMaterialError

# AES-256 key length in bytes
KEY_LENGTH_BYTES = 32


class KeyNotFoundError(Exception):
    """Raised by a key source that has no key configured."""

    pass


@dataclass(frozen=True, slots=True)
class FieldKey:
    """Loaded key material.

    Attributes:
        key_id: Identifier written into every envelope (``kid``)
        key: Raw 32-byte AES key (excluded from repr)
        source: Where the key was loaded from ("env" or "file")
    """

    key_id: str
    key: bytes = field(repr=False)
    source: str


class KeySource(Protocol):
    """Protocol for key material backends."""

    def load(self) -> tuple[str, str]:
        """Return (base64 key text, source label).

        Raises:
            KeyNotFoundError: If this source has no key
        """
        ...


class EnvKeySource:
    """Load the base64 key from an environment variable."""

    def __init__(self, var_name: str) -> None:
        self._var_name = var_name

    def load(self) -> tuple[str, str]:
        value = os.environ.get(self._var_name)
        if value is None or not value.strip():
            raise KeyNotFoundError(f"Environment variable '{self._var_name}' not set or empty")
        return value.strip(), "env"


class FileKeySource:
    """Load the base64 key from a file (surrounding whitespace ignored)."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> tuple[str, str]:
        if not self._path.is_file():
            raise KeyNotFoundError(f"Key file not found: {self._path}")
        text = self._path.read_text(encoding="ascii").strip()
        if not text:
            raise KeyNotFoundError(f"Key file is empty: {self._path}")
        return text, "file"


def decode_key(encoded: str) -> bytes:
    """Decode and length-check a base64 AES-256 key.

    Raises:
        KeyMaterialError: If the text is not base64 or not 32 bytes
    """
    try:
        key = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyMaterialError("Field key is not valid base64") from e
    if len(key) != KEY_LENGTH_BYTES:
        raise KeyMaterialError(f"Field key must be 256-bit ({KEY_LENGTH_BYTES} bytes), got {len(key)} bytes")
    return key


def load_field_key(
    *,
    key_id: str,
    key_env: str | None = None,
    key_file: Path | None = None,
) -> FieldKey:
    """Load the field encryption key from the configured sources.

    Environment variable first, then key file.

    Args:
        key_id: Identifier of the key (must be non-blank)
        key_env: Environment variable holding the base64 key
        key_file: File holding the base64 key

    Returns:
        FieldKey with the decoded 32-byte key

    Raises:
        KeyMaterialError: If no source has the key or the key is malformed
    """
    if not key_id or not key_id.strip():
        raise KeyMaterialError("key_id must be non-blank")

    sources: list[KeySource] = []
    if key_env:
        sources.append(EnvKeySource(key_env))
    if key_file is not None:
        sources.append(FileKeySource(key_file))
    if not sources:
        raise KeyMaterialError("No field key source configured (set encryption.key_env and/or encryption.key_file)")

    reasons: list[str] = []
    for source in sources:
        try:
            encoded, label = source.load()
        except KeyNotFoundError as e:
            reasons.append(str(e))
            continue
        return FieldKey(key_id=key_id.strip(), key=decode_key(encoded), source=label)

    raise KeyMaterialError("Field key not found: " + "; ".join(reasons))
