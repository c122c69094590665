"""Encryption envelope and field wrapper contracts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Key marking an object as an already-encrypted field wrapper
ENC_MARKER = "_enc"

# Wrapper schema version written alongside the envelope
WRAPPER_VERSION = 1


@dataclass(frozen=True, slots=True)
class EncryptionEnvelope:
    """Self-describing ciphertext for one field value.

    Attributes:
        alg: Algorithm identifier (e.g. "AES-256-GCM")
        kid: Identifier of the symmetric key used
        iv: Standard base64 of the 96-bit nonce
        ct: Standard base64 of ciphertext followed by the 128-bit tag
    """

    alg: str
    kid: str
    iv: str
    ct: str

    def to_dict(self) -> dict[str, str]:
        return {"alg": self.alg, "kid": self.kid, "iv": self.iv, "ct": self.ct}

    @classmethod
    def from_dict(cls, data: Any) -> EncryptionEnvelope:
        """Parse the ``_enc`` object of a field wrapper.

        Raises:
            ValueError: If data is not an object of four string fields
        """
        if not isinstance(data, dict):
            raise ValueError(f"Envelope must be an object, got {type(data).__name__}")
        values = {}
        for key in ("alg", "kid", "iv", "ct"):
            value = data.get(key)
            if not isinstance(value, str):
                raise ValueError(f"Envelope field {key!r} must be a string")
            values[key] = value
        return cls(**values)


def wrap_envelope(envelope: EncryptionEnvelope) -> dict[str, Any]:
    """Build the JSON value substituted for an encrypted field."""
    return {"v": WRAPPER_VERSION, ENC_MARKER: envelope.to_dict()}


def is_field_wrapper(value: Any) -> bool:
    """True if value is an object carrying the ``_enc`` marker."""
    return isinstance(value, dict) and ENC_MARKER in value
