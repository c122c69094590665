# src/ferryman/core/security/cipher.py
"""AES-256-GCM field cipher.

Each call encrypts one serialized field value under a fresh 96-bit random
nonce and binds the document id as associated data, so an envelope copied
into another document fails authentication on decrypt.

Envelope layout (all text, JSON-friendly):
    alg: "AES-256-GCM"
    kid: key identifier
    iv:  base64(nonce)
    ct:  base64(ciphertext || 128-bit tag)
"""

from __future__ import annotations

import base64
import binascii
import secrets
from collections.abc import Callable

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ferryman.contracts.envelope import EncryptionEnvelope
from ferryman.contracts.errors import EnvelopeAuthenticationError, EnvelopeFormatError, KeyMaterialError
from ferryman.core.security.key_material import KEY_LENGTH_BYTES

ALGORITHM_ID = "AES-256-GCM"
NONCE_LENGTH_BYTES = 12
TAG_LENGTH_BYTES = 16


class FieldCipher:
    """Authenticated encryption of single field values.

    Thread-safe: AESGCM holds no per-call state and the default nonce
    factory draws from the OS CSPRNG.

    Example:
        cipher = FieldCipher(key, "pii-2024")
        envelope = cipher.encrypt(b'"123-45-6789"', "customer::42")
        assert cipher.decrypt(envelope, "customer::42") == b'"123-45-6789"'
    """

    def __init__(
        self,
        key: bytes,
        key_id: str,
        *,
        nonce_factory: Callable[[int], bytes] = secrets.token_bytes,
    ) -> None:
        """Initialize cipher.

        Args:
            key: 32-byte AES key
            key_id: Identifier recorded in each envelope
            nonce_factory: Returns n random bytes; must be cryptographically secure

        Raises:
            KeyMaterialError: If key is not 32 bytes or key_id is blank
        """
        if not isinstance(key, bytes | bytearray) or len(key) != KEY_LENGTH_BYTES:
            raise KeyMaterialError(f"Field cipher requires a {KEY_LENGTH_BYTES}-byte key")
        if not key_id or not key_id.strip():
            raise KeyMaterialError("key_id must be non-blank")
        self._aead = AESGCM(bytes(key))
        self._key_id = key_id
        self._nonce_factory = nonce_factory

    @property
    def key_id(self) -> str:
        return self._key_id

    def encrypt(self, plaintext: bytes, document_id: str) -> EncryptionEnvelope:
        """Encrypt plaintext bound to document_id.

        Args:
            plaintext: Serialized field value
            document_id: Associated data; required again to decrypt

        Returns:
            EncryptionEnvelope with a fresh nonce
        """
        nonce = self._nonce_factory(NONCE_LENGTH_BYTES)
        if len(nonce) != NONCE_LENGTH_BYTES:
            raise ValueError(f"nonce_factory returned {len(nonce)} bytes, expected {NONCE_LENGTH_BYTES}")
        ciphertext = self._aead.encrypt(nonce, plaintext, document_id.encode("utf-8"))
        return EncryptionEnvelope(
            alg=ALGORITHM_ID,
            kid=self._key_id,
            iv=base64.b64encode(nonce).decode("ascii"),
            ct=base64.b64encode(ciphertext).decode("ascii"),
        )

    def decrypt(self, envelope: EncryptionEnvelope, document_id: str) -> bytes:
        """Decrypt an envelope produced for document_id.

        Raises:
            EnvelopeFormatError: Unknown algorithm, foreign key id, or malformed base64
            EnvelopeAuthenticationError: Tag check failed (tampering, wrong key or document id)
        """
        if envelope.alg != ALGORITHM_ID:
            raise EnvelopeFormatError(f"Unsupported envelope algorithm: {envelope.alg!r}")
        if envelope.kid != self._key_id:
            raise EnvelopeFormatError(f"Envelope key id {envelope.kid!r} does not match cipher key id {self._key_id!r}")
        try:
            nonce = base64.b64decode(envelope.iv, validate=True)
            ciphertext = base64.b64decode(envelope.ct, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EnvelopeFormatError("Envelope iv/ct is not valid base64") from e
        if len(nonce) != NONCE_LENGTH_BYTES:
            raise EnvelopeFormatError(f"Envelope nonce must be {NONCE_LENGTH_BYTES} bytes, got {len(nonce)}")
        if len(ciphertext) < TAG_LENGTH_BYTES:
            raise EnvelopeFormatError("Envelope ciphertext is shorter than the authentication tag")
        try:
            return self._aead.decrypt(nonce, ciphertext, document_id.encode("utf-8"))
        except InvalidTag as e:
            raise EnvelopeAuthenticationError("Envelope failed authentication") from e
