# src/ferryman/core/pii/scanner.py
"""Key-based PII scanner for JSON documents.

Walks a parsed document with an explicit work list and replaces the value
of every field whose name is configured as PII with a field wrapper:

    {"ssn": "123-45-6789"}  ->  {"ssn": {"v": 1, "_enc": {"alg": ..., "kid": ..., "iv": ..., "ct": ...}}}

Documents nested deeper than the json module can parse or serialize are
rejected as invalid input.

Field matching:
- Exact names are compared case-insensitively.
- The optional pattern must match the whole field name (case-insensitive
  when given as a string).
- Array elements are never matched by name; only their container field is.

Objects that already carry an ``_enc`` marker are neither re-encrypted nor
scanned, which makes a second pass over migrated output a byte-identical
no-op.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from typing import Any

from ferryman.contracts.envelope import ENC_MARKER, EncryptionEnvelope, is_field_wrapper, wrap_envelope
from ferryman.contracts.errors import EnvelopeFormatError, InvalidDocumentError
from ferryman.core.security.cipher import FieldCipher

_COMPACT_SEPARATORS = (",", ":")


def _dumps(value: Any) -> bytes:
    try:
        return json.dumps(value, ensure_ascii=False, separators=_COMPACT_SEPARATORS, allow_nan=False).encode("utf-8")
    except RecursionError as e:
        raise InvalidDocumentError("Invalid JSON input: nesting too deep") from e


def _loads(document: bytes) -> Any:
    try:
        return json.loads(document)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise InvalidDocumentError("Invalid JSON input") from e


class PiiScanner:
    """Encrypts configured PII fields of JSON documents.

    Thread-safe: holds only immutable configuration and a thread-safe cipher.

    Example:
        scanner = PiiScanner(cipher, pii_keys=["ssn", "email"], key_pattern=r".*_pii")
        migrated = scanner.encrypt(b'{"name": "a", "ssn": "123"}', "customer::42")
    """

    def __init__(
        self,
        cipher: FieldCipher,
        pii_keys: Iterable[str] | None = None,
        key_pattern: str | re.Pattern[str] | None = None,
    ) -> None:
        """Initialize scanner.

        Args:
            cipher: Field cipher used for every matched value
            pii_keys: Exact field names (case-insensitive); blanks are ignored
            key_pattern: Optional full-match pattern on field names

        Raises:
            ValueError: If neither keys nor pattern are configured
            re.error: If key_pattern is an invalid regular expression
        """
        self._cipher = cipher
        self._pii_keys = frozenset(key.strip().lower() for key in (pii_keys or ()) if key and key.strip())
        if isinstance(key_pattern, str):
            key_pattern = re.compile(key_pattern, re.IGNORECASE) if key_pattern.strip() else None
        self._key_pattern = key_pattern
        if not self._pii_keys and self._key_pattern is None:
            raise ValueError("PiiScanner requires pii_keys and/or key_pattern")

    @property
    def pii_keys(self) -> frozenset[str]:
        return self._pii_keys

    def should_encrypt(self, field_name: str, value: Any) -> bool:
        """Whether this field's value gets replaced by a field wrapper."""
        if is_field_wrapper(value):
            return False
        if field_name.lower() in self._pii_keys:
            return True
        return self._key_pattern is not None and self._key_pattern.fullmatch(field_name) is not None

    def encrypt(self, document: bytes, document_id: str) -> bytes:
        """Encrypt matching fields of a JSON document.

        Args:
            document: Raw JSON document
            document_id: Bound into each envelope as associated data

        Returns:
            The same bytes object if nothing matched (cheap "no mutation"
            check for callers), otherwise the compact re-serialized document.

        Raises:
            InvalidDocumentError: If document is not parseable JSON
        """
        if not document.strip():
            return document

        root = _loads(document)
        if not self._encrypt_tree(root, document_id):
            return document
        return _dumps(root)

    def _encrypt_tree(self, root: Any, document_id: str) -> bool:
        mutated = False
        stack: list[Any] = [root]
        while stack:
            current = stack.pop()
            if isinstance(current, dict):
                for field_name in list(current):
                    child = current[field_name]
                    if self.should_encrypt(field_name, child):
                        envelope = self._cipher.encrypt(_dumps(child), document_id)
                        current[field_name] = wrap_envelope(envelope)
                        mutated = True
                    elif isinstance(child, dict | list) and not is_field_wrapper(child):
                        stack.append(child)
            elif isinstance(current, list):
                for child in current:
                    if isinstance(child, dict | list) and not is_field_wrapper(child):
                        stack.append(child)
        return mutated

    def decrypt(self, document: bytes, document_id: str) -> bytes:
        """Replace every field wrapper with its decrypted value.

        Verification helper; not part of the migration path.

        Raises:
            InvalidDocumentError: If document is not parseable JSON
            EnvelopeAuthenticationError: If an envelope fails authentication
            EnvelopeFormatError: If an envelope is malformed
        """
        if not document.strip():
            return document

        root = _loads(document)
        if is_field_wrapper(root):
            return self._decrypt_wrapper(root, document_id)

        changed = False
        stack: list[Any] = [root]
        while stack:
            current = stack.pop()
            if isinstance(current, dict):
                items: Iterable[tuple[Any, Any]] = list(current.items())
            elif isinstance(current, list):
                items = list(enumerate(current))
            else:
                continue
            for slot, child in items:
                if is_field_wrapper(child):
                    current[slot] = _loads(self._decrypt_wrapper(child, document_id))
                    changed = True
                elif isinstance(child, dict | list):
                    stack.append(child)
        return _dumps(root) if changed else document

    def _decrypt_wrapper(self, wrapper: dict[str, Any], document_id: str) -> bytes:
        try:
            envelope = EncryptionEnvelope.from_dict(wrapper[ENC_MARKER])
        except ValueError as e:
            raise EnvelopeFormatError(str(e)) from e
        return self._cipher.decrypt(envelope, document_id)
