"""Security utilities for Ferryman.

Exports:
- FieldCipher: AES-256-GCM encryption of single field values
- load_field_key / FieldKey: Key material loading from env or key file
- message_digest / doc_id_digest: Digests written in place of sensitive values
"""

from ferryman.core.security.cipher import ALGORITHM_ID, FieldCipher
from ferryman.core.security.fingerprint import doc_id_digest, message_digest
from ferryman.core.security.key_material import FieldKey, load_field_key

__all__ = [
    "ALGORITHM_ID",
    "FieldCipher",
    "FieldKey",
    "doc_id_digest",
    "load_field_key",
    "message_digest",
]
