# src/ferryman/core/security/fingerprint.py
"""Digests that stand in for values which must never be written out.

Exception messages can echo document content, and document ids can carry
customer identifiers or filesystem-unsafe characters. Quarantine records and
log lines carry these digests instead of the values themselves.
"""

from __future__ import annotations

import hashlib

# Hex characters of the doc-id digest used in filenames and log lines
DOC_ID_DIGEST_LENGTH = 16


def message_digest(message: str | None) -> str:
    """SHA-256 hex digest of an exception message (empty string when absent)."""
    return hashlib.sha256((message or "").encode("utf-8")).hexdigest()


def doc_id_digest(doc_id: str, length: int = DOC_ID_DIGEST_LENGTH) -> str:
    """Short SHA-256 hex digest of a document id.

    Args:
        doc_id: Document identifier
        length: Number of hex characters to keep (1-64)

    Returns:
        Lowercase hex prefix of sha256(doc_id)
    """
    if not 1 <= length <= 64:
        raise ValueError(f"length must be between 1 and 64, got {length}")
    return hashlib.sha256(doc_id.encode("utf-8")).hexdigest()[:length]
