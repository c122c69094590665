"""Dict-backed document store for tests and local rehearsals."""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping

from ferryman.contracts import DocumentNotFoundError, DurabilityLevel


class InMemoryStore:
    """Thread-safe in-memory key-value store.

    Implements both SourceStore and DestinationStore. scan_ids() iterates a
    snapshot of the keys taken when the scan starts, sorted by UTF-8 bytes.
    """

    def __init__(self, documents: Mapping[str, bytes] | None = None) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, bytes] = dict(documents or {})
        self._durabilities: dict[str, DurabilityLevel] = {}
        self._last_durability: DurabilityLevel | None = None
        self._upsert_count = 0

    def put(self, doc_id: str, payload: bytes) -> None:
        """Seed a document without recording an upsert."""
        with self._lock:
            self._documents[doc_id] = payload

    def scan_ids(self, after_id: str | None = None) -> Iterator[str]:
        with self._lock:
            keys = sorted(self._documents, key=lambda k: k.encode("utf-8"))
        lower = after_id.encode("utf-8") if after_id else None
        for key in keys:
            if lower is None or key.encode("utf-8") > lower:
                yield key

    def get(self, doc_id: str) -> bytes:
        with self._lock:
            try:
                return self._documents[doc_id]
            except KeyError:
                raise DocumentNotFoundError(doc_id) from None

    def upsert(self, doc_id: str, payload: bytes, durability: DurabilityLevel) -> None:
        with self._lock:
            self._documents[doc_id] = payload
            self._durabilities[doc_id] = durability
            self._last_durability = durability
            self._upsert_count += 1

    @property
    def documents(self) -> dict[str, bytes]:
        """Copy of the stored documents."""
        with self._lock:
            return dict(self._documents)

    @property
    def last_durability(self) -> DurabilityLevel | None:
        return self._last_durability

    @property
    def upsert_count(self) -> int:
        return self._upsert_count

    def durability_of(self, doc_id: str) -> DurabilityLevel | None:
        with self._lock:
            return self._durabilities.get(doc_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)
