"""Protocols for the source and destination key-value stores."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from ferryman.contracts.enums import DurabilityLevel


@runtime_checkable
class SourceStore(Protocol):
    """Store the migration reads from.

    scan_ids() must yield ids in ascending UTF-8 byte order, strictly greater
    than after_id when one is given. get() raises DocumentNotFoundError for a
    missing id and may raise transport errors.
    """

    def scan_ids(self, after_id: str | None = None) -> Iterator[str]: ...

    def get(self, doc_id: str) -> bytes: ...


@runtime_checkable
class DestinationStore(Protocol):
    """Store the migration writes to.

    upsert() inserts or replaces the document and raises on transport or
    durability-acknowledgement failure.
    """

    def upsert(self, doc_id: str, payload: bytes, durability: DurabilityLevel) -> None: ...
