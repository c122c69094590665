# src/ferryman/engine/audit.py
"""Run audit records.

Each successful run leaves one ``audit-<run_id>.json`` file describing what
ran (config checksum, key id, durability, dry-run flag) and what it did
(the final counters). Records never contain key material or document data.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from ferryman.contracts import Checkpoint, DurabilityLevel
from ferryman.core.atomic_file import atomic_write_bytes
from ferryman.core.canonical import CANONICAL_VERSION, stable_hash
from ferryman.core.config import FerrymanSettings, resolve_config

logger = structlog.get_logger(__name__)


def config_checksum(settings: FerrymanSettings, key_id: str) -> str:
    """Stable hash of the non-secret settings plus the key id.

    Password-free store URLs keep the checksum identical across credential
    rotations.
    """
    return stable_hash({"settings": resolve_config(settings), "key_id": key_id})


@dataclass(frozen=True, slots=True)
class AuditRecord:
    """Summary of one completed migration run."""

    run_id: str
    started_at: datetime
    ended_at: datetime
    config_checksum: str
    key_id: str
    durability: DurabilityLevel
    dry_run: bool
    checkpoint: Checkpoint
    stopped_by_kill_switch: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "config_checksum": self.config_checksum,
            "checksum_version": CANONICAL_VERSION,
            "key_id": self.key_id,
            "durability": str(self.durability),
            "dry_run": self.dry_run,
            "stopped_by_kill_switch": self.stopped_by_kill_switch,
            "counts": {
                "scanned": self.checkpoint.scanned,
                "encrypted": self.checkpoint.encrypted,
                "written": self.checkpoint.written,
                "quarantined": self.checkpoint.quarantined,
            },
        }


def write_audit_record(directory: Path, record: AuditRecord) -> Path:
    """Atomically write the record as ``audit-<run_id>.json``.

    Raises:
        OSError: If the file cannot be written
    """
    path = directory / f"audit-{record.run_id}.json"
    payload = json.dumps(record.to_dict(), indent=2, ensure_ascii=False) + "\n"
    atomic_write_bytes(path, payload.encode("utf-8"))
    logger.info("Wrote audit record", path=str(path), run_id=record.run_id)
    return path
