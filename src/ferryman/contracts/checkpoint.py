"""Checkpoint contract: durable resume point and cumulative run counters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar


@dataclass(frozen=True, slots=True)
class Checkpoint:
    """Resume state persisted by the CheckpointStore.

    The last write before process exit is authoritative. Counters are
    cumulative across runs: a resumed run starts from the loaded values.

    Attributes:
        last_successful_id: Scan resumes strictly after this id (None = from the start)
        scanned: Documents that reached the processing stage
        encrypted: Documents whose payload was changed by PII encryption
        written: Documents successfully written to the destination
        quarantined: Documents recorded in the quarantine directory
    """

    CURRENT_FORMAT_VERSION: ClassVar[int] = 1

    last_successful_id: str | None = None
    scanned: int = 0
    encrypted: int = 0
    written: int = 0
    quarantined: int = 0

    def __post_init__(self) -> None:
        if self.last_successful_id is not None and not self.last_successful_id.strip():
            # Blank ids mean "no resume point"
            object.__setattr__(self, "last_successful_id", None)
        for name in ("scanned", "encrypted", "written", "quarantined"):
            value = getattr(self, name)
            if type(value) is not int:
                raise TypeError(f"{name} must be an int, got {type(value).__name__}")
            if value < 0:
                raise ValueError(f"Counters must be >= 0 ({name}={value})")

    def to_dict(self) -> dict[str, Any]:
        """Serializable form, including the format version."""
        return {
            "format_version": self.CURRENT_FORMAT_VERSION,
            "last_successful_id": self.last_successful_id,
            "scanned": self.scanned,
            "encrypted": self.encrypted,
            "written": self.written,
            "quarantined": self.quarantined,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Checkpoint:
        """Rebuild a checkpoint from to_dict() output.

        Raises:
            ValueError: If the format version does not match or keys are missing/unknown
            TypeError: If a counter is not an integer
        """
        version = data.get("format_version")
        if version != cls.CURRENT_FORMAT_VERSION:
            raise ValueError(f"Unsupported checkpoint format version {version!r} (expected {cls.CURRENT_FORMAT_VERSION})")
        expected = {"format_version", "last_successful_id", "scanned", "encrypted", "written", "quarantined"}
        missing = expected - data.keys()
        if missing:
            raise ValueError(f"Checkpoint is missing keys: {sorted(missing)}")
        unknown = data.keys() - expected
        if unknown:
            raise ValueError(f"Checkpoint has unknown keys: {sorted(unknown)}")
        last_id = data["last_successful_id"]
        if last_id is not None and not isinstance(last_id, str):
            raise TypeError(f"last_successful_id must be a string or null, got {type(last_id).__name__}")
        return cls(
            last_successful_id=last_id,
            scanned=data["scanned"],
            encrypted=data["encrypted"],
            written=data["written"],
            quarantined=data["quarantined"],
        )
