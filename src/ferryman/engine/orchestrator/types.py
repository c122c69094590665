# src/ferryman/engine/orchestrator/types.py
"""Migration configuration and result types.

- MigrationConfig: Input configuration for a run
- ExecutionCounters: Mutable fold state (counters and resume pointer)
- RunStats: Output statistics from a run

This module is a LEAF MODULE - it must NOT import from other orchestrator
submodules (outcomes.py, core.py).
"""

from __future__ import annotations

from dataclasses import dataclass

from ferryman.contracts import Checkpoint, DurabilityLevel

DEFAULT_KILL_SWITCH_POLL_EVERY = 1000


@dataclass(frozen=True, slots=True)
class MigrationConfig:
    """Configuration for a migration run.

    Attributes:
        max_in_flight: Documents processed concurrently (worker pool size and
            reorder buffer capacity)
        checkpoint_every: Save a checkpoint after this many folded documents
            (0 = only the final checkpoint)
        dry_run: Fetch and encrypt but never write to the destination
        durability: Passed through to every destination upsert
        kill_switch_poll_every: Scan positions between kill switch checks
    """

    max_in_flight: int
    checkpoint_every: int
    dry_run: bool
    durability: DurabilityLevel
    kill_switch_poll_every: int = DEFAULT_KILL_SWITCH_POLL_EVERY

    def __post_init__(self) -> None:
        if self.max_in_flight <= 0:
            raise ValueError(f"max_in_flight must be > 0, got {self.max_in_flight}")
        if self.checkpoint_every < 0:
            raise ValueError(f"checkpoint_every must be >= 0, got {self.checkpoint_every}")
        if self.kill_switch_poll_every <= 0:
            raise ValueError(f"kill_switch_poll_every must be > 0, got {self.kill_switch_poll_every}")
        if not isinstance(self.durability, DurabilityLevel):
            raise TypeError(f"durability must be a DurabilityLevel, got {type(self.durability).__name__}")


@dataclass
class ExecutionCounters:
    """Mutable state accumulated by the fold thread.

    Mutable (not frozen) because it is updated once per folded outcome. Only
    the fold thread touches it while a run is active.
    """

    last_successful_id: str | None = None
    scanned: int = 0
    encrypted: int = 0
    written: int = 0
    quarantined: int = 0
    # Once set, the resume pointer never advances again in this run
    quarantine_seen: bool = False

    @classmethod
    def from_checkpoint(cls, checkpoint: Checkpoint) -> ExecutionCounters:
        return cls(
            last_successful_id=checkpoint.last_successful_id,
            scanned=checkpoint.scanned,
            encrypted=checkpoint.encrypted,
            written=checkpoint.written,
            quarantined=checkpoint.quarantined,
        )

    def to_checkpoint(self) -> Checkpoint:
        return Checkpoint(
            last_successful_id=self.last_successful_id,
            scanned=self.scanned,
            encrypted=self.encrypted,
            written=self.written,
            quarantined=self.quarantined,
        )


@dataclass(frozen=True, slots=True)
class RunStats:
    """Result of a migration run."""

    checkpoint: Checkpoint
    documents_folded: int
    duration_seconds: float
    stopped_by_kill_switch: bool = False
    stopped_by_signal: bool = False

    @property
    def documents_per_second(self) -> float:
        if self.duration_seconds <= 0:
            return 0.0
        return self.documents_folded / self.duration_seconds
