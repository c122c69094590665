"""Checkpoint subsystem for crash recovery.

Provides:
- CheckpointStore: Load and atomically replace the resume checkpoint
"""

from ferryman.core.checkpoint.store import CheckpointStore

__all__ = ["CheckpointStore"]
