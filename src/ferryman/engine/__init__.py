"""Migration engine: reorder buffer, orchestrator and run audit records."""

from ferryman.engine.orchestrator import MigrationConfig, MigrationOrchestrator, RunStats
from ferryman.engine.reorder_buffer import ReorderBuffer, ShutdownError

__all__ = ["MigrationConfig", "MigrationOrchestrator", "ReorderBuffer", "RunStats", "ShutdownError"]
