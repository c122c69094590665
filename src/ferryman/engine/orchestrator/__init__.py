# src/ferryman/engine/orchestrator/__init__.py
"""Orchestrator package: migration run lifecycle.

Public API:
- MigrationOrchestrator: Main class for running a migration
- MigrationConfig: Run configuration dataclass
- RunStats: Run statistics dataclass
- ExecutionCounters: Mutable fold state

Module structure:
- core.py: MigrationOrchestrator class (main entry point)
- types.py: MigrationConfig, ExecutionCounters, RunStats
- outcomes.py: In-order outcome folding
"""

from ferryman.engine.orchestrator.core import MigrationOrchestrator
from ferryman.engine.orchestrator.types import ExecutionCounters, MigrationConfig, RunStats

__all__ = [
    "ExecutionCounters",
    "MigrationConfig",
    "MigrationOrchestrator",
    "RunStats",
]
