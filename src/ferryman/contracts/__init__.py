"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.
Settings classes live in ferryman.core.config and are not re-exported here.
"""

from ferryman.contracts.checkpoint import Checkpoint
from ferryman.contracts.envelope import (
    ENC_MARKER,
    EncryptionEnvelope,
    is_field_wrapper,
    wrap_envelope,
)
from ferryman.contracts.enums import DurabilityLevel, OutcomeKind, Stage
from ferryman.contracts.errors import (
    CheckpointCorruptionError,
    CheckpointWriteError,
    DocumentNotFoundError,
    EnvelopeAuthenticationError,
    EnvelopeFormatError,
    InvalidDocumentError,
    KeyMaterialError,
    KillSwitchEngagedError,
    MigrationError,
    NonMonotonicScanError,
    QuarantineWriteError,
)
from ferryman.contracts.results import DocumentOutcome, StageFailure
from ferryman.contracts.stores import DestinationStore, SourceStore

__all__ = [
    "ENC_MARKER",
    "Checkpoint",
    "CheckpointCorruptionError",
    "CheckpointWriteError",
    "DestinationStore",
    "DocumentNotFoundError",
    "DocumentOutcome",
    "DurabilityLevel",
    "EncryptionEnvelope",
    "EnvelopeAuthenticationError",
    "EnvelopeFormatError",
    "InvalidDocumentError",
    "KeyMaterialError",
    "KillSwitchEngagedError",
    "MigrationError",
    "NonMonotonicScanError",
    "OutcomeKind",
    "QuarantineWriteError",
    "SourceStore",
    "Stage",
    "StageFailure",
    "is_field_wrapper",
    "wrap_envelope",
]
