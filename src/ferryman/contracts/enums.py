"""Status codes, stages and levels used across subsystem boundaries."""

from enum import StrEnum


class Stage(StrEnum):
    """Pipeline phase that produced a per-document failure.

    Written verbatim into quarantine records (``stage=GET``) and filenames.

    Values:
        GET: Fetching the document from the source store
        RATE_LIMIT: Waiting for rate limiter admission
        ENCRYPT: PII field encryption of the fetched payload
        UPSERT: Writing the payload to the destination store
        UNKNOWN: Error escaped the per-document boundary without a stage tag
    """

    GET = "GET"
    RATE_LIMIT = "RATE_LIMIT"
    ENCRYPT = "ENCRYPT"
    UPSERT = "UPSERT"
    UNKNOWN = "UNKNOWN"


class OutcomeKind(StrEnum):
    """Terminal state of one document within a run."""

    WRITTEN = "written"
    DRY_RUN = "dry_run"
    QUARANTINED = "quarantined"


class DurabilityLevel(StrEnum):
    """Durability requirement passed through to destination writes.

    Opaque to the orchestrator; each destination store decides what the
    level means for its own storage engine.
    """

    NONE = "none"
    MAJORITY = "majority"
    MAJORITY_AND_PERSIST_TO_ACTIVE = "majority_and_persist_to_active"
    PERSIST_TO_MAJORITY = "persist_to_majority"

    @property
    def requires_persistence(self) -> bool:
        """Whether the level asks for the write to reach durable storage."""
        return self in (DurabilityLevel.MAJORITY_AND_PERSIST_TO_ACTIVE, DurabilityLevel.PERSIST_TO_MAJORITY)
