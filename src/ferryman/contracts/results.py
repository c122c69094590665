"""Per-document outcome contracts.

A document's journey through fetch, rate limit, encryption and write ends in
exactly one DocumentOutcome. Failures travel as StageFailure values rather
than exceptions so they never cross the per-document boundary.
"""

from __future__ import annotations

from dataclasses import dataclass

from ferryman.contracts.enums import OutcomeKind, Stage


@dataclass(frozen=True, slots=True)
class StageFailure:
    """Error captured at a pipeline stage.

    The error object stays in memory only; the quarantine writer reduces it to
    class names and message digests before anything is persisted.
    """

    stage: Stage
    error: BaseException


@dataclass(frozen=True, slots=True)
class DocumentOutcome:
    """Result of processing one document.

    Attributes:
        doc_id: Source document identifier
        kind: WRITTEN, DRY_RUN or QUARANTINED
        encrypted: True if PII encryption changed the payload
        failure: Stage and error for QUARANTINED outcomes, None otherwise
    """

    doc_id: str
    kind: OutcomeKind
    encrypted: bool = False
    failure: StageFailure | None = None

    def __post_init__(self) -> None:
        if (self.kind == OutcomeKind.QUARANTINED) != (self.failure is not None):
            raise ValueError(f"{self.kind} outcome for {self.doc_id!r} has inconsistent failure={self.failure!r}")

    @classmethod
    def written(cls, doc_id: str, *, encrypted: bool) -> DocumentOutcome:
        return cls(doc_id=doc_id, kind=OutcomeKind.WRITTEN, encrypted=encrypted)

    @classmethod
    def dry_run(cls, doc_id: str, *, encrypted: bool) -> DocumentOutcome:
        return cls(doc_id=doc_id, kind=OutcomeKind.DRY_RUN, encrypted=encrypted)

    @classmethod
    def quarantined(cls, doc_id: str, failure: StageFailure, *, encrypted: bool = False) -> DocumentOutcome:
        return cls(doc_id=doc_id, kind=OutcomeKind.QUARANTINED, encrypted=encrypted, failure=failure)

    @property
    def wrote_to_destination(self) -> bool:
        return self.kind == OutcomeKind.WRITTEN
