# src/ferryman/engine/orchestrator/outcomes.py
"""Outcome folding for the orchestrator.

Functions here operate on state passed in by the caller and keep none of
their own. They run on the fold thread only.
"""

from __future__ import annotations

import structlog

from ferryman.contracts import DocumentOutcome, OutcomeKind
from ferryman.core.quarantine import QuarantineWriter
from ferryman.core.quarantine.writer import exception_class_name
from ferryman.core.security import doc_id_digest
from ferryman.engine.orchestrator.types import ExecutionCounters

logger = structlog.get_logger(__name__)


def fold_outcome(
    outcome: DocumentOutcome,
    counters: ExecutionCounters,
    quarantine_writer: QuarantineWriter,
) -> None:
    """Apply one in-order outcome to the run state.

    The resume pointer moves only past documents that were written while no
    earlier document in this run has been quarantined. After the first
    quarantine it stays where it is, so a resumed run re-scans the failed
    document and everything after it.

    Raises:
        QuarantineWriteError: If a failure record cannot be persisted (fatal)
    """
    counters.scanned += 1
    if outcome.encrypted:
        counters.encrypted += 1

    if outcome.kind == OutcomeKind.QUARANTINED:
        failure = outcome.failure
        if failure is None:
            # DocumentOutcome.__post_init__ guarantees this; guard for the type checker
            raise RuntimeError("QUARANTINED outcome without failure")
        quarantine_writer.write(outcome.doc_id, failure.stage, failure.error)
        counters.quarantined += 1
        if not counters.quarantine_seen:
            logger.warning(
                "Resume pointer frozen by first quarantined document",
                doc_digest=doc_id_digest(outcome.doc_id),
                last_successful_id_digest=(
                    doc_id_digest(counters.last_successful_id) if counters.last_successful_id is not None else None
                ),
            )
        counters.quarantine_seen = True
        logger.info(
            "Document quarantined",
            doc_digest=doc_id_digest(outcome.doc_id),
            stage=str(failure.stage),
            error_class=exception_class_name(failure.error),
        )
        return

    if outcome.kind == OutcomeKind.WRITTEN:
        counters.written += 1
        if not counters.quarantine_seen:
            counters.last_successful_id = outcome.doc_id
