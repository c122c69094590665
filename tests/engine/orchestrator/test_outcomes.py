# tests/engine/orchestrator/test_outcomes.py
"""Tests for folding in-order outcomes into run state."""

from pathlib import Path

import pytest

from ferryman.contracts import Checkpoint, DocumentOutcome, Stage, StageFailure
from ferryman.core.quarantine import QuarantineWriter
from ferryman.engine.orchestrator import ExecutionCounters
from ferryman.engine.orchestrator.outcomes import fold_outcome


@pytest.fixture
def writer(tmp_path: Path) -> QuarantineWriter:
    return QuarantineWriter(tmp_path / "quarantine")


def _failed(doc_id: str, stage: Stage = Stage.UPSERT) -> DocumentOutcome:
    return DocumentOutcome.quarantined(doc_id, StageFailure(stage, RuntimeError("boom")))


class TestFoldOutcome:
    def test_written_advances_pointer(self, writer: QuarantineWriter) -> None:
        counters = ExecutionCounters()

        fold_outcome(DocumentOutcome.written("doc-1", encrypted=True), counters, writer)

        assert counters.to_checkpoint() == Checkpoint(
            last_successful_id="doc-1", scanned=1, encrypted=1, written=1, quarantined=0
        )

    def test_dry_run_counts_scan_only(self, writer: QuarantineWriter) -> None:
        counters = ExecutionCounters()

        fold_outcome(DocumentOutcome.dry_run("doc-1", encrypted=True), counters, writer)

        assert counters.to_checkpoint() == Checkpoint(last_successful_id=None, scanned=1, encrypted=1)

    def test_quarantine_writes_record_and_freezes_pointer(self, writer: QuarantineWriter) -> None:
        counters = ExecutionCounters(last_successful_id="doc-0")

        fold_outcome(_failed("doc-1"), counters, writer)
        fold_outcome(DocumentOutcome.written("doc-2", encrypted=False), counters, writer)

        assert counters.last_successful_id == "doc-0"
        assert counters.quarantine_seen
        assert (counters.scanned, counters.written, counters.quarantined) == (2, 1, 1)
        records = list(writer.directory.iterdir())
        assert len(records) == 1
        assert "stage=UPSERT" in records[0].read_text()

    def test_encrypted_counted_for_failed_write(self, writer: QuarantineWriter) -> None:
        counters = ExecutionCounters()
        outcome = DocumentOutcome.quarantined("doc-1", StageFailure(Stage.UPSERT, OSError()), encrypted=True)

        fold_outcome(outcome, counters, writer)

        assert counters.encrypted == 1

    def test_counters_resume_from_checkpoint(self, writer: QuarantineWriter) -> None:
        counters = ExecutionCounters.from_checkpoint(Checkpoint(last_successful_id="doc-4", scanned=5, written=5))

        fold_outcome(DocumentOutcome.written("doc-5", encrypted=False), counters, writer)

        assert counters.to_checkpoint() == Checkpoint(last_successful_id="doc-5", scanned=6, written=6)

    def test_freeze_applies_even_if_earlier_run_had_quarantines(self, writer: QuarantineWriter) -> None:
        """The freeze flag is per run; loaded quarantine counts do not freeze."""
        counters = ExecutionCounters.from_checkpoint(Checkpoint(last_successful_id="doc-4", scanned=5, written=4, quarantined=1))

        fold_outcome(DocumentOutcome.written("doc-5", encrypted=False), counters, writer)

        assert counters.last_successful_id == "doc-5"
