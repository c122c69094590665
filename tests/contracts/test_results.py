"""Tests for per-document outcome contracts."""

import pytest

from ferryman.contracts import DocumentOutcome, DurabilityLevel, OutcomeKind, Stage, StageFailure


class TestDocumentOutcome:
    def test_written(self) -> None:
        outcome = DocumentOutcome.written("doc-1", encrypted=True)

        assert outcome.kind == OutcomeKind.WRITTEN
        assert outcome.encrypted
        assert outcome.failure is None
        assert outcome.wrote_to_destination

    def test_dry_run_does_not_write(self) -> None:
        assert not DocumentOutcome.dry_run("doc-1", encrypted=False).wrote_to_destination

    def test_quarantined_carries_failure(self) -> None:
        error = TimeoutError("slow")
        outcome = DocumentOutcome.quarantined("doc-1", StageFailure(Stage.UPSERT, error), encrypted=True)

        assert outcome.kind == OutcomeKind.QUARANTINED
        assert outcome.failure is not None
        assert outcome.failure.stage == Stage.UPSERT
        assert outcome.failure.error is error
        assert outcome.encrypted

    def test_quarantined_without_failure_rejected(self) -> None:
        with pytest.raises(ValueError, match="inconsistent failure"):
            DocumentOutcome(doc_id="doc-1", kind=OutcomeKind.QUARANTINED)

    def test_written_with_failure_rejected(self) -> None:
        with pytest.raises(ValueError):
            DocumentOutcome(doc_id="doc-1", kind=OutcomeKind.WRITTEN, failure=StageFailure(Stage.GET, KeyError("x")))


class TestEnums:
    def test_stage_values_are_upper_case_tags(self) -> None:
        assert [str(s) for s in Stage] == ["GET", "RATE_LIMIT", "ENCRYPT", "UPSERT", "UNKNOWN"]

    @pytest.mark.parametrize(
        ("level", "persists"),
        [
            (DurabilityLevel.NONE, False),
            (DurabilityLevel.MAJORITY, False),
            (DurabilityLevel.MAJORITY_AND_PERSIST_TO_ACTIVE, True),
            (DurabilityLevel.PERSIST_TO_MAJORITY, True),
        ],
    )
    def test_requires_persistence(self, level: DurabilityLevel, persists: bool) -> None:
        assert level.requires_persistence is persists
