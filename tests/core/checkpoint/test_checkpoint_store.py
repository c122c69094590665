"""Tests for the file-backed checkpoint store."""

import json
from pathlib import Path

import pytest

from ferryman.contracts import Checkpoint, CheckpointCorruptionError, CheckpointWriteError
from ferryman.core.checkpoint import CheckpointStore


@pytest.fixture
def store(tmp_path: Path) -> CheckpointStore:
    return CheckpointStore(tmp_path / "state" / "checkpoint.json")


class TestCheckpointStoreLoad:
    """Tests for reading the checkpoint file."""

    def test_missing_file_is_fresh_run(self, store: CheckpointStore) -> None:
        assert store.load() is None

    @pytest.mark.parametrize("content", [b"", b"  \n"])
    def test_blank_file_is_fresh_run(self, store: CheckpointStore, content: bytes) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_bytes(content)

        assert store.load() is None

    def test_save_then_load(self, store: CheckpointStore) -> None:
        checkpoint = Checkpoint(last_successful_id="doc-0042", scanned=43, encrypted=10, written=42, quarantined=1)

        store.save(checkpoint)

        assert store.load() == checkpoint

    def test_non_ascii_id_survives(self, store: CheckpointStore) -> None:
        checkpoint = Checkpoint(last_successful_id="kunde::müller", scanned=1, written=1)

        store.save(checkpoint)

        assert store.load() == checkpoint

    @pytest.mark.parametrize(
        "content",
        [
            b"{not json",
            b"[1, 2, 3]",
            b'"checkpoint"',
            b'{"format_version": 99, "last_successful_id": null, "scanned": 0, "encrypted": 0, "written": 0, "quarantined": 0}',
            b'{"format_version": 1, "last_successful_id": null}',
            b'{"format_version": 1, "last_successful_id": null, "scanned": "3", "encrypted": 0, "written": 0, "quarantined": 0}',
            b'{"format_version": 1, "last_successful_id": null, "scanned": -1, "encrypted": 0, "written": 0, "quarantined": 0}',
            b'{"format_version": 1, "last_successful_id": 7, "scanned": 0, "encrypted": 0, "written": 0, "quarantined": 0}',
        ],
        ids=["bad-json", "array", "string", "version", "missing-keys", "string-count", "negative", "numeric-id"],
    )
    def test_corrupt_file_raises(self, store: CheckpointStore, content: bytes) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_bytes(content)

        with pytest.raises(CheckpointCorruptionError):
            store.load()

    def test_unreadable_path_raises(self, tmp_path: Path) -> None:
        """A directory where the file should be is corruption, not a fresh run."""
        path = tmp_path / "checkpoint.json"
        path.mkdir()

        with pytest.raises(CheckpointCorruptionError):
            CheckpointStore(path).load()


class TestCheckpointStoreSave:
    """Tests for replacing the checkpoint file."""

    def test_file_is_sorted_json_with_version(self, store: CheckpointStore) -> None:
        store.save(Checkpoint(last_successful_id="a", scanned=1, written=1))

        data = json.loads(store.path.read_text())
        assert data["format_version"] == 1
        assert list(data) == sorted(data)

    def test_later_save_wins(self, store: CheckpointStore) -> None:
        store.save(Checkpoint(last_successful_id="a", scanned=1, written=1))
        store.save(Checkpoint(last_successful_id="b", scanned=2, written=2))

        loaded = store.load()
        assert loaded is not None
        assert loaded.last_successful_id == "b"

    def test_write_failure_raises_and_keeps_previous(self, tmp_path: Path) -> None:
        state = tmp_path / "state"
        store = CheckpointStore(state / "checkpoint.json")
        store.save(Checkpoint(last_successful_id="a", scanned=1, written=1))
        # Make the target a non-empty directory so the rename over it fails
        blocked = CheckpointStore(state / "blocked")
        (state / "blocked").mkdir()
        (state / "blocked" / "child").touch()

        with pytest.raises(CheckpointWriteError):
            blocked.save(Checkpoint())

        assert store.load() == Checkpoint(last_successful_id="a", scanned=1, written=1)
        assert not any(p.name.startswith(".blocked.tmp-") for p in state.iterdir())
