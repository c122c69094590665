"""File-backed checkpoint store."""

from __future__ import annotations

import json
from pathlib import Path

import structlog

from ferryman.contracts.checkpoint import Checkpoint
from ferryman.contracts.errors import CheckpointCorruptionError, CheckpointWriteError
from ferryman.core.atomic_file import atomic_write_bytes

logger = structlog.get_logger(__name__)


class CheckpointStore:
    """Loads and atomically replaces the single checkpoint file of a migration.

    Saves go through a temp file and rename, so a crash mid-save leaves the
    previous checkpoint in place and concurrent readers never see a partial
    file.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Checkpoint | None:
        """Load the persisted checkpoint.

        Returns:
            Checkpoint, or None if the file is absent or empty (fresh run)

        Raises:
            CheckpointCorruptionError: If the file exists but cannot be parsed,
                has the wrong shape, or was written by an incompatible version
        """
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CheckpointCorruptionError(f"Unable to read checkpoint {self._path}: {e}") from e

        if not raw.strip():
            return None

        try:
            data = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CheckpointCorruptionError(f"Checkpoint {self._path} is not valid JSON") from e
        if not isinstance(data, dict):
            raise CheckpointCorruptionError(f"Checkpoint {self._path} must contain a JSON object")

        try:
            checkpoint = Checkpoint.from_dict(data)
        except (TypeError, ValueError) as e:
            raise CheckpointCorruptionError(f"Checkpoint {self._path} is invalid: {e}") from e

        logger.debug(
            "Loaded checkpoint",
            path=str(self._path),
            scanned=checkpoint.scanned,
            written=checkpoint.written,
            quarantined=checkpoint.quarantined,
        )
        return checkpoint

    def save(self, checkpoint: Checkpoint) -> None:
        """Durably replace the checkpoint file.

        Raises:
            CheckpointWriteError: If the snapshot cannot be persisted; the
                previously saved checkpoint (if any) is left intact
        """
        payload = json.dumps(checkpoint.to_dict(), ensure_ascii=False, sort_keys=True, allow_nan=False)
        try:
            atomic_write_bytes(self._path, payload.encode("utf-8"))
        except OSError as e:
            raise CheckpointWriteError(f"Failed to write checkpoint {self._path}: {e}") from e
