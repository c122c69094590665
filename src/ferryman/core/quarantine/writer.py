"""Quarantine records for documents that could not be migrated.

One small text file per failed document, written as ``key=value`` lines:

    docId=customer::42
    stage=UPSERT
    exceptionClass=sqlalchemy.exc.OperationalError
    exceptionMessagePresent=true
    exceptionMessageSha256=9f86d08...
    cause1Class=TimeoutError
    ...

Exception messages may echo document content, so only their SHA-256 digest
is recorded. Payload values never appear. The document id is kept because
operators need it to replay the document.
"""

from __future__ import annotations

import re
import time
from pathlib import Path

import structlog

from ferryman.contracts.enums import Stage
from ferryman.contracts.errors import QuarantineWriteError
from ferryman.core.security.fingerprint import doc_id_digest, message_digest

logger = structlog.get_logger(__name__)

DEFAULT_MAX_PAYLOAD_BYTES = 64 * 1024
MAX_CAUSE_DEPTH = 8
TRUNCATION_MARKER = "\n... truncated ...\n"

# Filename variants tried before giving up (base name, then -1 .. -4)
_MAX_NAME_ATTEMPTS = 5
_SLUG_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")


def exception_class_name(error: BaseException) -> str:
    """Qualified class name; builtins are reported without their module."""
    cls = type(error)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def _next_cause(error: BaseException) -> BaseException | None:
    if error.__cause__ is not None:
        return error.__cause__
    if error.__suppress_context__:
        return None
    return error.__context__


def _stage_slug(stage: str) -> str:
    slug = _SLUG_UNSAFE.sub("_", stage.strip())
    return slug or "stage"


class QuarantineWriter:
    """Writes one PII-free failure record per quarantined document.

    Not thread-safe by contract: the orchestrator calls it from its single
    fold thread only. Exclusive-create opens still guarantee an existing
    record is never overwritten.
    """

    def __init__(self, directory: Path | str, max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES) -> None:
        """Initialize writer.

        Args:
            directory: Quarantine directory, created on first write
            max_payload_bytes: Record size budget before truncation

        Raises:
            ValueError: If max_payload_bytes is not positive
        """
        if max_payload_bytes <= 0:
            raise ValueError(f"max_payload_bytes must be positive, got {max_payload_bytes}")
        self._directory = Path(directory)
        self._max_payload_bytes = max_payload_bytes

    @property
    def directory(self) -> Path:
        return self._directory

    def write(self, doc_id: str, stage: Stage | str, error: BaseException) -> Path:
        """Persist a quarantine record.

        Args:
            doc_id: Failed document id
            stage: Stage tag of the failure
            error: The failure; only class names and message digests are kept

        Returns:
            Path of the created record

        Raises:
            ValueError: If doc_id or stage is blank
            QuarantineWriteError: If no record could be created
        """
        if not doc_id or not doc_id.strip():
            raise ValueError("doc_id must be non-blank")
        stage_text = str(stage)
        if not stage_text.strip():
            raise ValueError("stage must be non-blank")

        payload = self.build_payload(doc_id, stage_text, error)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise QuarantineWriteError(f"Unable to create quarantine directory {self._directory}: {e}") from e

        base_name = f"{int(time.time() * 1000)}-{_stage_slug(stage_text)}-{doc_id_digest(doc_id)}"
        for attempt in range(_MAX_NAME_ATTEMPTS):
            suffix = "" if attempt == 0 else f"-{attempt}"
            path = self._directory / f"{base_name}{suffix}.txt"
            try:
                with open(path, "xb") as f:
                    f.write(payload)
            except FileExistsError:
                continue
            except OSError as e:
                raise QuarantineWriteError(f"Failed to write quarantine record {path}: {e}") from e
            logger.debug("Wrote quarantine record", path=str(path), stage=stage_text)
            return path

        raise QuarantineWriteError(
            f"Unable to allocate a unique quarantine filename for {base_name} after {_MAX_NAME_ATTEMPTS} attempts"
        )

    def build_payload(self, doc_id: str, stage: str, error: BaseException) -> bytes:
        """Render the record content, truncated to the byte budget."""
        lines = [f"docId={doc_id}", f"stage={stage}"]
        current: BaseException | None = error
        depth = 0
        while current is not None and depth < MAX_CAUSE_DEPTH:
            prefix = "exception" if depth == 0 else f"cause{depth}"
            message = str(current)
            lines.append(f"{prefix}Class={exception_class_name(current)}")
            lines.append(f"{prefix}MessagePresent={'true' if message.strip() else 'false'}")
            lines.append(f"{prefix}MessageSha256={message_digest(message)}")
            current = _next_cause(current)
            depth += 1
        if current is not None:
            lines.append("causeTruncated=true")

        encoded = ("\n".join(lines) + "\n").encode("utf-8")
        if len(encoded) <= self._max_payload_bytes:
            return encoded
        # Cut on a character boundary so the record stays valid UTF-8
        head = encoded[: self._max_payload_bytes].decode("utf-8", "ignore").encode("utf-8")
        return head + TRUNCATION_MARKER.encode("utf-8")
