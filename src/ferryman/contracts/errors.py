"""Exception types shared across subsystem boundaries.

Run-aborting errors propagate to the caller of the migration run. Per-document
failures never use these classes to cross the document boundary; they are
captured as StageFailure values (see ferryman.contracts.results).
"""


class MigrationError(Exception):
    """Base class for run-aborting errors."""

    pass


class NonMonotonicScanError(MigrationError):
    """Raised when the source scan returns identifiers out of byte order.

    Resuming from last_successful_id is only correct if the scan never
    revisits or reorders keys behind the current position.
    """

    def __init__(self, previous_id: str, current_id: str) -> None:
        self.previous_id = previous_id
        self.current_id = current_id
        super().__init__(
            "Source scan returned non-monotonic ids; cannot safely resume using last_successful_id "
            f"(previous={previous_id!r}, current={current_id!r})"
        )


class CheckpointCorruptionError(MigrationError):
    """Raised when the checkpoint file exists but cannot be understood."""

    pass


class CheckpointWriteError(MigrationError):
    """Raised when the checkpoint file cannot be durably replaced."""

    pass


class QuarantineWriteError(MigrationError):
    """Raised when a quarantine record cannot be persisted."""

    pass


class KeyMaterialError(MigrationError):
    """Raised when field encryption key material is missing or invalid."""

    pass


class KillSwitchEngagedError(Exception):
    """Raised by KillSwitch.raise_if_engaged() when the marker file exists.

    Not a MigrationError: an engaged kill switch is an operational stop
    signal, not a failure.
    """

    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(f"Kill switch engaged (file exists): {path}")


class InvalidDocumentError(ValueError):
    """Raised when a document payload is not parseable JSON."""

    pass


class EnvelopeAuthenticationError(Exception):
    """Raised when an envelope fails AES-GCM authentication on decrypt.

    Covers tampered ciphertext or nonce, the wrong key, and a document id that
    differs from the one bound at encryption time.
    """

    pass


class EnvelopeFormatError(ValueError):
    """Raised when an envelope is structurally invalid or for another key."""

    pass


class DocumentNotFoundError(KeyError):
    """Raised by a source store when a scanned id has no document."""

    pass
