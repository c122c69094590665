# src/ferryman/engine/reorder_buffer.py
"""Document reorder buffer with backpressure support.

- Accepts documents out-of-order, releases in submission order (FIFO)
- Blocks on submission when max_pending reached (backpressure)
- Provides blocking wait_for_next_release() for the fold loop
- close() lets the fold loop drain and then stop cleanly
- get_metrics() reports occupancy and head-of-line wait for the run summary
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Condition, Lock
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ShutdownError(RuntimeError):
    """Raised when operations are attempted on a shutdown buffer."""

    pass


@dataclass(frozen=True)
class DocumentTicket:
    """Handle for a document submitted to the buffer.

    Immutable ticket returned by submit(). Pass to complete() when processing
    finishes. The sequence number determines FIFO release order.
    """

    sequence: int
    doc_id: str


@dataclass
class BufferEntry(Generic[T]):
    """Entry emitted from the buffer in submission order."""

    sequence: int
    doc_id: str
    result: T


@dataclass
class _PendingEntry(Generic[T]):
    """Internal entry tracking a pending document."""

    sequence: int
    doc_id: str
    completed_at: float | None = None
    result: T | None = None
    is_complete: bool = False


class ReorderBuffer(Generic[T]):
    """Thread-safe buffer that restores scan order after parallel processing.

    Thread Safety Model:
        - submit(): Called by the scan thread, blocks on backpressure
        - complete(): Called by worker threads, wakes release waiter
        - wait_for_next_release(): Called by the fold thread, blocks until FIFO-ready
        - close(): Called by the scan thread once nothing more will be submitted
        - shutdown(): Called on fatal errors, wakes everyone with ShutdownError

    Invariants:
        - next_release_seq <= next_submit_seq
        - len(pending) <= max_pending
        - Results are released in exact submission order

    Usage:
        buffer = ReorderBuffer[DocumentOutcome](max_pending=32)

        # Scan thread submits
        ticket = buffer.submit("customer::42")  # May block on backpressure

        # Worker thread completes (may be out of order)
        buffer.complete(ticket, outcome)

        # Fold thread consumes in order
        while (entry := buffer.wait_for_next_release()) is not None:
            fold(entry.result)
    """

    def __init__(
        self,
        max_pending: int = 100,
        name: str = "document-reorder",
    ) -> None:
        """Initialize buffer with backpressure limit.

        Args:
            max_pending: Maximum documents in flight before submit() blocks
            name: Name for logging/metrics
        """
        if max_pending < 1:
            raise ValueError(f"max_pending must be >= 1, got {max_pending}")

        self._name = name
        self._max_pending = max_pending

        # Single lock protects all state
        self._lock = Lock()

        # submit_condition: wait for space (backpressure relief)
        # release_condition: wait for next FIFO result
        self._submit_condition = Condition(self._lock)
        self._release_condition = Condition(self._lock)

        self._next_submit_seq = 0
        self._next_release_seq = 0

        # Pending entries: sequence -> entry
        self._pending: dict[int, _PendingEntry[T]] = {}

        self._closed = False
        self._shutdown = False

        # Metrics
        self._total_submitted = 0
        self._total_released = 0
        self._max_observed_pending = 0
        self._total_wait_time_ms = 0.0

    # --- Core Operations ---

    def submit(self, doc_id: str) -> DocumentTicket:
        """Submit a document for processing. Returns ticket to complete later.

        Blocks if max_pending documents are already in flight (backpressure).

        Args:
            doc_id: Document identifier

        Returns:
            DocumentTicket to pass to complete() when processing finishes

        Raises:
            ShutdownError: If buffer is shut down
            RuntimeError: If buffer was closed for submissions
        """
        with self._submit_condition:
            if self._closed:
                raise RuntimeError(f"Buffer '{self._name}' is closed for submissions")

            while len(self._pending) >= self._max_pending:
                if self._shutdown:
                    raise ShutdownError(f"Buffer '{self._name}' is shut down")
                self._submit_condition.wait()

            if self._shutdown:
                raise ShutdownError(f"Buffer '{self._name}' is shut down")

            seq = self._next_submit_seq
            self._next_submit_seq += 1
            self._pending[seq] = _PendingEntry(sequence=seq, doc_id=doc_id)

            self._total_submitted += 1
            self._max_observed_pending = max(self._max_observed_pending, len(self._pending))

            return DocumentTicket(sequence=seq, doc_id=doc_id)

    def complete(self, ticket: DocumentTicket, result: T) -> None:
        """Mark a document as complete with its result.

        Called by worker threads when processing finishes. The result will
        be released when all predecessors have been released (FIFO).
        Completions arriving after shutdown are dropped.

        Raises:
            KeyError: If ticket was never submitted
            ValueError: If ticket was already completed
        """
        with self._lock:
            if self._shutdown:
                return
            if ticket.sequence not in self._pending:
                raise KeyError(f"Ticket {ticket.sequence} (doc_id={ticket.doc_id!r}) was never submitted")

            entry = self._pending[ticket.sequence]
            if entry.is_complete:
                raise ValueError(f"Ticket {ticket.sequence} (doc_id={ticket.doc_id!r}) already completed")

            entry.result = result
            entry.completed_at = time.perf_counter()
            entry.is_complete = True

            # Only one waiter can be next in sequence
            self._release_condition.notify()

    def wait_for_next_release(self) -> BufferEntry[T] | None:
        """Block until the next FIFO-ordered result is ready.

        Returns:
            BufferEntry with the result, or None once the
            buffer is closed and every submitted document has been released

        Raises:
            ShutdownError: If buffer is shut down
        """
        with self._release_condition:
            while True:
                if self._shutdown:
                    raise ShutdownError(f"Buffer '{self._name}' is shut down")

                entry = self._pending.get(self._next_release_seq)
                if entry is not None and entry.is_complete:
                    if entry.completed_at is None:
                        raise RuntimeError("Invariant violation: is_complete=True but completed_at is None")

                    now = time.perf_counter()
                    # Time the result sat behind an unfinished predecessor
                    buffer_wait_ms = (now - entry.completed_at) * 1000

                    result_entry = BufferEntry(
                        sequence=entry.sequence,
                        doc_id=entry.doc_id,
                        result=entry.result,  # type: ignore[arg-type]
                    )

                    del self._pending[self._next_release_seq]
                    self._next_release_seq += 1
                    self._total_released += 1
                    self._total_wait_time_ms += buffer_wait_ms

                    # Wake one submitter waiting for space
                    self._submit_condition.notify()

                    return result_entry

                if self._closed and self._next_release_seq >= self._next_submit_seq:
                    return None

                self._release_condition.wait()

    def close(self) -> None:
        """Stop accepting submissions; the release loop drains and then gets None."""
        with self._lock:
            self._closed = True
            self._release_condition.notify_all()

    def shutdown(self) -> None:
        """Signal shutdown. Wakes all waiters with ShutdownError."""
        with self._lock:
            self._shutdown = True
            # Wake ALL waiters for shutdown (exception to notify() rule)
            self._submit_condition.notify_all()
            self._release_condition.notify_all()

    # --- Metrics ---

    def get_metrics(self) -> dict[str, Any]:
        """Get metrics snapshot for observability."""
        with self._lock:
            completed_waiting = sum(1 for e in self._pending.values() if e.is_complete)
            return {
                "name": self._name,
                "max_pending": self._max_pending,
                "current_pending": len(self._pending),
                "completed_waiting": completed_waiting,
                "next_release_seq": self._next_release_seq,
                "total_submitted": self._total_submitted,
                "total_released": self._total_released,
                "max_observed_pending": self._max_observed_pending,
                "avg_buffer_wait_ms": (self._total_wait_time_ms / self._total_released if self._total_released > 0 else 0.0),
            }
