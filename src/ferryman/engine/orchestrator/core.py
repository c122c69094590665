# src/ferryman/engine/orchestrator/core.py
"""Core MigrationOrchestrator class.

Coordinates:
- Resume from the persisted checkpoint
- Ordered source scan with monotonicity check and kill switch polling
- Bounded-concurrency per-document processing (fetch, rate limit, encrypt, write)
- In-order folding of outcomes into counters, resume pointer and quarantine
- Periodic and final checkpoints

Threads:
- Scan thread (the caller of run()): iterates the source and submits work.
  Blocks only on reorder buffer backpressure.
- Worker threads (ThreadPoolExecutor): process one document each and never
  let an exception escape; failures become QUARANTINED outcomes.
- Fold thread: releases outcomes in scan order and is the only writer of
  run state.
"""

from __future__ import annotations

import signal
import threading
import time
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any

import structlog

from ferryman.contracts import (
    Checkpoint,
    DestinationStore,
    DocumentOutcome,
    NonMonotonicScanError,
    SourceStore,
    Stage,
    StageFailure,
)
from ferryman.core.checkpoint import CheckpointStore
from ferryman.core.kill_switch import KillSwitch
from ferryman.core.pii import PiiScanner
from ferryman.core.quarantine import QuarantineWriter
from ferryman.core.rate_limit import RateLimiter
from ferryman.engine.orchestrator.outcomes import fold_outcome
from ferryman.engine.orchestrator.types import ExecutionCounters, MigrationConfig, RunStats
from ferryman.engine.reorder_buffer import DocumentTicket, ReorderBuffer, ShutdownError

logger = structlog.get_logger(__name__)


class _FoldState:
    """State shared between the scan thread and the fold thread."""

    def __init__(self, counters: ExecutionCounters) -> None:
        self.counters = counters
        self.folded = 0
        self.error: BaseException | None = None


class MigrationOrchestrator:
    """Runs one resumable, ordered migration pass over the source keyspace.

    Example:
        orchestrator = MigrationOrchestrator(
            source=source,
            destination=destination,
            scanner=PiiScanner(cipher, pii_keys=["ssn"]),
            rate_limiter=RateLimiter.create(500),
            checkpoint_store=CheckpointStore(Path("state/checkpoint.json")),
            quarantine_writer=QuarantineWriter(Path("state/quarantine")),
            kill_switch=KillSwitch(Path("state/STOP"), enabled=True),
            config=MigrationConfig(max_in_flight=32, checkpoint_every=1000,
                                   dry_run=False, durability=DurabilityLevel.MAJORITY),
        )
        final_checkpoint = orchestrator.run()
    """

    def __init__(
        self,
        source: SourceStore,
        destination: DestinationStore,
        scanner: PiiScanner,
        rate_limiter: RateLimiter,
        checkpoint_store: CheckpointStore,
        quarantine_writer: QuarantineWriter,
        kill_switch: KillSwitch,
        config: MigrationConfig,
    ) -> None:
        self._source = source
        self._destination = destination
        self._scanner = scanner
        self._rate_limiter = rate_limiter
        self._checkpoint_store = checkpoint_store
        self._quarantine_writer = quarantine_writer
        self._kill_switch = kill_switch
        self._config = config
        self._last_stats: RunStats | None = None

    @property
    def last_stats(self) -> RunStats | None:
        """Statistics of the most recent completed run() call."""
        return self._last_stats

    @contextmanager
    def _shutdown_handler_context(self) -> Iterator[threading.Event]:
        """Install SIGINT/SIGTERM handlers that set a shutdown event.

        On first signal: sets the event, restores default SIGINT handler
        (so second Ctrl-C force-kills via KeyboardInterrupt).

        Signal registration is skipped off the main thread; the event still
        works, it just won't be triggered by OS signals.
        """
        shutdown_event = threading.Event()

        if threading.current_thread() is not threading.main_thread():
            yield shutdown_event
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, frame: Any) -> None:
            shutdown_event.set()
            signal.signal(signal.SIGINT, signal.default_int_handler)

        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
        try:
            yield shutdown_event
        finally:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)

    def run(self, *, shutdown_event: threading.Event | None = None) -> Checkpoint:
        """Execute the migration until the scan ends or a stop is requested.

        Args:
            shutdown_event: Optional pre-created shutdown event for testing.
                When provided, signal handler installation is skipped.

        Returns:
            The final checkpoint, already persisted

        Raises:
            CheckpointCorruptionError: If the existing checkpoint is unreadable
            NonMonotonicScanError: If the source scan goes backwards
            CheckpointWriteError: If a checkpoint cannot be saved
            QuarantineWriteError: If a failure record cannot be saved
            Exception: Any error raised by the source scan itself
        """
        if shutdown_event is not None:
            return self._execute_run(shutdown_event)
        with self._shutdown_handler_context() as event:
            return self._execute_run(event)

    def _execute_run(self, shutdown_event: threading.Event) -> Checkpoint:
        loaded = self._checkpoint_store.load()
        start_checkpoint = loaded if loaded is not None else Checkpoint()
        resume_after = start_checkpoint.last_successful_id

        logger.info(
            "Migration starting",
            resumed=loaded is not None,
            dry_run=self._config.dry_run,
            durability=str(self._config.durability),
            max_in_flight=self._config.max_in_flight,
            checkpoint_every=self._config.checkpoint_every,
            rate_limiter=repr(self._rate_limiter),
        )

        started = time.perf_counter()
        state = _FoldState(ExecutionCounters.from_checkpoint(start_checkpoint))
        buffer = ReorderBuffer[DocumentOutcome](max_pending=self._config.max_in_flight, name="migration")
        fold_thread = threading.Thread(
            target=self._fold_loop,
            args=(buffer, state),
            name="ferryman-fold",
            daemon=True,
        )
        fold_thread.start()

        with ThreadPoolExecutor(
            max_workers=self._config.max_in_flight,
            thread_name_prefix="ferryman-worker",
        ) as executor:
            try:
                stop_reason = self._scan_and_submit(resume_after, buffer, executor, shutdown_event)
            except BaseException as e:
                buffer.shutdown()
                executor.shutdown(wait=False, cancel_futures=True)
                fold_thread.join()
                if isinstance(e, ShutdownError) and state.error is not None:
                    raise state.error from None
                raise

            buffer.close()
            fold_thread.join()

        if state.error is not None:
            raise state.error

        final_checkpoint = state.counters.to_checkpoint()
        self._checkpoint_store.save(final_checkpoint)

        stats = RunStats(
            checkpoint=final_checkpoint,
            documents_folded=state.folded,
            duration_seconds=time.perf_counter() - started,
            stopped_by_kill_switch=stop_reason == "kill_switch",
            stopped_by_signal=stop_reason == "signal",
        )
        self._last_stats = stats
        buffer_metrics = buffer.get_metrics()
        logger.info(
            "Migration finished",
            scanned=final_checkpoint.scanned,
            encrypted=final_checkpoint.encrypted,
            written=final_checkpoint.written,
            quarantined=final_checkpoint.quarantined,
            documents_folded=stats.documents_folded,
            duration_seconds=round(stats.duration_seconds, 3),
            documents_per_second=round(stats.documents_per_second, 1),
            stopped_by_kill_switch=stats.stopped_by_kill_switch,
            stopped_by_signal=stats.stopped_by_signal,
            max_observed_in_flight=buffer_metrics["max_observed_pending"],
            avg_reorder_wait_ms=round(buffer_metrics["avg_buffer_wait_ms"], 3),
        )
        return final_checkpoint

    def _scan_and_submit(
        self,
        resume_after: str | None,
        buffer: ReorderBuffer[DocumentOutcome],
        executor: ThreadPoolExecutor,
        shutdown_event: threading.Event,
    ) -> str | None:
        """Feed scanned ids to the worker pool in scan order.

        Returns:
            "kill_switch" or "signal" if scanning stopped early, None at end of scan
        """
        poll_every = self._config.kill_switch_poll_every
        previous_id: str | None = None
        previous_key: bytes | None = None

        for index, doc_id in enumerate(self._source.scan_ids(resume_after)):
            current_key = doc_id.encode("utf-8")
            if previous_key is not None and current_key < previous_key:
                raise NonMonotonicScanError(previous_id or "", doc_id)
            previous_id, previous_key = doc_id, current_key

            if index > 0 and index % poll_every == 0 and self._kill_switch.engaged():
                logger.warning("Kill switch engaged; stopping scan", ids_scanned=index, path=str(self._kill_switch.path))
                return "kill_switch"
            if shutdown_event.is_set():
                logger.warning("Shutdown requested; stopping scan", ids_scanned=index)
                return "signal"

            ticket = buffer.submit(doc_id)
            executor.submit(self._run_worker, ticket, buffer)
        return None

    def _run_worker(self, ticket: DocumentTicket, buffer: ReorderBuffer[DocumentOutcome]) -> None:
        try:
            outcome = self._process_document(ticket.doc_id)
        except Exception as e:
            # Anything escaping the staged pipeline is still a per-document failure
            outcome = DocumentOutcome.quarantined(ticket.doc_id, StageFailure(Stage.UNKNOWN, e))
        buffer.complete(ticket, outcome)

    def _process_document(self, doc_id: str) -> DocumentOutcome:
        """Fetch, pace, encrypt and write one document.

        Each stage's failure is captured with its stage tag instead of
        propagating.
        """
        try:
            payload = self._source.get(doc_id)
        except Exception as e:
            return DocumentOutcome.quarantined(doc_id, StageFailure(Stage.GET, e))

        try:
            self._rate_limiter.acquire()
        except Exception as e:
            return DocumentOutcome.quarantined(doc_id, StageFailure(Stage.RATE_LIMIT, e))

        try:
            migrated = self._scanner.encrypt(payload, doc_id)
        except Exception as e:
            return DocumentOutcome.quarantined(doc_id, StageFailure(Stage.ENCRYPT, e))
        # The scanner hands back the same object when nothing matched
        encrypted = migrated is not payload

        if self._config.dry_run:
            return DocumentOutcome.dry_run(doc_id, encrypted=encrypted)

        try:
            self._destination.upsert(doc_id, migrated, self._config.durability)
        except Exception as e:
            return DocumentOutcome.quarantined(doc_id, StageFailure(Stage.UPSERT, e), encrypted=encrypted)
        return DocumentOutcome.written(doc_id, encrypted=encrypted)

    def _fold_loop(self, buffer: ReorderBuffer[DocumentOutcome], state: _FoldState) -> None:
        checkpoint_every = self._config.checkpoint_every
        since_checkpoint = 0
        try:
            while (entry := buffer.wait_for_next_release()) is not None:
                fold_outcome(entry.result, state.counters, self._quarantine_writer)
                state.folded += 1
                since_checkpoint += 1
                if checkpoint_every > 0 and since_checkpoint >= checkpoint_every:
                    self._checkpoint_store.save(state.counters.to_checkpoint())
                    since_checkpoint = 0
        except ShutdownError:
            return
        except BaseException as e:
            state.error = e
            buffer.shutdown()

