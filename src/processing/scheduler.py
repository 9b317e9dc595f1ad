# src/processing/scheduler.py — v1
"""Batch scheduler: the perpetual processing loop.

Cycle:
    1. Reset run state, publish, wait for start()
    2. Reconcile the ledgers into the work queue
    3. Pop up to `concurrency` identifiers, run them concurrently, join
    4. Record the batch duration, update ETA, publish
    5. Sleep a random pacing delay unless the queue is empty or stop()
       was requested; stop() cuts the sleep short
    6. On exit, persist the undispatched identifiers as the snapshot,
       record run stats and go back to 1

Batches are strictly sequential; an identifier is never abandoned once
dispatched. Individual lookup failures are recorded by the executor and
never end the run. Anything else that escapes a cycle is logged, exposed
as last_error, and the loop returns to idle.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections import deque
from datetime import datetime, timezone

from idsweep.core.errors import LedgerWriteError
from idsweep.core.models import LookupFailure, LookupOutcome, LookupSuccess, RunStats
from idsweep.ledger.reconciler import Reconciler
from idsweep.ledger.store import LedgerStore
from idsweep.logging.context import set_batch_context, set_run_context
from idsweep.lookup.status import TRANSPORT_FAILURE_STATUS
from idsweep.processing.controller import RunController
from idsweep.processing.executor import JobExecutor
from idsweep.processing.pacing import PacingConfig, estimate_eta_seconds
from idsweep.processing.state import RunState
from idsweep.tracking.progress import ProgressReporter

logger = logging.getLogger(__name__)


def generate_run_id(timestamp: datetime | None = None) -> str:
    """Generate a run_id: yyyymmdd_hhmmss_{uuid4_short}."""
    ts = timestamp or datetime.now(timezone.utc)
    return f"{ts.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:5]}"


class BatchScheduler:
    """Drain the reconciled queue in paced, concurrency-bounded batches."""

    def __init__(
        self,
        state: RunState,
        controller: RunController,
        ledger: LedgerStore,
        reconciler: Reconciler,
        executor: JobExecutor,
        reporter: ProgressReporter,
        concurrency: int = 4,
        pacing: PacingConfig | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._state = state
        self._controller = controller
        self._ledger = ledger
        self._reconciler = reconciler
        self._executor = executor
        self._reporter = reporter
        self._concurrency = concurrency
        self._pacing = pacing or PacingConfig()

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def run_forever(self) -> None:
        """Reconcile once at startup, then serve start/stop cycles until cancelled."""
        try:
            await self._reconciler.reconcile()
        except Exception:
            logger.exception("Startup reconciliation failed")

        while True:
            self._state.reset_cycle()
            await self._reporter.publish()

            await self._controller.wait_for_start()
            self._state.overall = "running"

            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Processing cycle halted")
                self._state.last_error = str(e) or type(e).__name__
                self._controller.mark_stopped()
                self._state.remaining_time_sec = 0
                await self._reporter.publish()
            finally:
                set_run_context(None)

    async def run_cycle(self) -> RunStats:
        """Process the reconciled queue once. Assumes start() was accepted.

        Raises:
            LedgerWriteError: If the ledger directories cannot be created.
            LedgerReadError: If an existing ledger file cannot be read.
        """
        state = self._state
        state.overall = "running"
        state.phase = "pending"
        state.last_error = None
        state.run_id = generate_run_id()
        set_run_context(state.run_id)

        self._ledger.ensure_directories()

        queue = deque(await self._reconciler.reconcile())
        state.total_ids = len(await self._ledger.read_input())
        state.remaining = list(queue)
        started_at = datetime.now(timezone.utc)
        await self._reporter.publish()

        if not queue:
            logger.info("No remaining identifiers to process")
            return await self._finish(queue, started_at, 0, 0)

        logger.info(
            "Run %s started: %d identifiers, concurrency=%d",
            state.run_id, len(queue), self._concurrency,
        )

        run_done = 0
        run_failed = 0
        batch_durations_ms: list[float] = []
        batch_no = 0

        while queue and not state.should_stop:
            batch_no += 1
            batch = [queue.popleft() for _ in range(min(self._concurrency, len(queue)))]
            set_batch_context(batch_no)
            state.phase = "pending"
            state.remaining = list(queue)
            await self._reporter.publish()

            t0 = time.monotonic()
            outcomes = await self._run_batch(batch)
            elapsed_ms = (time.monotonic() - t0) * 1000
            batch_durations_ms.append(elapsed_ms)

            succeeded = sum(1 for o in outcomes if isinstance(o, LookupSuccess))
            run_done += succeeded
            run_failed += len(outcomes) - succeeded

            state.remaining_time_sec = estimate_eta_seconds(
                batch_durations_ms, len(queue), self._concurrency, self._pacing,
            )
            logger.info(
                "Batch %d done in %.0f ms: %d ok, %d failed, %d left, eta %ds",
                batch_no, elapsed_ms, succeeded, len(outcomes) - succeeded,
                len(queue), state.remaining_time_sec,
            )
            await self._reporter.publish()

            if queue and not state.should_stop:
                state.phase = "sleeping"
                await self._reporter.publish()
                delay_s = self._pacing.draw_delay_ms() / 1000
                if await self._controller.wait_for_stop(delay_s):
                    logger.info("Stop received during pacing sleep")

        set_batch_context(None)
        return await self._finish(queue, started_at, run_done, run_failed)

    async def _dispatch(self, identifier: str) -> LookupOutcome:
        try:
            outcome = await self._executor.execute(identifier)
        except Exception as e:
            logger.exception("Executor failed for %s", identifier)
            outcome = _unrecorded_failure(identifier, e)
        self._state.record_outcome(isinstance(outcome, LookupSuccess))
        await self._reporter.publish()
        return outcome

    async def _run_batch(self, batch: list[str]) -> list[LookupOutcome]:
        """Dispatch a batch and wait for every member, whatever each one raises."""
        results = await asyncio.gather(
            *(self._dispatch(i) for i in batch), return_exceptions=True,
        )
        outcomes: list[LookupOutcome] = []
        for identifier, result in zip(batch, results):
            if isinstance(result, BaseException):
                logger.error("Lookup task for %s ended abnormally: %r", identifier, result)
                result = _unrecorded_failure(identifier, result)
            outcomes.append(result)
        return outcomes

    async def _finish(
        self,
        queue: deque[str],
        started_at: datetime,
        run_done: int,
        run_failed: int,
    ) -> RunStats:
        state = self._state
        stopped = state.should_stop and bool(queue)
        remaining = list(queue)

        try:
            await self._ledger.write_remaining(remaining)
        except LedgerWriteError as e:
            logger.error("Failed to persist remaining identifiers: %s", e)

        stats = RunStats(
            done=run_done,
            failed=run_failed,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            stopped=stopped,
        )
        state.run_stats = stats
        state.remaining = remaining
        state.remaining_time_sec = 0
        self._controller.mark_stopped()

        logger.info(
            "Run %s %s: %d done, %d failed, %d remaining",
            state.run_id, "stopped" if stopped else "finished",
            run_done, run_failed, len(remaining),
        )
        await self._reporter.publish()
        return stats


def _unrecorded_failure(identifier: str, exc: BaseException) -> LookupFailure:
    return LookupFailure(
        identifier=identifier,
        status=TRANSPORT_FAILURE_STATUS,
        message=str(exc) or type(exc).__name__,
        recorded=False,
    )
