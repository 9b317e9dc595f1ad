# src/tracking/progress.py — v1
"""Progress reporting: derive snapshots and push them to observers.

Counts come from the ledger, restricted to the input universe, so they
survive restarts and progress_pct reaches exactly 100 once nothing remains.
The live remaining list comes from the run state while a run is active and
from the remaining snapshot otherwise.
"""

from __future__ import annotations

import asyncio
import logging

from idsweep.core.models import FailedEntry, FailureDetail, ProgressSnapshot
from idsweep.ledger.store import LedgerStore
from idsweep.processing.state import RunState

logger = logging.getLogger(__name__)


def progress_percent(resolved: int, total: int) -> int:
    """Rounded percentage of resolved identifiers; 100 for an empty input."""
    if total <= 0:
        return 100
    return min(100, round(100 * resolved / total))


def build_snapshot(
    state: RunState,
    input_ids: list[str],
    done_ids: list[str],
    failed_ids: list[str],
    remaining_ids: list[str],
    failure_details: dict[str, FailureDetail],
) -> ProgressSnapshot:
    """Pure derivation of the observer snapshot."""
    universe = set(input_ids)
    done = universe.intersection(done_ids)
    failed = universe.intersection(failed_ids) - done
    total = len(universe)

    failed_entries: list[FailedEntry] = []
    for identifier in dict.fromkeys(i for i in failed_ids if i in failed):
        detail = failure_details.get(identifier)
        failed_entries.append(FailedEntry(
            id=identifier,
            status=detail.status if detail else None,
            message=detail.message if detail else None,
        ))

    return ProgressSnapshot(
        overall=state.overall,
        phase=state.phase,
        run_id=state.run_id,
        total_ids=total,
        done_count=len(done),
        failed_count=len(failed),
        remaining_count=len(remaining_ids),
        progress_pct=progress_percent(len(done) + len(failed), total),
        remaining_time_sec=state.remaining_time_sec,
        remaining_ids=list(remaining_ids),
        failed_details=failed_entries,
        run_done=state.done_count,
        run_failed=state.failed_count,
        run_stats=state.run_stats,
        should_stop=state.should_stop,
        last_error=state.last_error,
    )


class ProgressReporter:
    """Build snapshots from the ledger and fan them out to subscribers.

    Each subscriber owns a bounded queue; when a slow subscriber's queue is
    full its oldest snapshot is dropped, since only the latest one matters.
    """

    def __init__(
        self, ledger: LedgerStore, state: RunState, queue_size: int = 16,
    ) -> None:
        self._ledger = ledger
        self._state = state
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[ProgressSnapshot]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def snapshot(self) -> ProgressSnapshot:
        """Current snapshot; reads the ledger files."""
        if self._state.overall == "running":
            remaining = list(self._state.remaining)
        else:
            remaining = await self._ledger.read_remaining()
        return build_snapshot(
            self._state,
            input_ids=await self._ledger.read_input(),
            done_ids=await self._ledger.read_done(),
            failed_ids=await self._ledger.read_failed(),
            remaining_ids=remaining,
            failure_details=await self._ledger.read_failure_details(),
        )

    def subscribe(self) -> asyncio.Queue[ProgressSnapshot]:
        queue: asyncio.Queue[ProgressSnapshot] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[ProgressSnapshot]) -> None:
        self._subscribers.discard(queue)

    async def publish(self) -> ProgressSnapshot | None:
        """Build a snapshot and push it to every subscriber.

        Returns None when the ledger could not be read; reporting must never
        take the processing loop down.
        """
        try:
            snap = await self.snapshot()
        except Exception:
            logger.exception("Failed to build progress snapshot")
            return None

        self._state.progress_pct = snap.progress_pct
        for queue in list(self._subscribers):
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait(snap)
        return snap
