# src/processing/state.py — v1
"""Mutable, process-local run state.

Owned by the BatchScheduler, which is its only writer apart from the
RunController's start/stop flags. Observers receive read-only snapshots
built by tracking/progress.py. Nothing here is persisted: after a crash
all progress is recovered from the ledger.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from idsweep.core.models import OverallStatus, RunPhase, RunStats


class RunState(BaseModel):
    """State of the processing loop, reset at the top of every cycle."""

    # === CONTROL ===
    overall: OverallStatus = "stopped"
    phase: RunPhase = "pending"
    should_stop: bool = False

    # === CURRENT RUN ===
    run_id: str | None = None
    total_ids: int = 0
    done_count: int = 0
    failed_count: int = 0
    remaining: list[str] = Field(default_factory=list)
    remaining_time_sec: int = 0
    progress_pct: int = 0

    # === LAST RUN ===
    run_stats: RunStats | None = None
    last_error: str | None = None

    def reset_cycle(self) -> None:
        """Return to defaults before waiting for the next start.

        overall and should_stop are left alone: a start() or stop() accepted
        while the previous cycle was finishing must not be lost. run_stats
        and last_error describe the previous run and survive until the next
        one replaces them.
        """
        self.phase = "pending"
        self.run_id = None
        self.done_count = 0
        self.failed_count = 0
        self.remaining = []
        self.remaining_time_sec = 0
        self.progress_pct = 0

    def record_outcome(self, success: bool) -> None:
        if success:
            self.done_count += 1
        else:
            self.failed_count += 1
