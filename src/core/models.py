# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

Ledger, lookup, processing and api code import these types from here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Union

from pydantic import BaseModel, Field

Identifier = str

OverallStatus = Literal["stopped", "running"]
RunPhase = Literal["pending", "sleeping"]


# === LEDGER ===


class FailureDetail(BaseModel):
    """Diagnostic detail recorded for a failed identifier."""

    status: int
    message: str


class FailedEntry(BaseModel):
    """One row of the failure list handed to observers."""

    id: Identifier
    status: int | None = None
    message: str | None = None


# === LOOKUP OUTCOMES ===


class LookupSuccess(BaseModel):
    """Remote lookup returned the success status."""

    kind: Literal["success"] = "success"
    identifier: Identifier
    status: int = 200
    message: str = "Successful Request"
    payload: Any = None
    recorded: bool = True


class LookupFailure(BaseModel):
    """Remote lookup returned any other status or failed in transport.

    status is 0 when no response was received.
    """

    kind: Literal["failure"] = "failure"
    identifier: Identifier
    status: int
    message: str
    recorded: bool = True


LookupOutcome = Union[LookupSuccess, LookupFailure]


# === RUN SUMMARY ===


class RunStats(BaseModel):
    """Summary of the most recently completed run."""

    done: int = 0
    failed: int = 0
    started_at: datetime
    finished_at: datetime | None = None
    stopped: bool = False


class ProgressSnapshot(BaseModel):
    """Observer-facing view of run state merged with ledger-derived counts."""

    overall: OverallStatus = "stopped"
    phase: RunPhase = "pending"
    run_id: str | None = None
    total_ids: int = 0
    done_count: int = 0
    failed_count: int = 0
    remaining_count: int = 0
    progress_pct: int = 100
    remaining_time_sec: int = 0
    remaining_ids: list[Identifier] = Field(default_factory=list)
    failed_details: list[FailedEntry] = Field(default_factory=list)
    run_done: int = 0
    run_failed: int = 0
    run_stats: RunStats | None = None
    should_stop: bool = False
    last_error: str | None = None
