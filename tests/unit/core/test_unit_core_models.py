# tests/unit/core/test_unit_core_models.py — v1
"""Tests for core/models.py and core/errors.py."""

from __future__ import annotations

from datetime import datetime, timezone

from idsweep.core.errors import (
    AlreadyRunningError,
    LedgerError,
    LedgerWriteError,
    LookupTransportError,
)
from idsweep.core.models import (
    FailureDetail,
    LookupFailure,
    LookupSuccess,
    ProgressSnapshot,
    RunStats,
)


class TestOutcomes:
    def test_success_defaults(self):
        o = LookupSuccess(identifier="a", payload={"x": 1})
        assert o.kind == "success"
        assert o.status == 200
        assert o.recorded is True

    def test_failure_fields(self):
        o = LookupFailure(identifier="a", status=0, message="timed out")
        assert o.kind == "failure"
        assert o.status == 0


class TestSnapshot:
    def test_defaults(self):
        snap = ProgressSnapshot()
        assert snap.overall == "stopped"
        assert snap.phase == "pending"
        assert snap.progress_pct == 100
        assert snap.failed_details == []

    def test_json_dump_with_run_stats(self):
        stats = RunStats(done=2, failed=1, started_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
        data = ProgressSnapshot(run_stats=stats).model_dump(mode="json")
        assert data["run_stats"]["done"] == 2
        assert data["run_stats"]["started_at"].startswith("2026-01-01")

    def test_failure_detail_round_trip(self):
        d = FailureDetail(status=429, message="Concurrent connection limit reached")
        assert FailureDetail(**d.model_dump()) == d


class TestErrors:
    def test_ledger_write_error_is_ledger_error(self):
        e = LedgerWriteError("/x/done.txt", "read-only file system")
        assert isinstance(e, LedgerError)
        assert "/x/done.txt" in str(e)

    def test_transport_error_message(self):
        e = LookupTransportError("abc", "connection refused")
        assert e.identifier == "abc"
        assert "connection refused" in str(e)

    def test_already_running(self):
        assert str(AlreadyRunningError()) == "Already running"
