# tests/unit/processing/test_unit_scheduler.py — v1
"""Tests for processing/scheduler.py — batching, stop/resume, progress."""

from __future__ import annotations

import asyncio
import json
import re

import pytest

from idsweep.api.facade import build_processor
from idsweep.config.settings import Settings
from idsweep.processing.pacing import PacingConfig
from idsweep.processing.scheduler import BatchScheduler, generate_run_id


def test_run_id_format():
    assert re.fullmatch(r"\d{8}_\d{6}_[0-9a-f]{5}", generate_run_id())


def test_concurrency_must_be_positive(processor):
    with pytest.raises(ValueError):
        BatchScheduler(
            state=processor.state,
            controller=processor.controller,
            ledger=processor.ledger,
            reconciler=processor.reconciler,
            executor=processor.executor,
            reporter=processor.reporter,
            concurrency=0,
        )


class TestRunCycle:
    @pytest.mark.asyncio
    async def test_five_ids_in_batches_of_two(self, settings, make_client, five_ids, ledger_paths, read_ids):
        queue_left: dict[str, int] = {}
        client = make_client(on_call=lambda i: queue_left.setdefault(i, len(proc.state.remaining)))
        proc = build_processor(settings, client=client)

        proc.controller.start()
        stats = await proc.scheduler.run_cycle()

        # remaining queue length seen by each lookup identifies its batch
        assert queue_left == {"a": 3, "b": 3, "c": 1, "d": 1, "e": 0}
        assert client.max_in_flight <= 2
        assert sorted(read_ids(ledger_paths.done_file)) == five_ids
        assert read_ids(ledger_paths.failed_file) == []
        assert read_ids(ledger_paths.remaining_file) == []
        assert (stats.done, stats.failed, stats.stopped) == (5, 0, False)

        snap = await proc.reporter.snapshot()
        assert snap.overall == "stopped"
        assert snap.progress_pct == 100
        assert snap.remaining_count == 0
        assert snap.run_stats is not None

    @pytest.mark.asyncio
    async def test_one_failure_recorded(self, settings, make_client, five_ids, ledger_paths, read_ids):
        proc = build_processor(settings, client=make_client(statuses={"c": 429}))
        proc.controller.start()
        await proc.scheduler.run_cycle()

        assert sorted(read_ids(ledger_paths.done_file)) == ["a", "b", "d", "e"]
        assert read_ids(ledger_paths.failed_file) == ["c"]
        details = json.loads(ledger_paths.failure_details_file.read_text(encoding="utf-8"))
        assert details == {"c": {"status": 429, "message": "Concurrent connection limit reached"}}
        assert not (ledger_paths.results_dir / "c.json").exists()

        snap = await proc.reporter.snapshot()
        assert (snap.done_count, snap.failed_count, snap.progress_pct) == (4, 1, 100)
        assert snap.failed_details[0].id == "c"

    @pytest.mark.asyncio
    async def test_transport_failures_complete_the_run(self, settings, make_client, five_ids, read_ids, ledger_paths):
        client = make_client(transport_errors={i: "timed out" for i in five_ids})
        proc = build_processor(settings, client=client)
        proc.controller.start()
        stats = await proc.scheduler.run_cycle()

        assert stats.failed == 5
        assert sorted(read_ids(ledger_paths.failed_file)) == five_ids
        assert (await proc.reporter.snapshot()).progress_pct == 100

    @pytest.mark.asyncio
    async def test_stop_after_first_batch_then_resume(self, settings, make_client, five_ids, ledger_paths, read_ids):
        def on_call(identifier: str) -> None:
            if identifier == "b":
                proc.controller.stop()

        client = make_client(on_call=on_call)
        proc = build_processor(settings, client=client)
        proc.controller.start()
        stats = await proc.scheduler.run_cycle()

        assert client.calls == ["a", "b"]
        assert stats.stopped is True
        assert read_ids(ledger_paths.remaining_file) == ["c", "d", "e"]
        assert sorted(read_ids(ledger_paths.done_file)) == ["a", "b"]
        assert proc.state.overall == "stopped"

        client.on_call = None
        proc.controller.start()
        await proc.scheduler.run_cycle()

        assert client.calls == ["a", "b", "c", "d", "e"]
        assert sorted(read_ids(ledger_paths.done_file)) == five_ids
        assert read_ids(ledger_paths.remaining_file) == []

    @pytest.mark.asyncio
    async def test_stop_during_pacing_sleep(self, tmp_path, make_client, five_ids, ledger_paths, read_ids):
        settings = Settings(
            _env_file=None, data_dir=tmp_path, concurrency=2,
            pacing_min_ms=10_000, pacing_max_ms=10_000,
        )
        proc = build_processor(settings, client=make_client())

        async def stop_when_sleeping() -> None:
            while proc.state.phase != "sleeping":
                await asyncio.sleep(0.005)
            proc.controller.stop()

        proc.controller.start()
        stopper = asyncio.create_task(stop_when_sleeping())
        stats = await asyncio.wait_for(proc.scheduler.run_cycle(), timeout=5)
        await stopper

        assert stats.stopped is True
        assert read_ids(ledger_paths.remaining_file) == ["c", "d", "e"]

    @pytest.mark.asyncio
    async def test_empty_input(self, processor, fake_client):
        processor.controller.start()
        stats = await processor.scheduler.run_cycle()

        assert fake_client.calls == []
        assert (stats.done, stats.failed) == (0, 0)
        snap = await processor.reporter.snapshot()
        assert snap.progress_pct == 100
        assert snap.total_ids == 0

    @pytest.mark.asyncio
    async def test_skips_already_resolved(self, processor, fake_client, five_ids, ledger_paths, write_ids):
        write_ids(ledger_paths.done_file, ["a", "b"])
        write_ids(ledger_paths.failed_file, ["c"])
        processor.controller.start()
        await processor.scheduler.run_cycle()
        assert fake_client.calls == ["d", "e"]

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, processor, five_ids):
        queue = processor.reporter.subscribe()
        processor.controller.start()
        await processor.scheduler.run_cycle()

        pcts = []
        while not queue.empty():
            pcts.append(queue.get_nowait().progress_pct)
        assert pcts
        assert pcts == sorted(pcts)
        assert pcts[-1] == 100


class TestRunForever:
    @pytest.mark.asyncio
    async def test_start_stop_through_controller(self, processor, five_ids, ledger_paths, read_ids):
        task = asyncio.create_task(processor.scheduler.run_forever())
        try:
            await asyncio.sleep(0.01)
            assert processor.state.overall == "stopped"
            processor.controller.start()

            for _ in range(200):
                if processor.state.run_stats is not None and processor.state.overall == "stopped":
                    break
                await asyncio.sleep(0.01)

            assert sorted(read_ids(ledger_paths.done_file)) == five_ids
            assert processor.state.run_stats.done == 5
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

    @pytest.mark.asyncio
    async def test_cycle_error_sets_last_error(self, tmp_path, make_client):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        settings = Settings(_env_file=None, data_dir=blocker, pacing_min_ms=0, pacing_max_ms=0)
        proc = build_processor(settings, client=make_client())

        task = asyncio.create_task(proc.scheduler.run_forever())
        try:
            await asyncio.sleep(0.01)
            proc.controller.start()
            for _ in range(200):
                if proc.state.last_error:
                    break
                await asyncio.sleep(0.01)

            assert proc.state.last_error
            assert proc.state.overall == "stopped"
            # the loop survives and accepts another start
            proc.controller.start()
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

    def test_default_pacing(self, processor):
        assert processor.scheduler.concurrency == 2
        assert isinstance(processor.settings.pacing, PacingConfig)


class TestBatchIsolation:
    @pytest.mark.asyncio
    async def test_unreadable_details_map_does_not_halt_run(
        self, settings, make_client, five_ids, ledger_paths, read_ids,
    ):
        ledger_paths.failure_details_file.mkdir()
        client = make_client(statuses={"c": 429})
        proc = build_processor(settings, client=client)

        proc.controller.start()
        stats = await proc.scheduler.run_cycle()

        assert client.calls == five_ids
        assert sorted(read_ids(ledger_paths.done_file)) == ["a", "b", "d", "e"]
        assert read_ids(ledger_paths.failed_file) == ["c"]
        assert read_ids(ledger_paths.remaining_file) == []
        assert (stats.done, stats.failed, stats.stopped) == (4, 1, False)
        assert proc.state.overall == "stopped"

    @pytest.mark.asyncio
    async def test_executor_error_waits_for_whole_batch(
        self, processor, fake_client, five_ids, ledger_paths, read_ids, monkeypatch,
    ):
        execute = processor.executor.execute

        async def flaky_execute(identifier: str):
            if identifier == "c":
                raise RuntimeError("disk on fire")
            return await execute(identifier)

        monkeypatch.setattr(processor.executor, "execute", flaky_execute)
        processor.controller.start()
        stats = await processor.scheduler.run_cycle()

        assert fake_client.calls == ["a", "b", "d", "e"]
        assert fake_client.in_flight == 0
        assert sorted(read_ids(ledger_paths.done_file)) == ["a", "b", "d", "e"]
        assert (stats.done, stats.failed) == (4, 1)
        # c was never recorded, so the next reconciliation queues it again
        assert await processor.reconciler.reconcile() == ["c"]
