# src/api/facade.py — v1
"""Public API facade — assemble a processor from settings.

Usage:
    from idsweep.api.facade import build_processor
    processor = build_processor(settings)
    await processor.scheduler.run_forever()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from idsweep.config.settings import Settings
from idsweep.ledger.reconciler import Reconciler
from idsweep.ledger.store import LedgerStore
from idsweep.lookup.base_client import BaseLookupClient
from idsweep.lookup.http_client import HttpLookupClient
from idsweep.processing.controller import RunController
from idsweep.processing.executor import JobExecutor
from idsweep.processing.scheduler import BatchScheduler
from idsweep.processing.state import RunState
from idsweep.tracking.progress import ProgressReporter

logger = logging.getLogger(__name__)


@dataclass
class Processor:
    """Every collaborator of one processing loop, sharing a single RunState."""

    settings: Settings
    state: RunState
    ledger: LedgerStore
    reconciler: Reconciler
    client: BaseLookupClient
    executor: JobExecutor
    controller: RunController
    reporter: ProgressReporter
    scheduler: BatchScheduler

    async def aclose(self) -> None:
        await self.client.aclose()


def build_lookup_client(settings: Settings) -> HttpLookupClient:
    return HttpLookupClient(
        url=settings.lookup_url,
        api_key=settings.lookup_api_key,
        params=settings.lookup_params_dict,
        timeout_s=settings.lookup_timeout_s,
    )


def build_processor(
    settings: Settings,
    client: BaseLookupClient | None = None,
) -> Processor:
    """Wire the ledger, executor, controller, reporter and scheduler.

    Args:
        settings: Validated settings.
        client: Lookup client. Defaults to an HttpLookupClient for
            settings.lookup_url.
    """
    state = RunState()
    ledger = LedgerStore(settings.ledger_paths())
    reconciler = Reconciler(ledger)
    lookup_client = client or build_lookup_client(settings)
    executor = JobExecutor(
        lookup_client, ledger, success_status=settings.lookup_success_status,
    )
    controller = RunController(state)
    reporter = ProgressReporter(ledger, state)
    scheduler = BatchScheduler(
        state=state,
        controller=controller,
        ledger=ledger,
        reconciler=reconciler,
        executor=executor,
        reporter=reporter,
        concurrency=settings.concurrency,
        pacing=settings.pacing,
    )
    logger.debug(
        "Processor built: data_dir=%s, concurrency=%d, lookup_url=%s",
        settings.data_dir, settings.concurrency, settings.lookup_url,
    )
    return Processor(
        settings=settings,
        state=state,
        ledger=ledger,
        reconciler=reconciler,
        client=lookup_client,
        executor=executor,
        controller=controller,
        reporter=reporter,
        scheduler=scheduler,
    )
