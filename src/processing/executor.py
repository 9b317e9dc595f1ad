# src/processing/executor.py — v1
"""Job executor: one identifier's lookup, classification and recording.

Outcome classification:
    status == success_status   -> LookupSuccess, artifact + Done append
    any other status           -> LookupFailure(status, table message)
    no response (transport)    -> LookupFailure(0, error text)

Ledger read or write errors never propagate: the outcome is returned with
recorded=False and the identifier will be picked up again by the next
reconciliation because its Done entry is missing.
"""

from __future__ import annotations

import logging

from idsweep.core.errors import LedgerError, LookupTransportError
from idsweep.core.models import FailureDetail, LookupFailure, LookupOutcome, LookupSuccess
from idsweep.ledger.store import LedgerStore
from idsweep.logging.context import identifier_context
from idsweep.lookup.base_client import BaseLookupClient
from idsweep.lookup.status import (
    SUCCESS_STATUS,
    TRANSPORT_FAILURE_STATUS,
    describe_status,
)

logger = logging.getLogger(__name__)


class JobExecutor:
    """Run one lookup and record its outcome in the ledger."""

    def __init__(
        self,
        client: BaseLookupClient,
        ledger: LedgerStore,
        success_status: int = SUCCESS_STATUS,
    ) -> None:
        self._client = client
        self._ledger = ledger
        self._success_status = success_status

    async def execute(self, identifier: str) -> LookupOutcome:
        """Look up and record one identifier. Never raises for remote errors."""
        with identifier_context(identifier):
            outcome = await self._lookup(identifier)
            if isinstance(outcome, LookupSuccess):
                await self._record_success(outcome)
            else:
                await self._record_failure(outcome)
            return outcome

    async def _lookup(self, identifier: str) -> LookupOutcome:
        try:
            response = await self._client.lookup(identifier)
        except LookupTransportError as e:
            logger.warning("Lookup transport failure: %s", e.message)
            return LookupFailure(
                identifier=identifier,
                status=TRANSPORT_FAILURE_STATUS,
                message=e.message,
            )
        except Exception as e:
            logger.exception("Unexpected lookup error")
            return LookupFailure(
                identifier=identifier,
                status=TRANSPORT_FAILURE_STATUS,
                message=str(e) or type(e).__name__,
            )

        message = describe_status(response.status)
        if response.status == self._success_status:
            logger.debug("Lookup succeeded in %d ms", response.latency_ms)
            return LookupSuccess(
                identifier=identifier,
                status=response.status,
                message=message,
                payload=response.payload,
            )

        logger.info("Lookup failed with status %d: %s", response.status, message)
        return LookupFailure(
            identifier=identifier, status=response.status, message=message,
        )

    async def _record_success(self, outcome: LookupSuccess) -> None:
        try:
            await self._ledger.write_artifact(outcome.identifier, outcome.payload)
        except LedgerError as e:
            logger.error("Artifact write failed, not marking done: %s", e)
            outcome.recorded = False
            return
        try:
            await self._ledger.append_done(outcome.identifier)
        except LedgerError as e:
            logger.error("Artifact saved but done append failed: %s", e)
            outcome.recorded = False

    async def _record_failure(self, outcome: LookupFailure) -> None:
        try:
            await self._ledger.append_failed(outcome.identifier)
            await self._ledger.record_failure_detail(
                outcome.identifier,
                FailureDetail(status=outcome.status, message=outcome.message),
            )
        except LedgerError as e:
            logger.error("Failure could not be recorded: %s", e)
            outcome.recorded = False
