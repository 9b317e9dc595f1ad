# src/ledger/reconciler.py — v1
"""Rebuild the work queue from the ledgers.

Remaining = Input - Done - Failed, in Input order. The result is written to
the remaining snapshot, which is only a cache: deleting it loses nothing.
"""

from __future__ import annotations

import logging

from idsweep.core.errors import LedgerWriteError
from idsweep.ledger.store import LedgerStore

logger = logging.getLogger(__name__)


def compute_remaining(
    input_ids: list[str], done_ids: list[str], failed_ids: list[str],
) -> list[str]:
    """Set difference preserving input order and dropping duplicates."""
    resolved = set(done_ids) | set(failed_ids)
    seen: set[str] = set()
    remaining: list[str] = []
    for identifier in input_ids:
        if identifier in resolved or identifier in seen:
            continue
        seen.add(identifier)
        remaining.append(identifier)
    return remaining


class Reconciler:
    """Derive and persist the remaining snapshot from a LedgerStore."""

    def __init__(self, ledger: LedgerStore) -> None:
        self._ledger = ledger

    async def reconcile(self) -> list[str]:
        """Recompute the remaining identifiers and overwrite the snapshot.

        A failed snapshot write is logged; the computed list is still
        returned because the ledgers, not the snapshot, are authoritative.

        Raises:
            LedgerReadError: If an existing ledger file cannot be read.
        """
        input_ids = await self._ledger.read_input()
        done_ids = await self._ledger.read_done()
        failed_ids = await self._ledger.read_failed()

        remaining = compute_remaining(input_ids, done_ids, failed_ids)

        try:
            await self._ledger.write_remaining(remaining)
        except LedgerWriteError as e:
            logger.error("Failed to write remaining snapshot: %s", e)

        logger.info(
            "Reconciled ledgers: %d input, %d done, %d failed, %d remaining",
            len(input_ids), len(set(done_ids)), len(set(failed_ids)), len(remaining),
        )
        return remaining
