# src/core/errors.py — v1
"""Exception hierarchy shared by the ledger, lookup and processing layers."""

from __future__ import annotations


class IdsweepError(Exception):
    """Base class for all idsweep errors."""


class LedgerError(IdsweepError):
    """A ledger file could not be read or written."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class LedgerReadError(LedgerError):
    """An existing ledger file could not be read."""


class LedgerWriteError(LedgerError):
    """A ledger append, snapshot or artifact write failed."""


class LookupTransportError(IdsweepError):
    """The remote lookup failed before any status code was received.

    Covers timeouts, refused connections and DNS failures.
    """

    def __init__(self, identifier: str, message: str) -> None:
        self.identifier = identifier
        self.message = message
        super().__init__(f"Lookup for '{identifier}' failed: {message}")


class AlreadyRunningError(IdsweepError):
    """start() was requested while a run is in progress."""

    def __init__(self) -> None:
        super().__init__("Already running")
