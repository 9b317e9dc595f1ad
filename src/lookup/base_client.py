# src/lookup/base_client.py — v1
"""Abstract lookup client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from idsweep.lookup.models import LookupResponse


class BaseLookupClient(ABC):
    """Unified interface for remote identifier lookups."""

    @abstractmethod
    async def lookup(self, identifier: str) -> LookupResponse:
        """Look up one identifier.

        Any status code is returned, not raised.

        Raises:
            LookupTransportError: If no response was received at all.
        """

    async def aclose(self) -> None:
        """Release network resources. Default: nothing to release."""
