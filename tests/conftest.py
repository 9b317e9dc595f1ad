# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a scripted lookup client, ledger layouts in temp directories and
fully wired processors. No network access — all lookups are faked.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable

import pytest

from idsweep.api.facade import Processor, build_processor
from idsweep.config.settings import Settings
from idsweep.core.errors import LookupTransportError
from idsweep.ledger.layout import LedgerPaths
from idsweep.ledger.store import LedgerStore
from idsweep.lookup.base_client import BaseLookupClient
from idsweep.lookup.models import LookupResponse


class FakeLookupClient(BaseLookupClient):
    """Scripted lookup client that records calls and concurrency.

    statuses maps identifier -> status (default 200); identifiers listed in
    transport_errors raise LookupTransportError instead. on_call runs before
    each lookup returns, e.g. to request a stop mid-run.
    """

    def __init__(
        self,
        statuses: dict[str, int] | None = None,
        transport_errors: dict[str, str] | None = None,
        delay_s: float = 0.01,
        on_call: Callable[[str], None] | None = None,
    ) -> None:
        self.statuses = statuses or {}
        self.transport_errors = transport_errors or {}
        self.delay_s = delay_s
        self.on_call = on_call
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def lookup(self, identifier: str) -> LookupResponse:
        self.calls.append(identifier)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay_s)
            if self.on_call is not None:
                self.on_call(identifier)
            if identifier in self.transport_errors:
                raise LookupTransportError(identifier, self.transport_errors[identifier])
            status = self.statuses.get(identifier, 200)
            payload = {"value": {"givenID": identifier}} if status == 200 else {"status": status}
            return LookupResponse(identifier=identifier, status=status, payload=payload)
        finally:
            self.in_flight -= 1

    async def aclose(self) -> None:
        self.closed = True


def write_lines(path: Path, ids: list[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"{i}\n" for i in ids), encoding="utf-8")


def read_lines(path: Path) -> list[str]:
    if not path.exists():
        return []
    return [line for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


# === FIXTURES ===


@pytest.fixture
def ledger_paths(tmp_path: Path) -> LedgerPaths:
    """Default ledger layout under a temp directory."""
    return LedgerPaths.under(tmp_path)


@pytest.fixture
def ledger(ledger_paths: LedgerPaths) -> LedgerStore:
    return LedgerStore(ledger_paths)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with no pacing delay, rooted at tmp_path."""
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        concurrency=2,
        pacing_min_ms=0,
        pacing_max_ms=0,
    )


@pytest.fixture
def fake_client() -> FakeLookupClient:
    return FakeLookupClient()


@pytest.fixture
def processor(settings: Settings, fake_client: FakeLookupClient) -> Processor:
    """Fully wired processor using the fake client."""
    return build_processor(settings, client=fake_client)


@pytest.fixture
def five_ids(ledger_paths: LedgerPaths) -> list[str]:
    ids = ["a", "b", "c", "d", "e"]
    write_lines(ledger_paths.input_file, ids)
    return ids


@pytest.fixture
def make_client() -> type[FakeLookupClient]:
    """The FakeLookupClient class, for tests that need a custom script."""
    return FakeLookupClient


@pytest.fixture
def write_ids() -> Callable[[Path, list[str]], None]:
    return write_lines


@pytest.fixture
def read_ids() -> Callable[[Path], list[str]]:
    return read_lines
