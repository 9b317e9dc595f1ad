# src/processing/controller.py — v1
"""Run controller: the stopped <-> running state machine.

start() and stop() are synchronous so they can be called from request
handlers; the scheduler awaits the signals they raise. Cancellation is
cooperative: stop() only sets a flag and wakes the pacing sleep, it never
interrupts lookups already in flight.
"""

from __future__ import annotations

import asyncio
import logging

from idsweep.core.errors import AlreadyRunningError
from idsweep.processing.state import RunState

logger = logging.getLogger(__name__)


class RunController:
    """Gate the batch scheduler with start/stop commands."""

    def __init__(self, state: RunState) -> None:
        self._state = state
        self._start_event = asyncio.Event()
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state.overall == "running"

    @property
    def stop_requested(self) -> bool:
        return self._state.should_stop

    def start(self) -> None:
        """Request a new run.

        Raises:
            AlreadyRunningError: If a run is already in progress.
        """
        if self.is_running:
            raise AlreadyRunningError()
        self._state.should_stop = False
        self._stop_event.clear()
        self._state.overall = "running"
        self._start_event.set()
        logger.info("Start requested")

    def stop(self) -> None:
        """Request the current run to stop at the next safe point. Always accepted."""
        self._state.should_stop = True
        self._stop_event.set()
        logger.info("Stop requested")

    async def wait_for_start(self) -> None:
        """Block until start() is called, then consume the signal."""
        await self._start_event.wait()
        self._start_event.clear()

    async def wait_for_stop(self, timeout: float) -> bool:
        """Sleep up to timeout seconds, waking early on stop().

        Returns:
            True if a stop was requested, False if the timeout elapsed.
        """
        if self._state.should_stop:
            return True
        if timeout <= 0:
            return False
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return self._state.should_stop
        return True

    def mark_stopped(self) -> None:
        """Called by the scheduler when a run ends, naturally or not."""
        self._state.overall = "stopped"
        self._state.phase = "pending"
