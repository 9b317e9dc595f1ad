# src/api/app.py — v1
"""Control server: start/stop commands, snapshot reads and a push channel.

Routes:
    GET  /api/health   liveness + whether the processing loop is alive
    GET  /api/state    current progress snapshot
    POST /api/start    400 {"error": "Already running"} when running
    POST /api/stop     always accepted
    WS   /ws           snapshot on connect, then one per published transition

The processing loop runs as a background task for the app's lifetime.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse

from idsweep.api.facade import Processor
from idsweep.api.models import CommandResponse, ErrorResponse, HealthResponse
from idsweep.core.errors import AlreadyRunningError
from idsweep.version import __version__

logger = logging.getLogger(__name__)


def create_app(processor: Processor, run_loop: bool = True) -> FastAPI:
    """Build the FastAPI app around a processor.

    Args:
        processor: Assembled processor (see api/facade.py).
        run_loop: Start scheduler.run_forever() in the lifespan. Tests that
            only exercise the routes pass False.
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        task: asyncio.Task[None] | None = None
        if run_loop:
            task = asyncio.create_task(
                processor.scheduler.run_forever(), name="idsweep-processor",
            )
            task.add_done_callback(_log_loop_exit)
        app.state.loop_task = task
        logger.info("Control server ready (version %s)", __version__)
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            await processor.aclose()
            logger.info("Control server stopped")

    app = FastAPI(title="idsweep", version=__version__, lifespan=lifespan)
    app.state.processor = processor

    @app.get("/api/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        task = request.app.state.loop_task
        return HealthResponse(
            version=__version__,
            processor_alive=task is not None and not task.done(),
        )

    @app.get("/api/state")
    async def get_state() -> dict:
        snap = await processor.reporter.snapshot()
        return snap.model_dump(mode="json")

    @app.post(
        "/api/start",
        response_model=CommandResponse,
        responses={400: {"model": ErrorResponse}},
    )
    async def start():
        try:
            processor.controller.start()
        except AlreadyRunningError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
        await processor.reporter.publish()
        return CommandResponse()

    @app.post("/api/stop", response_model=CommandResponse)
    async def stop() -> CommandResponse:
        processor.controller.stop()
        await processor.reporter.publish()
        return CommandResponse()

    @app.websocket("/ws")
    async def push_channel(websocket: WebSocket) -> None:
        await websocket.accept()
        queue = processor.reporter.subscribe()

        async def pump() -> None:
            await websocket.send_json((await processor.reporter.snapshot()).model_dump(mode="json"))
            while True:
                snap = await queue.get()
                await websocket.send_json(snap.model_dump(mode="json"))

        sender = asyncio.create_task(pump())
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.debug("Push channel sender ended with an error", exc_info=True)
            processor.reporter.unsubscribe(queue)

    return app


def _log_loop_exit(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Processing loop exited", exc_info=exc)
