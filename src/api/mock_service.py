# src/api/mock_service.py — v1
"""Mock lookup service for local runs and end-to-end tests.

Answers ``GET /api/test?id=...`` with a weighted random status after a
random delay, mimicking the real service's mix of successes, bad URLs,
concurrency rejections and generic failures.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass

from fastapi import FastAPI
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MockResponse:
    status: int
    message: str
    weight: int


DEFAULT_RESPONSES: tuple[MockResponse, ...] = (
    MockResponse(200, "Successful Request", 85),
    MockResponse(404, "URL is wrong", 2),
    MockResponse(429, "Concurrent connection limit reached", 4),
    MockResponse(400, "Request failed", 9),
)


def create_mock_app(
    responses: tuple[MockResponse, ...] = DEFAULT_RESPONSES,
    delay_ms: tuple[int, int] = (2000, 4000),
    seed: int | None = None,
) -> FastAPI:
    """Build the mock lookup app.

    Args:
        responses: Weighted response table.
        delay_ms: Inclusive range of the artificial latency.
        seed: RNG seed for reproducible sequences.
    """
    rng = random.Random(seed)  # noqa: S311
    weights = [r.weight for r in responses]
    app = FastAPI(title="idsweep mock lookup")

    @app.get("/api/test")
    async def lookup(id: str | None = None) -> JSONResponse:  # noqa: A002
        selected = rng.choices(responses, weights=weights, k=1)[0]
        delay = rng.randint(delay_ms[0], delay_ms[1])
        logger.info("Mock lookup id=%s -> %d after %d ms", id, selected.status, delay)
        if delay > 0:
            await asyncio.sleep(delay / 1000)

        payload: dict = {"status": selected.status, "message": selected.message}
        if selected.status == 200:
            payload["value"] = {"givenID": id}
        return JSONResponse(status_code=selected.status, content=payload)

    return app
