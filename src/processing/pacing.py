# src/processing/pacing.py — v1
"""Inter-batch pacing and ETA estimation."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass


@dataclass(frozen=True)
class PacingConfig:
    """Uniform random delay between batches, in milliseconds."""

    min_ms: float = 2000.0
    max_ms: float = 4000.0

    def __post_init__(self) -> None:
        if self.min_ms < 0 or self.max_ms < self.min_ms:
            raise ValueError(
                f"Invalid pacing interval: [{self.min_ms}, {self.max_ms}] ms"
            )

    @property
    def midpoint_ms(self) -> float:
        return (self.min_ms + self.max_ms) / 2

    def draw_delay_ms(self, rng: random.Random | None = None) -> float:
        """Random delay in [min_ms, max_ms]."""
        r = rng or random
        return r.uniform(self.min_ms, self.max_ms)  # noqa: S311


def estimate_eta_seconds(
    batch_durations_ms: list[float],
    queue_length: int,
    concurrency: int,
    pacing: PacingConfig,
) -> int:
    """Forecast the time left for the rest of the queue.

    Mean batch duration so far plus the expected pacing delay, times the
    number of batches still needed. Returns 0 when nothing is left.
    """
    if queue_length <= 0:
        return 0
    avg_ms = (
        sum(batch_durations_ms) / len(batch_durations_ms)
        if batch_durations_ms else 0.0
    )
    batches_left = math.ceil(queue_length / max(1, concurrency))
    return round(batches_left * (avg_ms + pacing.midpoint_ms) / 1000)
