# src/logging/context.py — v1
"""Contextual logging support — attach run_id, batch and identifier to log records.

Lookups in one batch run as separate asyncio tasks; each task gets a copy of
the context at creation, so identifier_context() inside a task never leaks
into its siblings.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_batch: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "batch", default=None
)
_identifier: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "identifier", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    batch: int | None = None
    identifier: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        batch=_batch.get(),
        identifier=_identifier.get(),
    )


def set_run_context(run_id: str | None) -> None:
    """Set run-level context (called once per run)."""
    _run_id.set(run_id)
    _batch.set(None)


def set_batch_context(batch: int | None) -> None:
    _batch.set(batch)


@contextmanager
def identifier_context(identifier: str) -> Iterator[None]:
    """Tag every record emitted inside the block with an identifier."""
    token = _identifier.set(identifier)
    try:
        yield
    finally:
        _identifier.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _batch.set(None)
    _identifier.set(None)
