# src/logging/logger.py — v1
"""Log formatting and setup for the idsweep logger tree.

Both formatters read the run/batch/identifier context, so a line logged from
inside a lookup can be traced to its run and identifier without passing them
around.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from idsweep.logging.context import get_context

ROOT_LOGGER = "idsweep"

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_QUIET_LIBRARIES = ("httpx", "httpcore", "uvicorn.access")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with the run/batch/identifier context."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": _utc_now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        ctx = get_context().as_dict()
        if ctx:
            entry["context"] = ctx
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """``2026-01-01 12:00:00 INFO idsweep.x [batch 3] (abc) - message``"""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        line = f"{_utc_now():%Y-%m-%d %H:%M:%S} {record.levelname:<8} {record.name}"
        if ctx.batch is not None:
            line += f" [batch {ctx.batch}]"
        if ctx.identifier:
            line += f" ({ctx.identifier})"
        line += f" - {record.getMessage()}"
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def get_logger(name: str) -> logging.Logger:
    """Named logger under the idsweep root."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | Path | None = None,
    rotation: str = "10MB",
    retention: int = 5,
) -> None:
    """(Re)configure the idsweep logger. Safe to call more than once.

    Args:
        level: DEBUG, INFO, WARNING or ERROR. Unknown names fall back to INFO.
        log_format: "json" for one object per line, anything else for text.
        log_file: Also write to this file, rotated by size.
        rotation: Size that triggers a rotation, e.g. "10MB".
        retention: Rotated files kept next to the live one.
    """
    formatter: logging.Formatter = (
        JsonFormatter() if log_format == "json" else TextFormatter()
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        from idsweep.logging.handlers import create_rotating_handler

        handlers.append(
            create_rotating_handler(log_file, rotation=rotation, retention=retention)
        )

    root = logging.getLogger(ROOT_LOGGER)
    name = level.upper()
    root.setLevel(name if name in _LEVELS else "INFO")
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for lib in _QUIET_LIBRARIES:
        logging.getLogger(lib).setLevel(logging.WARNING)
