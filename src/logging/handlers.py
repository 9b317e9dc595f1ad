# src/logging/handlers.py — v1
"""Size-rotated log file handler."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_RE = re.compile(r"^(\d+)\s*([KMG]?B)?$", re.IGNORECASE)
_UNIT_BYTES = {"B": 1, "KB": 1 << 10, "MB": 1 << 20, "GB": 1 << 30}


def parse_size(size: str) -> int:
    """Bytes in a size such as "10MB", "512kb" or "300" (plain bytes)."""
    match = _SIZE_RE.match(size.strip())
    if match is None:
        raise ValueError(f"Unrecognized size {size!r}, expected e.g. '10MB'")
    count, unit = match.groups()
    return int(count) * _UNIT_BYTES[(unit or "B").upper()]


def create_rotating_handler(
    log_file: str | Path,
    rotation: str = "10MB",
    retention: int = 5,
) -> RotatingFileHandler:
    """File handler that rolls over at `rotation` bytes, keeping `retention` old files.

    The parent directory is created if needed.
    """
    target = Path(log_file).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        target,
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
