# src/lookup/models.py — v1
"""Lookup-specific types: LookupResponse."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class LookupResponse(BaseModel):
    """Raw answer of the remote lookup service.

    payload is the decoded JSON body, or the text body when it is not JSON.
    """

    identifier: str
    status: int
    payload: Any = None
    latency_ms: int = 0
