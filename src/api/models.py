# src/api/models.py — v1
"""API-level models for the control server responses."""

from __future__ import annotations

from pydantic import BaseModel


class CommandResponse(BaseModel):
    """Acknowledgement of a start/stop command."""

    ok: bool = True


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    processor_alive: bool
