# src/lookup/status.py — v1
"""Status code to human message table for the remote lookup service."""

from __future__ import annotations

SUCCESS_STATUS = 200
TRANSPORT_FAILURE_STATUS = 0

STATUS_MESSAGES: dict[int, str] = {
    200: "Successful Request",
    202: "Your request is accepted and the scraping is still going on",
    400: "Request failed",
    401: "API Key is wrong",
    403: "Request Limit Reached",
    404: "URL is wrong",
    410: "Request timeout",
    429: "Concurrent connection limit reached",
}


def describe_status(status: int) -> str:
    """Human message for a status code; unmapped codes give 'HTTP {code}'."""
    return STATUS_MESSAGES.get(status, f"HTTP {status}")
