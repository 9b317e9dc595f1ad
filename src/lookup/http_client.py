# src/lookup/http_client.py — v1
"""HTTP lookup client built on httpx.AsyncClient.

Every identifier is requested as
``GET {url}?api_key=...&id=<identifier>&<fixed params>`` with a
request-level timeout. Status codes are never raised; only transport
failures are, as LookupTransportError.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from idsweep.core.errors import LookupTransportError
from idsweep.lookup.base_client import BaseLookupClient
from idsweep.lookup.models import LookupResponse

logger = logging.getLogger(__name__)


class HttpLookupClient(BaseLookupClient):
    """Remote lookup over HTTP GET."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        params: dict[str, str] | None = None,
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: Lookup endpoint.
            api_key: Sent as the ``api_key`` query parameter when non-empty.
            params: Fixed query parameters sent with every request.
            timeout_s: Request-level timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self._url = url
        self._api_key = api_key
        self._params = dict(params or {})
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s), transport=transport,
        )

    def build_params(self, identifier: str) -> dict[str, str]:
        params: dict[str, str] = {}
        if self._api_key:
            params["api_key"] = self._api_key
        params["id"] = identifier
        params.update(self._params)
        return params

    async def lookup(self, identifier: str) -> LookupResponse:
        t0 = time.monotonic()
        try:
            resp = await self._client.get(self._url, params=self.build_params(identifier))
        except httpx.HTTPError as e:
            message = str(e) or type(e).__name__
            logger.debug("Transport failure for %s: %s", identifier, message)
            raise LookupTransportError(identifier, message) from e
        latency = int((time.monotonic() - t0) * 1000)

        return LookupResponse(
            identifier=identifier,
            status=resp.status_code,
            payload=_decode_body(resp),
            latency_ms=latency,
        )

    async def aclose(self) -> None:
        await self._client.aclose()


def _decode_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text
