"""
Delivery client: the one place Tally talks HTTP.

Wraps an httpx.AsyncClient pointed at the delivery service. Channel
senders use post_json() and get a parsed JSON object back; the retry
queue uses post() and only looks at the status code.

The delivery service is expected to answer in JSON even on errors. A
body that is not JSON (a proxy's HTML error page, an empty 502) raises
MalformedResponse instead of being parsed leniently.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from tally.core.errors import MalformedResponse

logger = logging.getLogger(__name__)


class DeliveryClient:
    """
    Usage:
        client = DeliveryClient("http://localhost:3000", timeout=15.0)
        status, body = await client.post_json("/api/send-sms", {"to": ..., "message": ...})
        await client.close()

    Pass an httpx transport (e.g. httpx.MockTransport) to stub the service.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        """POST a JSON payload. Transport failures raise httpx.HTTPError."""
        client = await self._get_client()
        return await client.post(path, json=payload)

    async def post_json(self, path: str, payload: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        """POST a JSON payload and return (status_code, parsed JSON object)."""
        response = await self.post(path, payload)
        return response.status_code, parse_json_body(response)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def parse_json_body(response: httpx.Response) -> dict[str, Any]:
    """Parse a delivery service reply, refusing anything that is not a JSON object."""
    text = response.text
    if not text.lstrip().startswith(("{", "[")):
        logger.error(f"Delivery service returned non-JSON body: {text[:100]!r}")
        raise MalformedResponse(
            f"Delivery service returned an error page instead of JSON "
            f"(status: {response.status_code})",
            status_code=response.status_code,
        )
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponse(
            f"Delivery service response parsing failed: {e}",
            status_code=response.status_code,
        ) from e
    if not isinstance(data, dict):
        raise MalformedResponse(
            "Delivery service response is not a JSON object",
            status_code=response.status_code,
        )
    return data
