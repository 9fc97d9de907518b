"""
Outbound leg of the relay.

Every call returns an ``UpstreamResult`` instead of raising, so the route
handlers can translate each failure mode into an envelope.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

import httpx

from ..telemetry import UpstreamSpan

logger = logging.getLogger("llm-relay.upstream")


@dataclass
class UpstreamResult:
    """Outcome of a single upstream request."""
    ok: bool
    status_code: Optional[int] = None
    data: Any = None
    text: Optional[str] = None
    error: Optional[str] = None


class UpstreamClient:
    """
    Thin wrapper over ``httpx.AsyncClient`` for one upstream base URL.

    A fresh client is opened per call; ``transport`` lets tests substitute
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str,
        headers: Dict[str, str],
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        provider_name: str = "LLM",
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = headers
        self.timeout = timeout
        self.transport = transport
        self.provider_name = provider_name

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def post_json(self, path: str, body: Dict[str, Any]) -> UpstreamResult:
        return await self._request("POST", path, body)

    async def get_json(self, path: str) -> UpstreamResult:
        return await self._request("GET", path)

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> UpstreamResult:
        url = f"{self.base_url}{path}"

        with UpstreamSpan.call(self.provider_name, method, path) as span:
            try:
                async with self._client() as client:
                    response = await client.request(
                        method,
                        url,
                        json=body,
                        headers=self.headers,
                    )
            except httpx.HTTPError as e:
                logger.error(f"{self.provider_name} request failed: {method} {url}: {e}")
                span.record_exception(e)
                UpstreamSpan.mark_error(span, str(e))
                return UpstreamResult(ok=False, error=str(e) or e.__class__.__name__)

            span.set_attribute("http.status_code", response.status_code)

            if not response.is_success:
                text = response.text
                logger.error(f"{self.provider_name} Error: {response.status_code} {text}")
                UpstreamSpan.mark_error(span, f"HTTP {response.status_code}")
                return UpstreamResult(
                    ok=False,
                    status_code=response.status_code,
                    text=text,
                )

            try:
                data = response.json()
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.error(f"{self.provider_name} returned invalid JSON: {e}")
                span.record_exception(e)
                UpstreamSpan.mark_error(span, "invalid JSON")
                return UpstreamResult(
                    ok=False,
                    status_code=response.status_code,
                    text=response.text,
                    error=str(e),
                )

            return UpstreamResult(ok=True, status_code=response.status_code, data=data)
