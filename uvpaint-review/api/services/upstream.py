"""
Client for the upstream uvpaint inspection-data API.

Used both by the pass-through proxy endpoint and by the batch loader. The API
key never leaves the server: it is attached here as the ``uveye-api-key``
header.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx

from .env import env_float

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_URL = (
    "https://us-central1-uvcamp-staging.cloudfunctions.net/https-uvpaintInspectionsOnRequest"
)
API_KEY_HEADER = "uveye-api-key"

__all__ = ["API_KEY_HEADER", "DEFAULT_UPSTREAM_URL", "UpstreamClient", "UpstreamError"]


class UpstreamError(Exception):
    """Raised when the upstream API cannot be reached or answers with an error."""

    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class UpstreamClient:
    url: str
    api_key: Optional[str]
    timeout: float
    transport: Optional[httpx.AsyncBaseTransport] = None
    _client: Optional[httpx.AsyncClient] = None

    def __post_init__(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    @classmethod
    def from_env(cls) -> "UpstreamClient":
        url = os.getenv("UPSTREAM_URL", DEFAULT_UPSTREAM_URL)
        api_key = os.getenv("UVEYE_API_KEY") or None
        timeout = env_float("UPSTREAM_TIMEOUT", 60.0)
        return cls(url=url, api_key=api_key, timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.url and self.api_key)

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise UpstreamError("Missing UVEYE_API_KEY in environment", status_code=500)
        return {
            "Content-Type": "application/json",
            "Accept": "*/*",
            API_KEY_HEADER: self.api_key,
        }

    async def forward(self, body: Any) -> httpx.Response:
        """POST ``body`` to the upstream URL and return the raw response."""

        headers = self._headers()
        client = self._client
        assert client is not None
        try:
            response = await client.post(self.url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"upstream request failed: {exc}") from exc
        logger.info("upstream.response status=%d bytes=%d", response.status_code, len(response.content))
        return response

    async def fetch_inspection(self, inspection_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one inspection record; ``None`` when the upstream returns no record."""

        response = await self.forward({"inspectionIds": [inspection_id]})
        if response.status_code >= 400:
            raise UpstreamError(
                f"upstream returned {response.status_code} for inspection {inspection_id}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(f"upstream returned invalid JSON for inspection {inspection_id}") from exc
        records = payload.get("uvpaintInspections") if isinstance(payload, Mapping) else None
        if not isinstance(records, list) or not records:
            return None
        first = records[0]
        return dict(first) if isinstance(first, Mapping) else None

    async def health(self) -> bool:
        """The upstream only accepts POSTs with a key, so readiness means it is configured."""

        return self.configured

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
