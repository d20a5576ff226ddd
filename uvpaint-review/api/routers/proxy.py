"""Pass-through proxy to the upstream inspection API.

The browser never sees the API key; the body is forwarded verbatim and the
upstream status, body and content type are relayed unchanged.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from services.upstream import UpstreamClient, UpstreamError

router = APIRouter(tags=["proxy"])

logger = logging.getLogger(__name__)


def _error(status_code: int, **content: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content)


@router.post("/api/get-uvpaint-inspections")
async def get_uvpaint_inspections(request: Request) -> Response:
    client: UpstreamClient | None = getattr(request.app.state, "upstream", None)
    if client is None or not client.api_key:
        return _error(500, error="Missing UVEYE_API_KEY in environment")

    raw = await request.body()
    try:
        body = json.loads(raw) if raw else {}
    except ValueError:
        return _error(400, error="Request body must be JSON")

    try:
        upstream = await client.forward(body)
    except UpstreamError as exc:
        logger.error("proxy.failed status=%s error=%s", exc.status_code, exc.message)
        if exc.status_code == 500:
            return _error(500, error=exc.message)
        return _error(500, error="Proxy failed", message=exc.message)

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type", "application/json"),
    )


__all__ = ["router"]
