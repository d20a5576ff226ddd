"""Readiness of the upstream inspection API and the vote store, aggregated under /health."""

from __future__ import annotations

import os
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Request

from services.upstream import UpstreamClient
from services.votes import VoteStore

router = APIRouter(tags=["health"])


def _app_version() -> str:
    return os.getenv("APP_VERSION") or os.getenv("GIT_SHA") or "dev"


def _upstream(request: Request) -> Optional[UpstreamClient]:
    return getattr(request.app.state, "upstream", None)


def _votes(request: Request) -> Optional[VoteStore]:
    return getattr(request.app.state, "votes", None)


async def _checked(check: Optional[Callable[[], Awaitable[bool]]]) -> bool:
    if check is None:
        return False
    try:
        return bool(await check())
    except Exception:
        return False


async def _upstream_ok(request: Request) -> bool:
    client = _upstream(request)
    return await _checked(client.health if client is not None else None)


async def _votes_ok(request: Request) -> bool:
    store = _votes(request)
    return await _checked(store.health if store is not None else None)


def _config_summary(request: Request) -> Dict[str, Any]:
    """Non-secret settings that explain a failing check (never the API key itself)."""

    client = _upstream(request)
    store = _votes(request)
    return {
        "upstream_host": urlparse(client.url).netloc if client is not None else None,
        "api_key_configured": bool(client is not None and client.api_key),
        "votes_prefix": store.prefix if store is not None else None,
    }


@router.get("/health", name="health_root")
async def health_root(request: Request) -> Dict[str, Any]:
    statuses = {"upstream": await _upstream_ok(request), "votes": await _votes_ok(request)}
    return {
        "ok": all(statuses.values()),
        "version": _app_version(),
        "details": statuses,
        "config": _config_summary(request),
    }


@router.get("/health/upstream", name="health_upstream")
async def health_upstream(request: Request) -> Dict[str, Any]:
    client = _upstream(request)
    return {"ok": await _upstream_ok(request), "api_key_configured": bool(client is not None and client.api_key)}


@router.get("/health/votes", name="health_votes")
async def health_votes(request: Request) -> Dict[str, bool]:
    return {"ok": await _votes_ok(request)}


__all__ = ["router"]
