import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routers import health, proxy, review, votes
from services.batch import BatchSettings
from services.upstream import UpstreamClient
from services.votes import VoteStore


def _cors_origins() -> List[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Create shared clients during startup and close them on shutdown.
    Routers resolve them from ``app.state`` through their dependencies.
    """
    upstream = UpstreamClient.from_env()
    vote_store = VoteStore.from_env()

    app.state.upstream = upstream
    app.state.votes = vote_store
    app.state.batch_settings = BatchSettings.from_env()

    try:
        yield
    finally:
        await upstream.aclose()
        await vote_store.close()


app = FastAPI(
    title="UV-paint rendition review",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)


# Router registration -------------------------------------------------------
app.include_router(health.router)
app.include_router(proxy.router)
app.include_router(review.router, prefix="/review", tags=["review"])
app.include_router(votes.router, prefix="/votes", tags=["votes"])
