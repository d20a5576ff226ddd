from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from services.votes import DuplicateVoteError, VoteChoice, VoteStore, VoteSummary, VoteTally, rank_tallies

router = APIRouter()


def get_vote_store(request: Request) -> VoteStore:
    store: VoteStore | None = getattr(request.app.state, "votes", None)
    if store is None:
        raise HTTPException(status_code=500, detail="Vote store unavailable")
    return store


class VoteRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    vote: VoteChoice


class VoteResponse(BaseModel):
    comparison_id: str
    user_id: str
    vote: VoteChoice
    tally: VoteTally


class VoteStatus(BaseModel):
    comparison_id: str
    user_id: str
    vote: Optional[VoteChoice] = None
    has_voted: bool = False


@router.post("/{comparison_id}", response_model=VoteResponse)
async def cast_vote(
    comparison_id: str,
    payload: VoteRequest,
    store: VoteStore = Depends(get_vote_store),
) -> VoteResponse:
    try:
        tally = await store.cast(comparison_id, payload.user_id, payload.vote)
    except DuplicateVoteError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return VoteResponse(comparison_id=comparison_id, user_id=payload.user_id, vote=payload.vote, tally=tally)


@router.get("/{comparison_id}", response_model=VoteTally)
async def get_tally(comparison_id: str, store: VoteStore = Depends(get_vote_store)) -> VoteTally:
    return await store.tally(comparison_id)


@router.get("/{comparison_id}/{user_id}", response_model=VoteStatus)
async def get_vote_status(
    comparison_id: str,
    user_id: str,
    store: VoteStore = Depends(get_vote_store),
) -> VoteStatus:
    vote = await store.user_vote(comparison_id, user_id)
    return VoteStatus(comparison_id=comparison_id, user_id=user_id, vote=vote, has_voted=vote is not None)


@router.get("", response_model=List[VoteSummary])
async def list_tallies(store: VoteStore = Depends(get_vote_store)) -> List[VoteSummary]:
    return rank_tallies(await store.tallies())


__all__ = ["router", "get_vote_store"]
