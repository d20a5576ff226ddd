from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import redis.asyncio as redis  # type: ignore
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

__all__ = [
    "DuplicateVoteError",
    "VoteChoice",
    "VoteStore",
    "VoteSummary",
    "VoteTally",
    "rank_tallies",
    "tally_votes",
]


class VoteChoice(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class DuplicateVoteError(Exception):
    """Raised when a user votes twice on the same comparison."""

    def __init__(self, comparison_id: str, user_id: str, status_code: int = 409) -> None:
        super().__init__(f"user {user_id} already voted on {comparison_id}")
        self.comparison_id = comparison_id
        self.user_id = user_id
        self.status_code = status_code


class VoteTally(BaseModel):
    model_config = ConfigDict(frozen=True)

    approvals: int = 0
    rejections: int = 0
    total: int = 0
    percentage: float = 0.0


class VoteSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    comparison_id: str
    approvals: int
    rejections: int
    total: int
    percentage: float


def tally_votes(votes: Iterable[Any]) -> VoteTally:
    """Count approve/reject values; unknown values are ignored."""

    approvals = 0
    rejections = 0
    for vote in votes:
        value = vote.value if isinstance(vote, VoteChoice) else str(vote).strip().lower()
        if value == VoteChoice.APPROVE.value:
            approvals += 1
        elif value == VoteChoice.REJECT.value:
            rejections += 1
    total = approvals + rejections
    percentage = round(approvals / total * 100, 1) if total else 0.0
    return VoteTally(approvals=approvals, rejections=rejections, total=total, percentage=percentage)


def rank_tallies(tallies: Dict[str, VoteTally]) -> List[VoteSummary]:
    """Comparisons with at least one vote, highest approval percentage first."""

    ranked = [
        VoteSummary(comparison_id=comparison_id, **tally.model_dump())
        for comparison_id, tally in tallies.items()
        if tally.total > 0
    ]
    ranked.sort(key=lambda item: (-item.percentage, -item.total, item.comparison_id))
    return ranked


class VoteStore:
    """Approve/reject votes per comparison group, one hash per comparison in Redis.

    Each hash maps ``user_id -> vote``; ``HSETNX`` keeps the first vote of every
    user so concurrent duplicate submissions cannot both count.
    """

    def __init__(self, url: str, *, prefix: str = "votes", client: Optional[Any] = None) -> None:
        self._prefix = prefix.rstrip(":")
        self._client = client if client is not None else redis.from_url(url, decode_responses=True)

    @classmethod
    def from_env(cls) -> "VoteStore":
        url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
        prefix = os.getenv("VOTES_PREFIX", "votes")
        return cls(url, prefix=prefix)

    @property
    def prefix(self) -> str:
        return self._prefix

    def key(self, comparison_id: str) -> str:
        return f"{self._prefix}:{comparison_id}"

    async def cast(self, comparison_id: str, user_id: str, vote: VoteChoice) -> VoteTally:
        added = await self._client.hsetnx(self.key(comparison_id), user_id, vote.value)
        if not added:
            raise DuplicateVoteError(comparison_id, user_id)
        logger.info("votes.cast comparison=%s user=%s vote=%s", comparison_id, user_id, vote.value)
        return await self.tally(comparison_id)

    async def user_vote(self, comparison_id: str, user_id: str) -> Optional[VoteChoice]:
        value = await self._client.hget(self.key(comparison_id), user_id)
        if value is None:
            return None
        try:
            return VoteChoice(value)
        except ValueError:
            return None

    async def tally(self, comparison_id: str) -> VoteTally:
        votes = await self._client.hgetall(self.key(comparison_id))
        return tally_votes((votes or {}).values())

    async def tallies(self) -> Dict[str, VoteTally]:
        results: Dict[str, VoteTally] = {}
        prefix = f"{self._prefix}:"
        async for key in self._client.scan_iter(match=f"{prefix}*"):
            comparison_id = key[len(prefix):]
            results[comparison_id] = await self.tally(comparison_id)
        return results

    async def health(self) -> bool:
        try:
            return bool(await self._client.ping())
        except Exception:
            return False

    async def close(self) -> None:
        await self._client.aclose()
