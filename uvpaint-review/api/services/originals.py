"""Index of originally captured images keyed by physical viewpoint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from .candidates import Candidate
from .grouping import SOURCE_PRIORITY
from .normalization import SLIM_OVERVIEW

CamSide = Tuple[str, str]

__all__ = ["OriginalEntry", "OriginalIndex", "build_original_index"]


@dataclass(frozen=True, slots=True)
class OriginalEntry:
    url: str
    source: str
    priority: int
    candidate: Candidate


class OriginalIndex:
    """Best original capture per ``(camera, side)``, sourced from SlimOverview only.

    Bucket and rendition are ignored: the original capture belongs to the
    viewpoint, so Zoomer groups read their Original slot from here too.
    """

    def __init__(self) -> None:
        self._entries: Dict[CamSide, OriginalEntry] = {}

    def consider(self, candidate: Candidate) -> None:
        if candidate.bucket != SLIM_OVERVIEW:
            return
        if not candidate.camera or not candidate.side:
            return
        url = candidate.original_image
        if not url:
            return
        key = (candidate.camera, candidate.side)
        priority = SOURCE_PRIORITY.get(candidate.source, 0)
        existing = self._entries.get(key)
        if existing is None or priority > existing.priority:
            self._entries[key] = OriginalEntry(url=url, source=candidate.source, priority=priority, candidate=candidate)

    def lookup(self, camera: Optional[str], side: Optional[str]) -> Optional[OriginalEntry]:
        if not camera or not side:
            return None
        return self._entries.get((camera, side))

    def __len__(self) -> int:
        return len(self._entries)


def build_original_index(candidates: Iterable[Candidate]) -> OriginalIndex:
    index = OriginalIndex()
    for candidate in sorted(candidates, key=lambda item: item.sequence):
        index.consider(candidate)
    return index
