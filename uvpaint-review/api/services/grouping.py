"""POV grouping and Previous/Latest rendition assembly.

Candidates are grouped by ``(bucket, camera, side)``; the serial number is
deliberately left out of the key, so several physical cameras sharing a
viewpoint collapse into one group and may collide on a rendition number.
Collisions are resolved by :func:`score_candidate` with the input sequence as
the final tie-break, which keeps the output identical across runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from models.inspection import PointOfView

from .candidates import CURRENT_SOURCE, HISTORY_SOURCE, Candidate
from .normalization import Number

SOURCE_PRIORITY: Dict[str, int] = {CURRENT_SOURCE: 30, HISTORY_SOURCE: 10}

__all__ = [
    "GroupingContext",
    "PovGroup",
    "RenditionSelection",
    "SOURCE_PRIORITY",
    "group_candidates",
    "pick_best",
    "score_candidate",
    "select_renditions",
]


def score_candidate(candidate: Candidate) -> int:
    score = 100 if candidate.active_image else 0
    if candidate.published:
        score += 40
    return score + SOURCE_PRIORITY.get(candidate.source, 0)


def pick_best(candidates: Iterable[Candidate]) -> Optional[Candidate]:
    ranked = sorted(candidates, key=lambda item: (-score_candidate(item), item.sequence))
    return ranked[0] if ranked else None


@dataclass(slots=True)
class PovGroup:
    key: str
    bucket: str
    camera: Optional[str]
    side: Optional[str]
    pov: PointOfView
    renditions: Dict[Number, List[Candidate]] = field(default_factory=dict)
    sources: List[str] = field(default_factory=list)

    def add(self, candidate: Candidate) -> None:
        self.renditions.setdefault(candidate.rendition, []).append(candidate)
        if candidate.source not in self.sources:
            self.sources.append(candidate.source)

    def rendition_numbers(self) -> List[Number]:
        """Distinct rendition numbers, newest first."""

        return sorted(self.renditions.keys(), reverse=True)


@dataclass(frozen=True, slots=True)
class RenditionSelection:
    previous: Optional[Candidate]
    latest: Optional[Candidate]
    previous_number: Optional[Number]
    latest_number: Optional[Number]
    total_versions: int


class GroupingContext:
    """Per-inspection grouping state; discarded once the groups are assembled."""

    def __init__(self) -> None:
        self._groups: Dict[str, PovGroup] = {}

    def add(self, candidate: Candidate) -> PovGroup:
        key = candidate.group_key
        group = self._groups.get(key)
        if group is None:
            group = PovGroup(
                key=key,
                bucket=candidate.bucket,
                camera=candidate.camera,
                side=candidate.side,
                pov=candidate.pov,
            )
            self._groups[key] = group
        group.add(candidate)
        return group

    def groups(self) -> List[PovGroup]:
        """Groups with at least one rendition, ordered by key."""

        return [self._groups[key] for key in sorted(self._groups) if self._groups[key].renditions]

    def __len__(self) -> int:
        return len(self._groups)


def group_candidates(candidates: Iterable[Candidate]) -> GroupingContext:
    context = GroupingContext()
    for candidate in sorted(candidates, key=lambda item: item.sequence):
        context.add(candidate)
    return context


def select_renditions(group: PovGroup) -> Optional[RenditionSelection]:
    """Latest is the highest rendition, Previous the second highest; older ones are dropped."""

    numbers = group.rendition_numbers()
    if not numbers:
        return None
    latest_number = numbers[0]
    previous_number = numbers[1] if len(numbers) > 1 else None
    return RenditionSelection(
        previous=pick_best(group.renditions[previous_number]) if previous_number is not None else None,
        latest=pick_best(group.renditions[latest_number]),
        previous_number=previous_number,
        latest_number=latest_number,
        total_versions=len(numbers),
    )
