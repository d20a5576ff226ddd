"""Candidate extraction from the two uvpaint source collections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from models.inspection import InspectionRecord, PointOfView, RawImageEntry

from .normalization import Number, classify_image_bucket, normalize_camera, normalize_side

CURRENT_SOURCE = "images"
HISTORY_SOURCE = "uvpaintHistoryImages"

# (source tag, rendition assumed when the entry carries none)
SOURCE_COLLECTIONS: Tuple[Tuple[str, int], ...] = (
    (CURRENT_SOURCE, 3),
    (HISTORY_SOURCE, 1),
)

EXCLUDED_IMAGE_TYPES = frozenset({"artemis"})

__all__ = [
    "CURRENT_SOURCE",
    "Candidate",
    "EXCLUDED_IMAGE_TYPES",
    "HISTORY_SOURCE",
    "SOURCE_COLLECTIONS",
    "build_candidate",
    "extract_candidates",
    "is_reviewable",
]


@dataclass(frozen=True, slots=True)
class Candidate:
    """A normalised, provenance-tagged image entry awaiting grouping."""

    bucket: str
    camera: Optional[str]
    side: Optional[str]
    pov: PointOfView
    image_type: str
    rendition: Number
    active_image: Optional[str]
    original_image: Optional[str]
    status: Optional[str]
    source: str
    is_active: bool
    published: bool
    actions: Number
    sequence: int

    @property
    def group_key(self) -> str:
        return f"{self.bucket}_{self.camera or 'na'}_{self.side or 'na'}"


def is_reviewable(entry: RawImageEntry) -> bool:
    """True for entries the review engine groups: allowed type, not debug output, with a POV."""

    image_type = (entry.image_type or "").strip().lower()
    if image_type in EXCLUDED_IMAGE_TYPES:
        return False
    if entry.pov is None:
        return False
    return classify_image_bucket(entry.image_type) is not None


def build_candidate(
    entry: RawImageEntry,
    *,
    source: str,
    default_rendition: Number,
    sequence: int,
) -> Optional[Candidate]:
    if not is_reviewable(entry):
        return None
    bucket = classify_image_bucket(entry.image_type)
    pov = entry.pov
    assert bucket is not None and pov is not None
    rendition = entry.rendition if entry.rendition is not None else default_rendition
    return Candidate(
        bucket=bucket,
        camera=normalize_camera(pov.simulated_camera),
        side=normalize_side(pov.simulated_camera_side),
        pov=pov,
        image_type=entry.image_type or "N/A",
        rendition=rendition,
        active_image=entry.active_image,
        original_image=entry.original_url(),
        status=entry.status,
        source=source,
        is_active=entry.is_active,
        published=entry.published,
        actions=entry.action_count,
        sequence=sequence,
    )


def _collections(record: InspectionRecord) -> Iterable[Tuple[str, int, List[RawImageEntry]]]:
    entries_by_source = {CURRENT_SOURCE: record.images, HISTORY_SOURCE: record.history_images}
    for source, default_rendition in SOURCE_COLLECTIONS:
        yield source, default_rendition, entries_by_source[source]


def extract_candidates(record: InspectionRecord) -> List[Candidate]:
    """Walk the current then historical collection and emit candidates in input order.

    ``sequence`` numbers every raw entry (kept or not) so tie-breaks follow the
    original input order across both collections.
    """

    candidates: List[Candidate] = []
    sequence = 0
    for source, default_rendition, entries in _collections(record):
        for entry in entries:
            candidate = build_candidate(
                entry,
                source=source,
                default_rendition=default_rendition,
                sequence=sequence,
            )
            sequence += 1
            if candidate is not None:
                candidates.append(candidate)
    return candidates
