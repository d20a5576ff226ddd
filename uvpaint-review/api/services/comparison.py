"""
Comparison-group builder.

Joins the POV groups with the original-image index and emits the ordered
Previous / Latest / Original triples consumed by the review UI, the metrics
engine and the alignment validator. The transform is single-pass and
idempotent: the same raw inspection always yields the same ordered list.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from models.comparison import CardInfo, ComparisonGroup, ProcessedInspection, RenditionData
from models.inspection import InspectionRecord, VehicleInfo

from .candidates import Candidate, extract_candidates
from .grouping import PovGroup, RenditionSelection, group_candidates, select_renditions
from .normalization import BUCKET_RANK, SLIM_OVERVIEW, safe_text
from .originals import OriginalEntry, OriginalIndex, build_original_index

logger = logging.getLogger(__name__)

ORIGINAL_RENDITION = "OG"

__all__ = [
    "ORIGINAL_RENDITION",
    "build_comparison_group",
    "build_comparison_groups",
    "comparison_sort_key",
    "process_inspection",
]


def _card_info(candidate: Optional[Candidate]) -> Optional[CardInfo]:
    if candidate is None:
        return None
    return CardInfo(
        image_type=safe_text(candidate.image_type),
        status=safe_text(candidate.status),
        original_image=safe_text(candidate.original_image),
        active_image=safe_text(candidate.active_image),
    )


def _rendition_data(candidate: Optional[Candidate]) -> Optional[RenditionData]:
    if candidate is None:
        return None
    return RenditionData(
        image_type=candidate.image_type,
        is_active=candidate.is_active,
        active_image=candidate.active_image,
    )


def build_comparison_group(
    inspection_id: str,
    group: PovGroup,
    selection: RenditionSelection,
    original: Optional[OriginalEntry],
    *,
    vehicle: Optional[VehicleInfo] = None,
) -> ComparisonGroup:
    previous, latest = selection.previous, selection.latest
    has_previous = selection.previous_number is not None
    original_url = original.url if original else None

    statuses = (
        (previous.status if previous else None) or ("N/A" if has_previous else "Empty"),
        (latest.status if latest else None) or "N/A",
        "Original" if original_url else "Empty",
    )
    sources = (
        previous.source if previous else ("N/A" if has_previous else "Empty"),
        latest.source if latest else "N/A",
        f"{SLIM_OVERVIEW}_original:{original.source}" if original else "Empty",
    )
    published = any(candidate.published for candidate in (previous, latest) if candidate is not None)
    cam_side_key = f"{group.camera}_{group.side}" if group.camera and group.side else "N/A"

    return ComparisonGroup(
        id=f"{inspection_id}_{group.key}",
        inspection_id=inspection_id,
        group_key=group.key,
        name=f"{group.pov.camera_label} ({group.bucket})",
        bucket=group.bucket,
        camera=group.camera,
        side=group.side,
        pov=group.pov,
        vehicle=vehicle,
        images=(
            previous.active_image if previous else None,
            latest.active_image if latest else None,
            original_url,
        ),
        rendition_numbers=(
            selection.previous_number,
            selection.latest_number,
            ORIGINAL_RENDITION if original_url else None,
        ),
        statuses=statuses,
        sources=sources,
        action_counts=(
            previous.actions if previous else None,
            latest.actions if latest else None,
            None,
        ),
        rendition_data=(_rendition_data(previous), _rendition_data(latest), None),
        card_info=(
            _card_info(previous),
            _card_info(latest),
            _card_info(original.candidate) if original else None,
        ),
        published=published,
        total_versions=selection.total_versions,
        pov_sources=list(group.sources),
        cam_side_key=cam_side_key,
    )


def comparison_sort_key(group: ComparisonGroup) -> Tuple[Any, ...]:
    """Published first, then bucket rank, camera, side and the group key as a final tie-break."""

    return (
        0 if group.published else 1,
        BUCKET_RANK.get(group.bucket, len(BUCKET_RANK)),
        group.camera or "",
        group.side or "",
        group.group_key,
    )


def _assemble(
    inspection_id: str,
    candidates: List[Candidate],
    originals: OriginalIndex,
    vehicle: Optional[VehicleInfo],
) -> List[ComparisonGroup]:
    context = group_candidates(candidates)
    comparisons: List[ComparisonGroup] = []
    for group in context.groups():
        selection = select_renditions(group)
        if selection is None:
            continue
        comparisons.append(
            build_comparison_group(
                inspection_id,
                group,
                selection,
                originals.lookup(group.camera, group.side),
                vehicle=vehicle,
            )
        )
    comparisons.sort(key=comparison_sort_key)
    return comparisons


def build_comparison_groups(inspection_id: str, record: Any) -> List[ComparisonGroup]:
    """Return the ordered comparison groups of one raw inspection record."""

    inspection = InspectionRecord.from_payload(record)
    candidates = extract_candidates(inspection)
    originals = build_original_index(candidates)
    comparisons = _assemble(inspection_id, candidates, originals, inspection.vehicle)
    logger.debug(
        "comparison.build inspection=%s candidates=%d originals=%d groups=%d",
        inspection_id,
        len(candidates),
        len(originals),
        len(comparisons),
    )
    return comparisons


def process_inspection(inspection_id: str, record: Any) -> ProcessedInspection:
    inspection = InspectionRecord.from_payload(record)
    return ProcessedInspection(
        inspection_id=inspection_id,
        vehicle=inspection.vehicle,
        comparisons=build_comparison_groups(inspection_id, inspection),
        record=inspection,
    )
