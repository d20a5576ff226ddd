"""
Aggregate metrics over every inspection of one upload.

Table A summarises each inspection; Table D rolls the same Previous/Latest
action deltas up per camera and image type across all inspections. Both tables
are rebuilt from scratch on every call and do not depend on inspection order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from models.comparison import ComparisonGroup, ProcessedInspection
from models.inspection import InspectionRecord, PointOfView, RawImageEntry

from .candidates import EXCLUDED_IMAGE_TYPES
from .normalization import Number, classify_image_bucket

HeatmapKey = Tuple[str, str, str, str]

__all__ = [
    "AggregateRow",
    "AggregatedMetrics",
    "HeatmapRow",
    "compute_aggregated_metrics",
    "percent_change",
    "published_entries",
]


class AggregateRow(BaseModel):
    """Table A: health of one inspection."""

    model_config = ConfigDict(frozen=True)

    inspection_index: int
    inspection_id: str
    label: str
    published_count: int
    images_with_actions: int
    avg_actions_per_image: float
    avg_previous_actions: float
    avg_latest_actions: float
    actions_difference: float
    actions_percent_change: float


class HeatmapRow(BaseModel):
    """Table D: one camera / image type across all loaded inspections."""

    model_config = ConfigDict(frozen=True)

    image_type: str
    simulated_camera: str
    simulated_camera_side: str
    original_camera_id: str
    images: int
    total_actions: float
    avg_actions_per_image: float
    previous_total_actions: float
    previous_count: int
    latest_total_actions: float
    latest_count: int
    avg_previous_actions: float
    avg_latest_actions: float
    actions_difference: float
    actions_percent_change: float


class AggregatedMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    table_a: List[AggregateRow]
    table_d: List[HeatmapRow]


def percent_change(previous_mean: float, latest_mean: float) -> float:
    """Relative change from previous to latest mean.

    A zero previous mean yields 100 when the latest mean is non-zero and 0 when
    both are zero.
    """

    if previous_mean > 0:
        return (latest_mean - previous_mean) / previous_mean * 100
    if latest_mean > 0:
        return 100.0
    return 0.0


def _mean(total: float, count: int) -> float:
    return total / count if count > 0 else 0.0


def published_entries(record: InspectionRecord) -> List[RawImageEntry]:
    """Published entries of the current pipeline output with a reviewable image type.

    Computed from the raw collection, independently from the comparison groups.
    """

    entries: List[RawImageEntry] = []
    for entry in record.images:
        if (entry.image_type or "").strip().lower() in EXCLUDED_IMAGE_TYPES:
            continue
        if classify_image_bucket(entry.image_type) is None:
            continue
        if entry.published:
            entries.append(entry)
    return entries


@dataclass(slots=True)
class _SlotTotals:
    previous_total: float = 0.0
    previous_count: int = 0
    latest_total: float = 0.0
    latest_count: int = 0

    def add(self, comparison: ComparisonGroup) -> None:
        previous_actions, latest_actions = comparison.action_counts[0], comparison.action_counts[1]
        if previous_actions is not None:
            self.previous_total += previous_actions
            self.previous_count += 1
        if latest_actions is not None:
            self.latest_total += latest_actions
            self.latest_count += 1

    @property
    def previous_mean(self) -> float:
        return _mean(self.previous_total, self.previous_count)

    @property
    def latest_mean(self) -> float:
        return _mean(self.latest_total, self.latest_count)


@dataclass(slots=True)
class _HeatmapTotals:
    images: int = 0
    total_actions: float = 0.0
    slots: _SlotTotals = field(default_factory=_SlotTotals)


def _text_or_na(value: Optional[str]) -> str:
    return value if value else "N/A"


def _entry_key(entry: RawImageEntry, pov: PointOfView) -> HeatmapKey:
    return (
        classify_image_bucket(entry.image_type) or "N/A",
        _text_or_na(pov.simulated_camera),
        _text_or_na(pov.simulated_camera_side),
        _text_or_na(pov.original_camera_id),
    )


def _comparison_key(comparison: ComparisonGroup) -> HeatmapKey:
    pov = comparison.pov
    return (
        comparison.bucket or "N/A",
        _text_or_na(pov.simulated_camera),
        _text_or_na(pov.simulated_camera_side),
        _text_or_na(pov.original_camera_id),
    )


def _aggregate_row(index: int, inspection: ProcessedInspection) -> AggregateRow:
    published = published_entries(inspection.record)
    action_counts: List[Number] = [entry.action_count for entry in published]
    total_actions = sum(action_counts)

    slots = _SlotTotals()
    for comparison in inspection.comparisons:
        slots.add(comparison)

    previous_mean, latest_mean = slots.previous_mean, slots.latest_mean
    return AggregateRow(
        inspection_index=index + 1,
        inspection_id=inspection.inspection_id,
        label=inspection.label(index),
        published_count=len(published),
        images_with_actions=sum(1 for actions in action_counts if actions > 0),
        avg_actions_per_image=_mean(total_actions, len(published)),
        avg_previous_actions=previous_mean,
        avg_latest_actions=latest_mean,
        actions_difference=latest_mean - previous_mean,
        actions_percent_change=percent_change(previous_mean, latest_mean),
    )


def _heatmap_row(key: HeatmapKey, totals: _HeatmapTotals) -> HeatmapRow:
    image_type, camera, side, original_camera_id = key
    slots = totals.slots
    previous_mean, latest_mean = slots.previous_mean, slots.latest_mean
    return HeatmapRow(
        image_type=image_type,
        simulated_camera=camera,
        simulated_camera_side=side,
        original_camera_id=original_camera_id,
        images=totals.images,
        total_actions=totals.total_actions,
        avg_actions_per_image=_mean(totals.total_actions, totals.images),
        previous_total_actions=slots.previous_total,
        previous_count=slots.previous_count,
        latest_total_actions=slots.latest_total,
        latest_count=slots.latest_count,
        avg_previous_actions=previous_mean,
        avg_latest_actions=latest_mean,
        actions_difference=latest_mean - previous_mean,
        actions_percent_change=percent_change(previous_mean, latest_mean),
    )


def compute_aggregated_metrics(inspections: Sequence[ProcessedInspection]) -> AggregatedMetrics:
    table_a: List[AggregateRow] = []
    heatmap: Dict[HeatmapKey, _HeatmapTotals] = {}

    for index, inspection in enumerate(inspections):
        table_a.append(_aggregate_row(index, inspection))

        for entry in published_entries(inspection.record):
            if entry.pov is None:
                continue  # counted in Table A only; no camera to attribute it to
            totals = heatmap.setdefault(_entry_key(entry, entry.pov), _HeatmapTotals())
            totals.images += 1
            totals.total_actions += entry.action_count

        for comparison in inspection.comparisons:
            totals = heatmap.setdefault(_comparison_key(comparison), _HeatmapTotals())
            totals.slots.add(comparison)

    table_d = [_heatmap_row(key, totals) for key, totals in heatmap.items()]
    table_d.sort(
        key=lambda row: (
            -row.avg_latest_actions,
            -row.avg_actions_per_image,
            row.image_type,
            row.simulated_camera,
            row.simulated_camera_side,
            row.original_camera_id,
        )
    )
    return AggregatedMetrics(table_a=table_a, table_d=table_d)
