"""Cross-check of metrics publish counts against the comparison cards.

Diagnostic only: mismatches are reported and logged, never corrected.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from models.comparison import ComparisonGroup, ProcessedInspection

from .metrics import AggregateRow

logger = logging.getLogger(__name__)

__all__ = [
    "AlignmentBreakdown",
    "AlignmentMismatch",
    "AlignmentReport",
    "InspectionAlignment",
    "count_card_slots",
    "validate_metrics_alignment",
]


class AlignmentMismatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    inspection_id: str
    inspection_index: int
    metrics_count: int
    card_count: int
    card_generated_count: int
    difference: int


class InspectionAlignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    inspection_id: str
    inspection_index: int
    metrics_published: int
    card_published: int
    card_generated: int
    comparisons: int


class AlignmentBreakdown(BaseModel):
    by_inspection: List[InspectionAlignment] = Field(default_factory=list)


class AlignmentReport(BaseModel):
    total_published_in_metrics: int = 0
    total_published_in_cards: int = 0
    total_generated_in_cards: int = 0
    mismatches: List[AlignmentMismatch] = Field(default_factory=list)
    breakdown: AlignmentBreakdown = Field(default_factory=AlignmentBreakdown)

    @property
    def aligned(self) -> bool:
        return not self.mismatches


def count_card_slots(comparisons: Sequence[ComparisonGroup]) -> Tuple[int, int]:
    """Return ``(published, generated)`` over the Previous and Latest slots.

    Slots without an active image are not counted at all.
    """

    published = 0
    generated = 0
    for comparison in comparisons:
        for data in comparison.rendition_data[:2]:
            if data is None or not data.active_image:
                continue
            if data.published:
                published += 1
            else:
                generated += 1
    return published, generated


def validate_metrics_alignment(
    inspections: Sequence[ProcessedInspection],
    table_a: Sequence[AggregateRow],
) -> AlignmentReport:
    """Compare each inspection's Table A publish count with its published card slots."""

    rows_by_index: Dict[int, AggregateRow] = {row.inspection_index: row for row in table_a}
    report = AlignmentReport()

    for index, inspection in enumerate(inspections):
        row = rows_by_index.get(index + 1)
        metrics_count = row.published_count if row is not None else 0
        card_published, card_generated = count_card_slots(inspection.comparisons)

        report.total_published_in_metrics += metrics_count
        report.total_published_in_cards += card_published
        report.total_generated_in_cards += card_generated

        difference = abs(metrics_count - card_published)
        if difference > 0:
            logger.warning(
                "alignment.mismatch inspection=%s metrics=%d cards=%d difference=%d",
                inspection.inspection_id,
                metrics_count,
                card_published,
                difference,
            )
            report.mismatches.append(
                AlignmentMismatch(
                    inspection_id=inspection.inspection_id,
                    inspection_index=index + 1,
                    metrics_count=metrics_count,
                    card_count=card_published,
                    card_generated_count=card_generated,
                    difference=difference,
                )
            )

        report.breakdown.by_inspection.append(
            InspectionAlignment(
                inspection_id=inspection.inspection_id,
                inspection_index=index + 1,
                metrics_published=metrics_count,
                card_published=card_published,
                card_generated=card_generated,
                comparisons=len(inspection.comparisons),
            )
        )

    return report
