from __future__ import annotations

import logging
from typing import Any, Dict

import pytest

from services.alignment import count_card_slots, validate_metrics_alignment
from services.comparison import process_inspection
from services.metrics import compute_aggregated_metrics


def test_scenario_is_aligned(scenario_record: Dict[str, Any]) -> None:
    inspections = [process_inspection("insp-1", scenario_record)]
    metrics = compute_aggregated_metrics(inspections)

    report = validate_metrics_alignment(inspections, metrics.table_a)

    assert report.aligned
    assert report.total_published_in_metrics == 1
    assert report.total_published_in_cards == 1
    assert report.total_generated_in_cards == 1
    (detail,) = report.breakdown.by_inspection
    assert detail.comparisons == 1


def test_published_entry_without_pov_is_reported(
    scenario_record: Dict[str, Any], caplog: pytest.LogCaptureFixture
) -> None:
    scenario_record["uvpaintData"]["images"].append(
        {"imageType": "SlimOverview", "rendition": 3, "activeImage": "orphan", "isActive": True}
    )
    inspections = [process_inspection("ok", {}), process_inspection("insp-1", scenario_record)]
    metrics = compute_aggregated_metrics(inspections)

    with caplog.at_level(logging.WARNING, logger="services.alignment"):
        report = validate_metrics_alignment(inspections, metrics.table_a)

    assert not report.aligned
    (mismatch,) = report.mismatches
    assert mismatch.inspection_id == "insp-1"
    assert mismatch.inspection_index == 2
    assert mismatch.metrics_count == 2
    assert mismatch.card_count == 1
    assert mismatch.difference == 1
    assert "alignment.mismatch" in caplog.text


def test_count_card_slots_ignores_slots_without_image() -> None:
    record = {
        "uvpaintData": {
            "images": [
                {
                    "imageType": "ZoomerLeft",
                    "pov": {"simulatedCamera": "Rear", "simulatedCameraSide": "Left"},
                    "rendition": 2,
                    "isActive": True,
                },
            ],
            "uvpaintHistoryImages": [
                {
                    "imageType": "ZoomerLeft",
                    "pov": {"simulatedCamera": "Rear", "simulatedCameraSide": "Left"},
                    "activeImage": "old",
                },
            ],
        }
    }

    comparisons = process_inspection("insp", record).comparisons

    assert count_card_slots(comparisons) == (0, 1)
