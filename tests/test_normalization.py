from __future__ import annotations

import pytest

from models.inspection import InspectionRecord, RawImageEntry
from services.normalization import (
    SLIM_OVERVIEW,
    ZOOMER,
    classify_image_bucket,
    coerce_number,
    is_truthy,
    normalize_camera,
    normalize_side,
    pick_original_url,
    safe_text,
    sum_action_map,
)

_ODD_INPUTS = [None, "", "   ", "FRONT", "front_left", "RearCam", "Center", "12", 12, 0, 3.5, [], {}, object()]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Front", "front"),
        ("FrontBumper", "front"),
        ("  rear_cam ", "rear"),
        ("CenterTop", "center"),
        ("Roof", "roof"),
        ("", None),
        (None, None),
    ],
)
def test_normalize_camera(raw, expected) -> None:
    assert normalize_camera(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("Left", "left"), ("RIGHT", "right"), ("center-ish", "center"), ("   ", None)],
)
def test_normalize_side(raw, expected) -> None:
    assert normalize_side(raw) == expected


@pytest.mark.parametrize("raw", _ODD_INPUTS)
def test_normalizers_are_total(raw) -> None:
    camera = normalize_camera(raw)
    side = normalize_side(raw)
    assert camera is None or isinstance(camera, str)
    assert side is None or isinstance(side, str)
    assert classify_image_bucket(raw) in {SLIM_OVERVIEW, ZOOMER, None}


def test_classify_image_bucket() -> None:
    assert classify_image_bucket("SlimOverview") == SLIM_OVERVIEW
    assert classify_image_bucket(" slimoverview ") == SLIM_OVERVIEW
    assert classify_image_bucket("ZoomerLeft") == ZOOMER
    assert classify_image_bucket("WheelZoomer") == ZOOMER
    assert classify_image_bucket("Overview360") is None
    assert classify_image_bucket("Artemis") is None
    assert classify_image_bucket("SlimOverviewExtra") is None


def test_coerce_number() -> None:
    assert coerce_number("3") == 3
    assert isinstance(coerce_number("3.0"), int)
    assert coerce_number(2.5) == 2.5
    assert coerce_number(True) is None
    assert coerce_number("nan") is None
    assert coerce_number("abc") is None
    assert coerce_number(None) is None


def test_sum_action_map_ignores_junk() -> None:
    assert sum_action_map({"a": 2, "b": "3", "c": "x", "d": None, "e": True}) == 6
    assert sum_action_map(None) == 0
    assert sum_action_map(["a", 1]) == 0


def test_is_truthy_and_safe_text() -> None:
    assert is_truthy("true") and is_truthy("YES") and is_truthy(1)
    assert not is_truthy("false") and not is_truthy(0) and not is_truthy(None)
    assert safe_text(None) == "N/A"
    assert safe_text("  ") == "N/A"
    assert safe_text(" ok ") == "ok"


def test_pick_original_url_follows_field_priority() -> None:
    entry = {
        "originalImage": "  ",
        "originalImageUrl": None,
        "originalImageWithBackground": " https://cdn/bg.jpg ",
        "originalImageWithoutBackground": "https://cdn/nobg.jpg",
    }
    assert pick_original_url(entry) == "https://cdn/bg.jpg"
    assert pick_original_url("not a mapping") is None
    assert RawImageEntry.model_validate(entry).original_url() == "https://cdn/bg.jpg"

    parsed = RawImageEntry.model_validate({"originalImageUrl": "https://cdn/url.jpg", "originalImageWithBackground": "x"})
    assert pick_original_url(parsed) == parsed.original_url() == "https://cdn/url.jpg"


def test_raw_entry_parsing_never_raises_on_malformed_fields() -> None:
    entry = RawImageEntry.model_validate(
        {
            "imageType": 42,
            "pov": "front",
            "rendition": "latest",
            "activeImage": 17,
            "isActive": "yes",
            "actionsCounterMap": [1, 2],
        }
    )

    assert entry.image_type == "42"
    assert entry.pov is None
    assert entry.rendition is None
    assert entry.active_image is None
    assert entry.is_active is True
    assert entry.action_count == 0
    assert entry.published is False


def test_inspection_record_tolerates_missing_sections() -> None:
    record = InspectionRecord.from_payload({"uvpaintData": {"images": "nope", "uvpaintHistoryImages": [1, {}]}})

    assert record.images == []
    assert len(record.history_images) == 1
    assert record.vehicle is None
    assert InspectionRecord.from_payload(None).images == []
