"""Total canonicalisation helpers for loosely structured inspection fields.

Every helper accepts any input and maps absent or malformed values to a
sentinel (``None`` or ``"N/A"``) instead of raising.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional, Union

Number = Union[int, float]

SLIM_OVERVIEW = "SlimOverview"
ZOOMER = "Zoomer"

BUCKET_RANK: dict[str, int] = {SLIM_OVERVIEW: 0, ZOOMER: 1}

_CAMERA_PREFIXES: tuple[str, ...] = ("front", "rear", "center")
_SIDE_PREFIXES: tuple[str, ...] = ("left", "right", "center")

# (upstream key, model attribute), highest priority first
ORIGINAL_URL_FIELDS: tuple[tuple[str, str], ...] = (
    ("originalImage", "original_image"),
    ("originalImageUrl", "original_image_url"),
    ("originalImageWithBackground", "original_image_with_background"),
    ("originalImageWithoutBackground", "original_image_without_background"),
)

__all__ = [
    "BUCKET_RANK",
    "Number",
    "ORIGINAL_URL_FIELDS",
    "SLIM_OVERVIEW",
    "ZOOMER",
    "classify_image_bucket",
    "coerce_number",
    "coerce_text",
    "first_url",
    "is_truthy",
    "normalize_camera",
    "normalize_side",
    "pick_original_url",
    "safe_text",
    "safe_url",
    "sum_action_map",
]


def _norm(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def _match_prefix(value: Any, prefixes: Iterable[str]) -> Optional[str]:
    cleaned = _norm(value)
    for prefix in prefixes:
        if cleaned.startswith(prefix):
            return prefix
    return cleaned or None


def normalize_camera(raw: Any) -> Optional[str]:
    """Collapse a simulated camera name onto ``front``, ``rear`` or ``center``."""

    return _match_prefix(raw, _CAMERA_PREFIXES)


def normalize_side(raw: Any) -> Optional[str]:
    """Collapse a camera side onto ``left``, ``right`` or ``center``."""

    return _match_prefix(raw, _SIDE_PREFIXES)


def classify_image_bucket(image_type: Any) -> Optional[str]:
    """Return the comparison bucket for an upstream image type.

    Only SlimOverview and any Zoomer variant are reviewed; every other category
    (including the 360-degree composites) yields ``None``.
    """

    cleaned = _norm(image_type)
    if cleaned == "slimoverview":
        return SLIM_OVERVIEW
    if "zoomer" in cleaned:
        return ZOOMER
    return None


def coerce_number(value: Any) -> Optional[Number]:
    """Parse ints, floats and numeric strings; integral values come back as ``int``."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    if number.is_integer():
        return int(number)
    return number


def sum_action_map(mapping: Any) -> Number:
    """Sum the numeric values of an actions counter map."""

    if not isinstance(mapping, Mapping):
        return 0
    total: Number = 0
    for value in mapping.values():
        if isinstance(value, bool):
            total += int(value)
            continue
        total += coerce_number(value) or 0
    return total


def safe_url(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def safe_text(value: Any) -> str:
    if value is None:
        return "N/A"
    cleaned = str(value).strip()
    return cleaned or "N/A"


def coerce_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def is_truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def first_url(values: Iterable[Any]) -> Optional[str]:
    for value in values:
        url = safe_url(value)
        if url:
            return url
    return None


def pick_original_url(entry: Any) -> Optional[str]:
    """Return the first non-empty original-image URL of a raw entry, in fixed priority order.

    Accepts the raw upstream mapping (camelCase keys) or a parsed entry model.
    """

    if isinstance(entry, Mapping):
        return first_url(entry.get(key) for key, _ in ORIGINAL_URL_FIELDS)
    return first_url(getattr(entry, attribute, None) for _, attribute in ORIGINAL_URL_FIELDS)
