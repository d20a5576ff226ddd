from __future__ import annotations

from typing import Any, Dict

import pytest


@pytest.fixture
def scenario_record() -> Dict[str, Any]:
    """One SlimOverview viewpoint with a published current rendition and one history rendition."""

    return {
        "uvpaintInspection": {"vehicleInfo": {"year": 2021, "make": "Toyota", "model": "Corolla"}},
        "uvpaintData": {
            "images": [
                {
                    "imageType": "SlimOverview",
                    "pov": {"simulatedCamera": "Front", "simulatedCameraSide": "Left"},
                    "rendition": 3,
                    "activeImage": "u1",
                    "isActive": True,
                    "actionsCounterMap": {"a": 2},
                }
            ],
            "uvpaintHistoryImages": [
                {
                    "imageType": "SlimOverview",
                    "pov": {"simulatedCamera": "Front", "simulatedCameraSide": "Left"},
                    "rendition": 1,
                    "activeImage": "u0",
                    "actionsCounterMap": {"a": 1},
                }
            ],
        },
    }
