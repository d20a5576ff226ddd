"""Output models produced by the comparison-group builder."""

from __future__ import annotations

from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .inspection import InspectionRecord, PointOfView, VehicleInfo

Number = Union[int, float]

SlotUrls = Tuple[Optional[str], Optional[str], Optional[str]]

__all__ = ["CardInfo", "ComparisonGroup", "ProcessedInspection", "RenditionData"]


class RenditionData(BaseModel):
    """Publication facts of the candidate chosen for a Previous/Latest slot."""

    model_config = ConfigDict(frozen=True)

    image_type: str
    is_active: bool
    active_image: Optional[str] = None

    @property
    def published(self) -> bool:
        return bool(self.is_active and self.active_image)


class CardInfo(BaseModel):
    """Display metadata for one slot card; missing values read ``N/A``."""

    model_config = ConfigDict(frozen=True)

    image_type: str = "N/A"
    status: str = "N/A"
    original_image: str = "N/A"
    active_image: str = "N/A"


class ComparisonGroup(BaseModel):
    """One camera viewpoint's Previous / Latest / Original triple.

    Every slot tuple has exactly three entries in that order; absent slots hold
    ``None`` (or ``"Empty"`` / ``"N/A"`` for the textual columns).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    inspection_id: str
    group_key: str
    name: str
    bucket: str
    camera: Optional[str] = None
    side: Optional[str] = None
    pov: PointOfView
    vehicle: Optional[VehicleInfo] = None
    images: SlotUrls
    rendition_numbers: Tuple[Optional[Number], Optional[Number], Optional[str]]
    statuses: Tuple[str, str, str]
    sources: Tuple[str, str, str]
    action_counts: Tuple[Optional[Number], Optional[Number], Optional[Number]]
    rendition_data: Tuple[Optional[RenditionData], Optional[RenditionData], Optional[RenditionData]]
    card_info: Tuple[Optional[CardInfo], Optional[CardInfo], Optional[CardInfo]]
    published: bool
    total_versions: int
    pov_sources: List[str] = Field(default_factory=list)
    cam_side_key: str = "N/A"


class ProcessedInspection(BaseModel):
    """The per-inspection output of one processing pass."""

    model_config = ConfigDict(frozen=True)

    inspection_id: str
    vehicle: Optional[VehicleInfo] = None
    comparisons: List[ComparisonGroup] = Field(default_factory=list)
    record: InspectionRecord = Field(default_factory=InspectionRecord, exclude=True)

    def label(self, index: int) -> str:
        """Vehicle label for metrics tables, ``Inspection N`` (1-based) without one."""

        if self.vehicle is not None and self.vehicle.label:
            return self.vehicle.label
        return f"Inspection {index + 1}"
