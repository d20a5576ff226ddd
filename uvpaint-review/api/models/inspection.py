"""Boundary models for raw inspection records returned by the upstream API.

The upstream payload is loosely structured: any field may be missing, blank or
of an unexpected type. Every field is coerced once here so the review services
never re-check optionality. Parsing never raises for malformed values.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from services.normalization import (
    coerce_number,
    coerce_text,
    is_truthy,
    pick_original_url,
    safe_url,
    sum_action_map,
)

Number = Union[int, float]

__all__ = [
    "InspectionData",
    "InspectionMeta",
    "InspectionRecord",
    "PointOfView",
    "RawImageEntry",
    "VehicleInfo",
]


def _alias(camel: str, snake: str) -> AliasChoices:
    return AliasChoices(camel, snake)


def _mapping_or_none(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return {str(key): item for key, item in value.items()}
    return None


def _mapping_items(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, (list, tuple)):
        return []
    items: List[Dict[str, Any]] = []
    for item in value:
        mapped = _mapping_or_none(item)
        if mapped is not None:
            items.append(mapped)
    return items


class PointOfView(BaseModel):
    """Camera viewpoint descriptor attached to every simulated image."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    simulated_camera: Optional[str] = Field(default=None, validation_alias=_alias("simulatedCamera", "simulated_camera"))
    simulated_camera_side: Optional[str] = Field(
        default=None, validation_alias=_alias("simulatedCameraSide", "simulated_camera_side")
    )
    serial_number: Optional[Number] = Field(default=None, validation_alias=_alias("serialNumber", "serial_number"))
    original_camera_id: Optional[str] = Field(
        default=None, validation_alias=_alias("originalCameraId", "original_camera_id")
    )

    @field_validator("simulated_camera", "simulated_camera_side", "original_camera_id", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return coerce_text(value)

    @field_validator("serial_number", mode="before")
    @classmethod
    def _coerce_serial(cls, value: Any) -> Optional[Number]:
        return coerce_number(value)

    @property
    def camera_label(self) -> str:
        return f"{self.simulated_camera or 'N/A'} {self.simulated_camera_side or ''}".strip()


class RawImageEntry(BaseModel):
    """One image entry of a source collection (current or historical pipeline output)."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    image_type: Optional[str] = Field(default=None, validation_alias=_alias("imageType", "image_type"))
    pov: Optional[PointOfView] = None
    rendition: Optional[Number] = None
    active_image: Optional[str] = Field(default=None, validation_alias=_alias("activeImage", "active_image"))
    original_image: Optional[str] = Field(default=None, validation_alias=_alias("originalImage", "original_image"))
    original_image_url: Optional[str] = Field(
        default=None, validation_alias=_alias("originalImageUrl", "original_image_url")
    )
    original_image_with_background: Optional[str] = Field(
        default=None,
        validation_alias=_alias("originalImageWithBackground", "original_image_with_background"),
    )
    original_image_without_background: Optional[str] = Field(
        default=None,
        validation_alias=_alias("originalImageWithoutBackground", "original_image_without_background"),
    )
    status: Optional[str] = None
    is_active: bool = Field(default=False, validation_alias=_alias("isActive", "is_active"))
    actions_counter_map: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=_alias("actionsCounterMap", "actions_counter_map")
    )

    @field_validator("image_type", "status", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return coerce_text(value)

    @field_validator("pov", "actions_counter_map", mode="before")
    @classmethod
    def _coerce_mapping(cls, value: Any) -> Optional[Dict[str, Any]]:
        return _mapping_or_none(value)

    @field_validator("rendition", mode="before")
    @classmethod
    def _coerce_rendition(cls, value: Any) -> Optional[Number]:
        return coerce_number(value)

    @field_validator(
        "active_image",
        "original_image",
        "original_image_url",
        "original_image_with_background",
        "original_image_without_background",
        mode="before",
    )
    @classmethod
    def _coerce_url(cls, value: Any) -> Optional[str]:
        return safe_url(value)

    @field_validator("is_active", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        return is_truthy(value)

    @property
    def published(self) -> bool:
        """An entry is published when it is flagged active and carries an active image."""

        return bool(self.is_active and self.active_image)

    @property
    def action_count(self) -> Number:
        return sum_action_map(self.actions_counter_map)

    def original_url(self) -> Optional[str]:
        return pick_original_url(self)


class VehicleInfo(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    year: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None

    @field_validator("year", "make", "model", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return coerce_text(value)

    @property
    def label(self) -> str:
        return f"{self.year or ''} {self.make or ''} {self.model or ''}".strip()


class InspectionMeta(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    vehicle_info: Optional[VehicleInfo] = Field(default=None, validation_alias=_alias("vehicleInfo", "vehicle_info"))

    @field_validator("vehicle_info", mode="before")
    @classmethod
    def _coerce_mapping(cls, value: Any) -> Optional[Dict[str, Any]]:
        return _mapping_or_none(value)


class InspectionData(BaseModel):
    """The two source collections the review engine reads."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    images: List[RawImageEntry] = Field(default_factory=list)
    history_images: List[RawImageEntry] = Field(
        default_factory=list,
        validation_alias=_alias("uvpaintHistoryImages", "history_images"),
    )

    @field_validator("images", "history_images", mode="before")
    @classmethod
    def _coerce_items(cls, value: Any) -> List[Dict[str, Any]]:
        return _mapping_items(value)


class InspectionRecord(BaseModel):
    """A single inspection as returned in ``uvpaintInspections[]``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    inspection_id: Optional[str] = Field(default=None, validation_alias=_alias("inspectionId", "inspection_id"))
    uvpaint_inspection: Optional[InspectionMeta] = Field(
        default=None, validation_alias=_alias("uvpaintInspection", "uvpaint_inspection")
    )
    uvpaint_data: Optional[InspectionData] = Field(
        default=None, validation_alias=_alias("uvpaintData", "uvpaint_data")
    )

    @field_validator("inspection_id", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return coerce_text(value)

    @field_validator("uvpaint_inspection", "uvpaint_data", mode="before")
    @classmethod
    def _coerce_mapping(cls, value: Any) -> Optional[Dict[str, Any]]:
        return _mapping_or_none(value)

    @classmethod
    def from_payload(cls, payload: Any) -> "InspectionRecord":
        if isinstance(payload, InspectionRecord):
            return payload
        return cls.model_validate(_mapping_or_none(payload) or {})

    @property
    def vehicle(self) -> Optional[VehicleInfo]:
        if self.uvpaint_inspection is None:
            return None
        return self.uvpaint_inspection.vehicle_info

    @property
    def images(self) -> List[RawImageEntry]:
        return list(self.uvpaint_data.images) if self.uvpaint_data else []

    @property
    def history_images(self) -> List[RawImageEntry]:
        return list(self.uvpaint_data.history_images) if self.uvpaint_data else []
