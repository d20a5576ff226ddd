"""Typed models shared by the review services and routers."""

from .comparison import CardInfo, ComparisonGroup, ProcessedInspection, RenditionData  # noqa: F401
from .inspection import InspectionRecord, PointOfView, RawImageEntry, VehicleInfo  # noqa: F401

__all__ = [
    "CardInfo",
    "ComparisonGroup",
    "InspectionRecord",
    "PointOfView",
    "ProcessedInspection",
    "RawImageEntry",
    "RenditionData",
    "VehicleInfo",
]
