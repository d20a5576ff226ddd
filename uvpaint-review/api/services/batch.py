"""
Batch review: ID-list parsing, upstream fetches and full report assembly.

Each inspection ID is fetched independently with bounded concurrency and a
per-ID timeout. A failed ID is logged and skipped; the batch only fails when no
inspection could be processed at all. Results keep the input order so the
report does not depend on which fetch finished first.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from models.comparison import ComparisonGroup, ProcessedInspection
from models.inspection import VehicleInfo

from .alignment import AlignmentReport, validate_metrics_alignment
from .comparison import process_inspection
from .env import env_float, env_int
from .metrics import AggregateRow, HeatmapRow, compute_aggregated_metrics
from .upstream import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4
MAX_CONCURRENCY = 64
DEFAULT_FETCH_TIMEOUT = 30.0

__all__ = [
    "BatchError",
    "BatchSettings",
    "FetchFailure",
    "InspectionFetcher",
    "InspectionSummary",
    "ReviewReport",
    "build_review_report",
    "fetch_inspections",
    "parse_inspection_ids",
    "run_review",
]


class BatchError(ValueError):
    """Raised when a batch has no usable inspection."""

    def __init__(self, message: str, status_code: int = 422) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InspectionFetcher(Protocol):
    async def fetch_inspection(self, inspection_id: str) -> Optional[Dict[str, Any]]: ...


class BatchSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1, le=MAX_CONCURRENCY)
    fetch_timeout: float = Field(default=DEFAULT_FETCH_TIMEOUT, gt=0)

    @classmethod
    def from_env(cls) -> "BatchSettings":
        concurrency = env_int("REVIEW_CONCURRENCY", DEFAULT_CONCURRENCY)
        if not 1 <= concurrency <= MAX_CONCURRENCY:
            logger.warning(
                "REVIEW_CONCURRENCY=%s outside 1..%d; falling back to %d",
                concurrency,
                MAX_CONCURRENCY,
                DEFAULT_CONCURRENCY,
            )
            concurrency = DEFAULT_CONCURRENCY
        fetch_timeout = env_float("REVIEW_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT)
        if not (fetch_timeout > 0 and math.isfinite(fetch_timeout)):
            logger.warning(
                "REVIEW_FETCH_TIMEOUT=%s must be positive; falling back to %s",
                fetch_timeout,
                DEFAULT_FETCH_TIMEOUT,
            )
            fetch_timeout = DEFAULT_FETCH_TIMEOUT
        return cls(concurrency=concurrency, fetch_timeout=fetch_timeout)


class FetchFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    inspection_id: str
    reason: str


class InspectionSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    inspection_id: str
    label: str
    vehicle: Optional[VehicleInfo] = None
    comparisons: List[ComparisonGroup] = Field(default_factory=list)


class ReviewReport(BaseModel):
    inspections: List[InspectionSummary]
    table_a: List[AggregateRow]
    table_d: List[HeatmapRow]
    validation: AlignmentReport
    failures: List[FetchFailure] = Field(default_factory=list)


def parse_inspection_ids(text: str) -> List[str]:
    """Read inspection IDs from a newline-delimited list (CSV export or plain text).

    Blank lines are ignored, a first line mentioning "inspection" is treated as
    a header, and the ID is the first comma-separated field of each line.
    """

    lines = [line for line in (text or "").splitlines() if line.strip()]
    if not lines:
        return []
    start = 1 if "inspection" in lines[0].lower() else 0
    ids: List[str] = []
    for line in lines[start:]:
        candidate = line.split(",")[0].strip()
        if candidate:
            ids.append(candidate)
    return ids


def build_review_report(
    inspections: Sequence[ProcessedInspection],
    failures: Iterable[FetchFailure] = (),
) -> ReviewReport:
    if not inspections:
        raise BatchError("No valid inspections could be processed")
    metrics = compute_aggregated_metrics(inspections)
    validation = validate_metrics_alignment(inspections, metrics.table_a)
    summaries = [
        InspectionSummary(
            inspection_id=inspection.inspection_id,
            label=inspection.label(index),
            vehicle=inspection.vehicle,
            comparisons=inspection.comparisons,
        )
        for index, inspection in enumerate(inspections)
    ]
    return ReviewReport(
        inspections=summaries,
        table_a=metrics.table_a,
        table_d=metrics.table_d,
        validation=validation,
        failures=list(failures),
    )


async def _fetch_one(
    inspection_id: str,
    fetcher: InspectionFetcher,
    semaphore: asyncio.Semaphore,
    timeout: float,
) -> Tuple[Optional[ProcessedInspection], Optional[FetchFailure]]:
    async with semaphore:
        try:
            record = await asyncio.wait_for(fetcher.fetch_inspection(inspection_id), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("batch.fetch.timeout inspection=%s timeout=%.1fs", inspection_id, timeout)
            return None, FetchFailure(inspection_id=inspection_id, reason=f"timed out after {timeout:g}s")
        except UpstreamError as exc:
            logger.warning(
                "batch.fetch.failed inspection=%s status=%s error=%s",
                inspection_id,
                exc.status_code,
                exc.message,
            )
            return None, FetchFailure(inspection_id=inspection_id, reason=exc.message)
        except Exception as exc:
            logger.warning("batch.fetch.failed inspection=%s error=%s", inspection_id, exc, exc_info=True)
            return None, FetchFailure(inspection_id=inspection_id, reason=f"{type(exc).__name__}: {exc}")
    if record is None:
        logger.warning("batch.fetch.empty inspection=%s", inspection_id)
        return None, FetchFailure(inspection_id=inspection_id, reason="no inspection record returned")
    return process_inspection(inspection_id, record), None


async def fetch_inspections(
    inspection_ids: Sequence[str],
    fetcher: InspectionFetcher,
    *,
    settings: Optional[BatchSettings] = None,
) -> Tuple[List[ProcessedInspection], List[FetchFailure]]:
    settings = settings or BatchSettings()
    semaphore = asyncio.Semaphore(settings.concurrency)
    outcomes = await asyncio.gather(
        *(_fetch_one(inspection_id, fetcher, semaphore, settings.fetch_timeout) for inspection_id in inspection_ids)
    )
    processed = [inspection for inspection, _ in outcomes if inspection is not None]
    failures = [failure for _, failure in outcomes if failure is not None]
    logger.info(
        "batch.fetch.done requested=%d processed=%d failed=%d",
        len(inspection_ids),
        len(processed),
        len(failures),
    )
    return processed, failures


async def run_review(
    inspection_ids: Sequence[str],
    fetcher: InspectionFetcher,
    *,
    settings: Optional[BatchSettings] = None,
) -> ReviewReport:
    """Fetch, process and aggregate a whole batch of inspections."""

    if not inspection_ids:
        raise BatchError("No inspection IDs found")
    processed, failures = await fetch_inspections(inspection_ids, fetcher, settings=settings)
    return build_review_report(processed, failures)
