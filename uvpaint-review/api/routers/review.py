from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field

from services.batch import (
    BatchError,
    BatchSettings,
    ReviewReport,
    build_review_report,
    parse_inspection_ids,
    run_review,
)
from services.comparison import process_inspection
from services.upstream import UpstreamClient, UpstreamError

router = APIRouter()

logger = logging.getLogger(__name__)


def get_upstream(request: Request) -> UpstreamClient:
    client: UpstreamClient | None = getattr(request.app.state, "upstream", None)
    if client is None:
        raise HTTPException(status_code=500, detail="Upstream client unavailable")
    return client


def get_batch_settings(request: Request) -> BatchSettings:
    settings: BatchSettings | None = getattr(request.app.state, "batch_settings", None)
    return settings or BatchSettings()


class ReviewRequest(BaseModel):
    inspection_ids: List[str] = Field(default_factory=list)
    ids_text: Optional[str] = Field(
        default=None,
        description="Newline-delimited ID list, e.g. the contents of a CSV export.",
    )

    def resolved_ids(self) -> List[str]:
        ids = [item.strip() for item in self.inspection_ids if item and item.strip()]
        if self.ids_text:
            ids.extend(parse_inspection_ids(self.ids_text))
        return ids


class InspectionPayload(BaseModel):
    inspection_id: str
    record: Dict[str, Any] = Field(default_factory=dict)


class ProcessRequest(BaseModel):
    inspections: List[InspectionPayload] = Field(default_factory=list)


async def _review(
    inspection_ids: List[str],
    client: UpstreamClient,
    settings: BatchSettings,
) -> ReviewReport:
    if not client.configured:
        raise HTTPException(status_code=500, detail="Missing UVEYE_API_KEY in environment")
    try:
        return await run_review(inspection_ids, client, settings=settings)
    except BatchError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@router.post("", response_model=ReviewReport)
async def review(
    payload: ReviewRequest,
    client: UpstreamClient = Depends(get_upstream),
    settings: BatchSettings = Depends(get_batch_settings),
) -> ReviewReport:
    return await _review(payload.resolved_ids(), client, settings)


@router.post("/upload", response_model=ReviewReport)
async def review_upload(
    file: UploadFile = File(...),
    client: UpstreamClient = Depends(get_upstream),
    settings: BatchSettings = Depends(get_batch_settings),
) -> ReviewReport:
    contents = await file.read()
    try:
        text = contents.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="Uploaded file must be UTF-8 text") from exc
    inspection_ids = parse_inspection_ids(text)
    logger.info("review.upload filename=%s ids=%d", file.filename, len(inspection_ids))
    return await _review(inspection_ids, client, settings)


@router.post("/process", response_model=ReviewReport)
async def review_process(payload: ProcessRequest) -> ReviewReport:
    """Build a report from records the caller already holds, without fetching."""

    processed = [process_inspection(item.inspection_id, item.record) for item in payload.inspections]
    try:
        return build_review_report(processed)
    except BatchError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


__all__ = ["router", "get_upstream", "get_batch_settings"]
