"""HTTP routes for pipeline review and publishing."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request

from ..exceptions import AppError
from ..http_errors import to_http_exception
from ..scheduler.scheduled_publisher import ScheduledPublisher
from .activity_log import ActivityLog
from .pipeline_schemas import ApproveRequest, MetadataUpdateRequest, RejectRequest
from .pipeline_service import PipelineService

router = APIRouter(prefix="/api/pipeline", tags=["pipeline"])
logger = logging.getLogger(__name__)


def get_pipeline_service(request: Request) -> PipelineService:
    try:
        return request.app.state.pipeline_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("PipelineService is not configured") from exc


def get_scheduled_publisher(request: Request) -> ScheduledPublisher:
    try:
        return request.app.state.scheduled_publisher  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("ScheduledPublisher is not configured") from exc


def get_activity_log(request: Request) -> ActivityLog:
    try:
        return request.app.state.activity_log  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("ActivityLog is not configured") from exc


# static paths are declared before /{item_id}


@router.get("")
def list_items(
    status_filter: str | None = Query(None, alias="status"),
    service: PipelineService = Depends(get_pipeline_service),
) -> dict[str, Any]:
    try:
        listing = service.list_items(status_filter)
    except AppError as exc:
        raise to_http_exception(exc) from exc
    return listing.to_document()


@router.get("/stats")
def read_stats(service: PipelineService = Depends(get_pipeline_service)) -> dict[str, Any]:
    return service.stats()


@router.get("/activity")
def read_activity(
    limit: int = Query(50, ge=1, le=500),
    activity: ActivityLog = Depends(get_activity_log),
) -> dict[str, Any]:
    return {"items": activity.recent(limit)}


@router.post("/process-all")
def process_all(service: PipelineService = Depends(get_pipeline_service)) -> dict[str, Any]:
    return service.process_all().to_document()


@router.post("/publish-all")
def publish_all(service: PipelineService = Depends(get_pipeline_service)) -> dict[str, Any]:
    return service.publish_all().to_document()


@router.post("/schedule/sweep")
def trigger_sweep(publisher: ScheduledPublisher = Depends(get_scheduled_publisher)) -> dict[str, Any]:
    result = publisher.sweep()
    logger.info("pipeline.sweep.manual", extra={"published": result.count})
    return result.to_document()


@router.get("/{item_id}")
def read_item(item_id: str, service: PipelineService = Depends(get_pipeline_service)) -> dict[str, Any]:
    try:
        return service.get(item_id).to_document()
    except AppError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/{item_id}")
def update_item(
    item_id: str,
    payload: MetadataUpdateRequest,
    service: PipelineService = Depends(get_pipeline_service),
) -> dict[str, Any]:
    try:
        return service.update(item_id, payload.changes()).to_document()
    except AppError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{item_id}")
def delete_item(item_id: str, service: PipelineService = Depends(get_pipeline_service)) -> dict[str, Any]:
    try:
        return service.delete(item_id).to_document()
    except AppError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{item_id}/process")
def process_item(item_id: str, service: PipelineService = Depends(get_pipeline_service)) -> dict[str, Any]:
    try:
        return service.process(item_id).to_document()
    except AppError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{item_id}/approve")
def approve_item(
    item_id: str,
    payload: ApproveRequest | None = Body(default=None),
    service: PipelineService = Depends(get_pipeline_service),
) -> dict[str, Any]:
    overrides = payload.changes() if payload is not None else {}
    try:
        return service.approve(item_id, overrides).to_document()
    except AppError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{item_id}/reject")
def reject_item(
    item_id: str,
    payload: RejectRequest | None = Body(default=None),
    service: PipelineService = Depends(get_pipeline_service),
) -> dict[str, Any]:
    reason = payload.reason if payload is not None else None
    try:
        return service.reject(item_id, reason).to_document()
    except AppError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{item_id}/publish")
def publish_item(item_id: str, service: PipelineService = Depends(get_pipeline_service)) -> dict[str, Any]:
    try:
        return service.publish(item_id).to_document()
    except AppError as exc:
        raise to_http_exception(exc) from exc
