"""HTTP routes for ingest operations."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
    status,
)
from starlette.concurrency import run_in_threadpool

from ..exceptions import ValidationError
from ..http_errors import FailureReason, to_http_exception
from .ingest_models import IngestRequest
from .ingest_service import IngestService

router = APIRouter(prefix="/api/pipeline", tags=["ingest"])
logger = logging.getLogger(__name__)

UPLOAD_CHUNK_BYTES = 1024 * 1024


def get_ingest_service(request: Request) -> IngestService:
    """Fetch ingest service from application state."""
    try:
        return request.app.state.ingest_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("IngestService is not configured") from exc


async def read_capped(
    upload: UploadFile,
    limit_bytes: int,
    chunk_size: int = UPLOAD_CHUNK_BYTES,
) -> tuple[bytes | None, int]:
    """Read the upload in chunks, giving up once ``limit_bytes`` is passed.

    Returns ``(payload, size)``; ``payload`` is ``None`` when the upload was
    too large, and ``size`` is the byte count seen before stopping.
    """
    chunks: list[bytes] = []
    size = 0
    while True:
        chunk = await upload.read(chunk_size)
        if not chunk:
            break
        size += len(chunk)
        if size > limit_bytes:
            logger.warning(
                "ingest.upload.payload_too_large",
                extra={"size_bytes": size, "limit_bytes": limit_bytes},
            )
            return None, size
        chunks.append(chunk)
    return b"".join(chunks), size


@router.post("/ingest", status_code=status.HTTP_201_CREATED)
async def submit_ingest(
    file: UploadFile | None = File(None),
    filename: str | None = Form(None),
    file_size: int | None = Form(None, alias="fileSize"),
    creator_id: str | None = Form(None, alias="creatorId"),
    caption: str = Form(""),
    tags: str = Form(""),
    category: str = Form(""),
    tier: str | None = Form(None),
    source: str = Form("upload"),
    scheduled_at: str | None = Form(None, alias="scheduledAt"),
    service: IngestService = Depends(get_ingest_service),
) -> dict[str, Any]:
    """Validate an upload and register it as a new ``inbox`` item."""
    upload_name = filename or (file.filename if file is not None else "") or ""
    payload: bytes | None = None
    size_bytes = file_size
    if file is not None:
        limit = await run_in_threadpool(service.upload_limit, creator_id, upload_name)
        try:
            payload, observed = await read_capped(file, limit)
        except OSError as exc:
            logger.warning("ingest.upload_read_failed", extra={"error": str(exc)})
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "status": "error",
                    "failure_reason": FailureReason.INVALID_REQUEST.value,
                },
            ) from exc
        finally:
            await file.close()
        if payload is None:
            # oversized: validate on the observed size only, nothing is stored
            size_bytes = max(observed, file_size or 0)

    ingest_request = IngestRequest(
        filename=upload_name,
        size_bytes=size_bytes,
        payload=payload,
        creator_id=creator_id,
        caption=caption,
        tags=[tag for tag in tags.split(",") if tag.strip()],
        category=category,
        tier=tier,
        source=source,
        scheduled_at=scheduled_at,
    )
    try:
        item = await run_in_threadpool(service.ingest, ingest_request)
    except ValidationError as exc:
        raise to_http_exception(exc) from exc
    return {"status": "ok", "item": item.to_document()}
