"""Domain service for ingest operations."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..media.media_types import classify, content_type_for, file_extension
from ..notify.notifier import NotificationEvent, Notifier, safe_notify
from ..pipeline.activity_log import ActivityLog
from ..pipeline.pipeline_models import (
    Checks,
    PipelineItem,
    PipelineStatus,
    Tier,
    normalize_tags,
    parse_tier,
    parse_timestamp,
    utcnow,
)
from ..pipeline.pipeline_repository import PipelineRepository
from ..settings.settings_models import DEFAULT_CREATOR_ID
from ..settings.settings_repository import CreatorSettingsRepository
from ..storage.asset_keys import asset_key
from ..storage.asset_store import AssetStore
from .ingest_models import IngestRequest
from .validation import IngestValidator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestService:
    """Validate an upload and create the initial ``inbox`` pipeline item."""

    validator: IngestValidator
    settings_repo: CreatorSettingsRepository
    repo: PipelineRepository
    assets: AssetStore
    activity: ActivityLog
    notifier: Notifier
    clock: Callable[[], datetime] = field(default=utcnow)
    id_factory: Callable[[], str] = field(default=lambda: uuid.uuid4().hex)

    def upload_limit(self, creator_id: str | None, filename: str) -> int:
        """Byte ceiling that applies to ``filename`` for this creator."""
        settings = self.settings_repo.get((creator_id or "").strip() or DEFAULT_CREATOR_ID)
        return settings.max_bytes_for(classify(file_extension(filename)))

    def ingest(self, request: IngestRequest) -> PipelineItem:
        creator_id = (request.creator_id or "").strip() or DEFAULT_CREATOR_ID
        settings = self.settings_repo.get(creator_id)
        upload = self.validator.validate(request, settings)
        tier = parse_tier(request.tier) if request.tier else Tier.FREE
        scheduled_at = parse_timestamp(request.scheduled_at)

        item_id = self.id_factory()
        key = asset_key(item_id, upload.extension)
        item = PipelineItem(
            id=item_id,
            creator_id=creator_id,
            status=PipelineStatus.INBOX,
            filename=upload.filename,
            media_type=upload.media_type,
            file_extension=upload.extension,
            file_size=upload.size_bytes,
            stored_asset_key=key,
            checks=Checks(file_type_valid=True, file_size_valid=True),
            caption=request.caption or "",
            tags=normalize_tags(request.tags),
            category=request.category or "",
            tier=tier,
            source=request.source or "upload",
            scheduled_at=scheduled_at,
            created_at=self.clock(),
        )

        if request.payload is not None:
            self.assets.put(key, request.payload, content_type=content_type_for(upload.filename))
        try:
            self.repo.save(item)
        except Exception:
            if request.payload is not None:
                self.assets.delete(key)
            raise

        self.activity.append(
            "ingest",
            item.id,
            {
                "filename": item.filename,
                "mediaType": item.media_type.value,
                "fileSize": item.file_size,
                "hasPayload": request.payload is not None,
                "source": item.source,
            },
        )
        logger.info(
            "ingest.item.created",
            extra={
                "item_id": item.id,
                "creator_id": creator_id,
                "asset_key": key,
                "media_type": item.media_type.value,
            },
        )
        safe_notify(
            self.notifier,
            NotificationEvent.PIPELINE_INGEST,
            {"filename": item.filename, "source": item.source, "pipelineId": item.id},
        )
        return item
