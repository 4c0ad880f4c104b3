"""Conversion of published pipeline items into catalog entries."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from ..media.media_types import MediaType
from ..pipeline.pipeline_models import PipelineItem, utcnow
from ..storage.blob_store import BlobStore

logger = logging.getLogger(__name__)

ASSET_ROUTE = "/api/pipeline/asset"
THUMBNAIL_ROUTE = "/api/pipeline/thumb"

_ENTRY_TYPES = {
    MediaType.IMAGE: "gallery",
    MediaType.VIDEO: "video",
}


def entry_key(item_id: str) -> str:
    return f"pipeline-{item_id}"


@dataclass(frozen=True, slots=True)
class CatalogDraft:
    """Everything the catalog needs to create one public entry."""

    title: str
    body: str
    tier: str
    type: str
    asset_reference: str
    tags: list[str]
    category: str
    source: str
    pipeline_item_id: str

    @classmethod
    def from_item(cls, item: PipelineItem) -> "CatalogDraft":
        return cls(
            title=item.title,
            body=item.caption,
            tier=item.tier.value,
            type=_ENTRY_TYPES.get(item.media_type, "post"),
            asset_reference=item.stored_asset_key,
            tags=list(item.tags),
            category=item.category,
            source=item.source,
            pipeline_item_id=item.id,
        )


class CatalogWriter(Protocol):
    def write(self, draft: CatalogDraft) -> str:
        """Create the entry and return its catalog key."""

    def remove(self, key: str) -> bool:
        """Drop an entry whose publish could not be completed."""


@dataclass(slots=True)
class BlobCatalogWriter:
    """Writes catalog entries as JSON documents in the ``content`` namespace."""

    store: BlobStore
    clock: Callable[[], datetime] = field(default=utcnow)

    def write(self, draft: CatalogDraft) -> str:
        """Write the entry for ``draft`` under a key owned by its pipeline item.

        Writing the same item twice replaces the entry and keeps its original
        ``createdAt``, so a retried publish never leaves a duplicate behind.
        """
        key = entry_key(draft.pipeline_item_id)
        existing = self.store.get_json(key)
        document = self._document(draft, self.clock())
        if isinstance(existing, dict) and existing.get("createdAt"):
            document["createdAt"] = existing["createdAt"]
        self.store.set_json(key, document)
        logger.info(
            "catalog.entry.created",
            extra={"content_key": key, "item_id": draft.pipeline_item_id, "tier": draft.tier},
        )
        return key

    def remove(self, key: str) -> bool:
        removed = self.store.delete(key)
        if removed:
            logger.info("catalog.entry.removed", extra={"content_key": key})
        return removed

    def entries_for_item(self, item_id: str) -> list[dict[str, Any]]:
        return [
            document
            for _, document in self.store.documents()
            if document.get("pipelineId") == item_id
        ]

    @staticmethod
    def _document(draft: CatalogDraft, now: datetime) -> dict[str, Any]:
        return {
            "title": draft.title,
            "body": draft.body,
            "tier": draft.tier,
            "type": draft.type,
            "assetKey": draft.asset_reference,
            "imageUrl": f"{ASSET_ROUTE}/{draft.asset_reference}",
            "thumbnailUrl": f"{THUMBNAIL_ROUTE}/{draft.asset_reference}",
            "tags": list(draft.tags),
            "category": draft.category,
            "source": draft.source,
            "pipelineId": draft.pipeline_item_id,
            "published": True,
            "createdAt": now.isoformat(),
        }
