"""Persistence of pipeline item documents."""

from __future__ import annotations

import logging

from ..exceptions import NotFoundError
from ..storage.blob_store import BlobStore
from .pipeline_models import PipelineItem, PipelineStatus

logger = logging.getLogger(__name__)


class PipelineRepository:
    """Read and write whole PipelineItem documents in the ``pipeline`` namespace."""

    def __init__(self, store: BlobStore) -> None:
        self._store = store

    def find(self, item_id: str) -> PipelineItem | None:
        document = self._store.get_json(item_id)
        if document is None:
            return None
        return PipelineItem.from_document(document)

    def get(self, item_id: str) -> PipelineItem:
        item = self.find(item_id)
        if item is None:
            raise NotFoundError(f"Pipeline item '{item_id}' not found")
        return item

    def save(self, item: PipelineItem) -> None:
        self._store.set_json(item.id, item.to_document())

    def delete(self, item_id: str) -> bool:
        return self._store.delete(item_id)

    def list_items(self, status: PipelineStatus | None = None) -> list[PipelineItem]:
        """Return items (newest first), optionally filtered by status."""
        items: list[PipelineItem] = []
        for key, document in self._store.documents():
            try:
                item = PipelineItem.from_document(document)
            except (KeyError, TypeError, ValueError):
                logger.warning("pipeline.repository.corrupt_document", extra={"item_key": key})
                continue
            if status is None or item.status is status:
                items.append(item)
        items.sort(key=lambda item: item.created_at, reverse=True)
        return items
