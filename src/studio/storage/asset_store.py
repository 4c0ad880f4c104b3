"""Binary asset storage on top of the ``pipeline-assets`` namespace."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..media.media_types import content_type_for
from .asset_keys import AssetVariant, all_variant_keys, variant_key
from .blob_store import BlobRecord, BlobStore


@dataclass(slots=True)
class StoredAsset:
    key: str
    data: bytes
    content_type: str


@dataclass(slots=True)
class AssetStore:
    """Store raw and derived media payloads by deterministic key."""

    blobs: BlobStore
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        self.blobs.set(key, data, content_type=content_type or content_type_for(key))
        self.log.info(
            "assets.stored",
            extra={"asset_key": key, "size_bytes": len(data)},
        )

    def get(self, key: str) -> StoredAsset | None:
        record: BlobRecord | None = self.blobs.get(key)
        if record is None:
            return None
        return StoredAsset(key=key, data=record.payload, content_type=record.content_type)

    def exists(self, key: str) -> bool:
        return self.blobs.get(key) is not None

    def get_variant(self, base_key: str, variant: AssetVariant) -> StoredAsset | None:
        return self.get(variant_key(base_key, variant))

    def delete(self, key: str) -> bool:
        return self.blobs.delete(key)

    def delete_variants(self, base_key: str) -> list[str]:
        """Remove every variant of ``base_key``; missing variants are skipped."""
        removed = [key for key in all_variant_keys(base_key) if self.blobs.delete(key)]
        self.log.info(
            "assets.variants_deleted",
            extra={"asset_key": base_key, "removed": removed},
        )
        return removed
