"""Deterministic naming of stored assets and their derived variants.

Both the write path (transform engine) and the read/delete paths (asset
serving, item deletion) derive variant keys only through :func:`variant_key`.
"""

from __future__ import annotations

from enum import StrEnum


class AssetVariant(StrEnum):
    PRIMARY = "primary"
    ORIGINAL = "original"
    THUMBNAIL = "thumb"


_SUFFIXES = {
    AssetVariant.ORIGINAL: "-original",
    AssetVariant.THUMBNAIL: "-thumb",
}


def asset_key(item_id: str, extension: str) -> str:
    """Primary asset key for a freshly ingested item."""
    ext = extension.lower().lstrip(".")
    return f"{item_id}.{ext}" if ext else item_id


def variant_key(base_key: str, variant: AssetVariant) -> str:
    """Return the key under which ``variant`` of ``base_key`` is stored.

    ``PRIMARY`` holds the current (processed once the transform ran) binary,
    ``ORIGINAL`` the untouched upload preserved before the first overwrite,
    ``THUMBNAIL`` the small cover-cropped preview.
    """
    if variant is AssetVariant.PRIMARY:
        return base_key
    return f"{base_key}{_SUFFIXES[variant]}"


def all_variant_keys(base_key: str) -> list[str]:
    return [variant_key(base_key, variant) for variant in AssetVariant]


def is_derived_key(key: str) -> bool:
    return any(key.endswith(suffix) for suffix in _SUFFIXES.values())
