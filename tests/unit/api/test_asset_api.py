from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.studio.media.asset_service import AssetService
from src.studio.media.media_api import router
from src.studio.storage.asset_keys import AssetVariant, variant_key
from src.studio.storage.asset_store import AssetStore
from src.studio.storage.blob_store import BlobNamespace, SqlAlchemyBlobStore


def build_client(app_config) -> tuple[TestClient, AssetStore]:
    assets = AssetStore(SqlAlchemyBlobStore(app_config.session_factory, BlobNamespace.ASSETS))
    app = FastAPI()
    app.include_router(router)
    app.state.asset_service = AssetService(assets)
    return TestClient(app), assets


def test_asset_served_with_stored_content_type(app_config) -> None:
    client, assets = build_client(app_config)
    assets.put("item.jpg", b"webp-bytes", content_type="image/webp")

    response = client.get("/api/pipeline/asset/item.jpg")

    assert response.status_code == 200
    assert response.content == b"webp-bytes"
    assert response.headers["content-type"] == "image/webp"
    assert "max-age" in response.headers["cache-control"]


def test_thumbnail_prefers_thumb_variant(app_config) -> None:
    client, assets = build_client(app_config)
    assets.put("item.jpg", b"full", content_type="image/jpeg")
    assets.put(variant_key("item.jpg", AssetVariant.THUMBNAIL), b"thumb", content_type="image/jpeg")

    assert client.get("/api/pipeline/thumb/item.jpg").content == b"thumb"


def test_thumbnail_falls_back_to_primary(app_config) -> None:
    client, assets = build_client(app_config)
    assets.put("clip.mp4", b"video")

    response = client.get("/api/pipeline/thumb/clip.mp4")

    assert response.content == b"video"
    assert response.headers["content-type"] == "video/mp4"


def test_missing_and_derived_keys_are_not_found(app_config) -> None:
    client, assets = build_client(app_config)
    assets.put(variant_key("item.jpg", AssetVariant.ORIGINAL), b"raw")

    assert client.get("/api/pipeline/asset/nothing.jpg").status_code == 404
    assert client.get("/api/pipeline/asset/item.jpg-original").status_code == 404
    assert client.get("/api/pipeline/thumb/nothing.jpg").status_code == 404
