"""HTTP routes serving stored pipeline assets."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from ..catalog.catalog_writer import ASSET_ROUTE, THUMBNAIL_ROUTE
from ..exceptions import NotFoundError
from ..http_errors import to_http_exception
from ..storage.asset_store import StoredAsset
from .asset_service import AssetService

router = APIRouter(tags=["pipeline-assets"])

CACHE_CONTROL = "public, max-age=3600"


def get_asset_service(request: Request) -> AssetService:
    try:
        return request.app.state.asset_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("AssetService is not configured") from exc


def _respond(stored: StoredAsset) -> Response:
    return Response(
        content=stored.data,
        media_type=stored.content_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )


@router.get(ASSET_ROUTE + "/{key:path}")
def read_asset(key: str, service: AssetService = Depends(get_asset_service)) -> Response:
    try:
        return _respond(service.asset(key))
    except NotFoundError as exc:
        raise to_http_exception(exc) from exc


@router.get(THUMBNAIL_ROUTE + "/{key:path}")
def read_thumbnail(key: str, service: AssetService = Depends(get_asset_service)) -> Response:
    try:
        return _respond(service.thumbnail(key))
    except NotFoundError as exc:
        raise to_http_exception(exc) from exc
