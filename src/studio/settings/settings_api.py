"""Admin API routes for per-creator pipeline settings."""

from fastapi import APIRouter, Depends, Request

from ..exceptions import ValidationError
from ..http_errors import to_http_exception
from .settings_repository import CreatorSettingsRepository
from .settings_schemas import CreatorSettingsResponseModel, CreatorSettingsUpdateRequest

router = APIRouter(prefix="/api/pipeline/settings", tags=["settings"])


def get_settings_repo(request: Request) -> CreatorSettingsRepository:
    try:
        return request.app.state.settings_repo  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("CreatorSettingsRepository is not configured") from exc


@router.get("/{creator_id}", response_model=CreatorSettingsResponseModel)
def read_settings(
    creator_id: str,
    repo: CreatorSettingsRepository = Depends(get_settings_repo),
) -> CreatorSettingsResponseModel:
    return CreatorSettingsResponseModel(**repo.get(creator_id).to_document())


@router.put("/{creator_id}", response_model=CreatorSettingsResponseModel)
def update_settings(
    creator_id: str,
    payload: CreatorSettingsUpdateRequest,
    repo: CreatorSettingsRepository = Depends(get_settings_repo),
) -> CreatorSettingsResponseModel:
    try:
        updated = repo.update(creator_id, payload.overrides())
    except ValidationError as exc:
        raise to_http_exception(exc) from exc
    return CreatorSettingsResponseModel(**updated.to_document())
