"""
Settings API Routes.

Read and change the persisted source preferences.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from asurascans import AsuraScansSource

from ..deps import get_source

router = APIRouter(prefix="/settings", tags=["settings"])
logger = logging.getLogger(__name__)


class PreferencePayload(BaseModel):
    key: str
    title: str
    summary: str
    value: bool


class SettingsResponse(BaseModel):
    options: list[PreferencePayload]
    high_quality_failed: bool
    slug_map: dict[str, str]


class SettingsUpdateRequest(BaseModel):
    values: dict[str, bool] = Field(default_factory=dict)


def _settings_response(source: AsuraScansSource) -> SettingsResponse:
    failed = source.state.failed_high_quality
    return SettingsResponse(
        options=[
            PreferencePayload(
                key=option.key,
                title=option.title,
                summary=option.summary,
                value=option.value,
            )
            for option in source.preferences.describe(high_quality_failed=failed)
        ],
        high_quality_failed=failed,
        slug_map=source.preferences.slug_map,
    )


@router.get("", response_model=SettingsResponse)
async def get_current_settings(source: AsuraScansSource = Depends(get_source)):
    return _settings_response(source)


@router.patch("", response_model=SettingsResponse)
async def update_settings(
    request: SettingsUpdateRequest, source: AsuraScansSource = Depends(get_source)
):
    for key, value in request.values.items():
        try:
            source.preferences.set(key, value)
        except KeyError as exc:
            raise HTTPException(
                status_code=422,
                detail={"code": "SETTINGS_KEY_UNKNOWN", "message": f"Unknown preference: {key}"},
            ) from exc
        logger.info("Preference updated: %s=%s", key, value)
    return _settings_response(source)


@router.delete("/slugs/{slug}", response_model=SettingsResponse)
async def forget_slug(slug: str, source: AsuraScansSource = Depends(get_source)):
    """Drop a remembered URL fragment; the next request guesses it again."""
    source.preferences.remove_slug(slug)
    logger.info("Slug mapping removed: %s", slug)
    return _settings_response(source)
