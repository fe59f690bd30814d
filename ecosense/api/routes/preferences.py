"""User preference routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from ecosense.api.dependencies import PreferencesDep
from ecosense.models.schemas import ThemeResponse, ThemeUpdate

router = APIRouter()


@router.get("/theme", response_model=ThemeResponse)
async def get_theme(
    preferences: PreferencesDep,
    prefers_dark: Annotated[
        bool | None, Query(description="Client colour-scheme preference, used when nothing is saved")
    ] = None,
) -> ThemeResponse:
    reading = await preferences.read_theme(prefers_dark=prefers_dark)
    return ThemeResponse(theme=reading.theme, persisted=reading.persisted)


@router.put("/theme", response_model=ThemeResponse)
async def update_theme(payload: ThemeUpdate, preferences: PreferencesDep) -> ThemeResponse:
    persisted = await preferences.set_theme(payload.theme)
    return ThemeResponse(theme=payload.theme, persisted=persisted)
