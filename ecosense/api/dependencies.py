"""FastAPI dependency injection helpers."""

from __future__ import annotations

from typing import Annotated, TypeAlias

from fastapi import Depends, HTTPException, Request, status

from ecosense.config import SETTINGS, Settings
from ecosense.core.dashboard import Dashboard
from ecosense.models.enums import Theme
from ecosense.services.preferences import ThemePreferenceService

# ---------------------------------------------------------------------------
# Settings dependency
# ---------------------------------------------------------------------------


def get_settings_dependency() -> Settings:
    return SETTINGS


SettingsDep: TypeAlias = Annotated[Settings, Depends(get_settings_dependency)]


# ---------------------------------------------------------------------------
# Dashboard dependency
# ---------------------------------------------------------------------------


def get_dashboard(request: Request) -> Dashboard:
    """Return the process-wide dashboard built during startup."""

    dashboard = getattr(request.app.state, "dashboard", None)
    if dashboard is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard is not running",
        )
    return dashboard


DashboardDep: TypeAlias = Annotated[Dashboard, Depends(get_dashboard)]


# ---------------------------------------------------------------------------
# Preferences dependency
# ---------------------------------------------------------------------------


def get_preferences(request: Request, settings: SettingsDep) -> ThemePreferenceService:
    """Return the shared theme store, creating an in-memory one on first use."""

    service = getattr(request.app.state, "preferences", None)
    if service is None:
        service = ThemePreferenceService(
            None, key=settings.theme_key, default=Theme(settings.default_theme)
        )
        request.app.state.preferences = service
    return service


PreferencesDep: TypeAlias = Annotated[ThemePreferenceService, Depends(get_preferences)]


__all__ = [
    "DashboardDep",
    "PreferencesDep",
    "SettingsDep",
    "get_dashboard",
    "get_preferences",
    "get_settings_dependency",
]
