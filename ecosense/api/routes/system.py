"""System-level FastAPI routes for EcoSense."""

from __future__ import annotations

from fastapi import APIRouter

from ecosense.api.dependencies import DashboardDep, SettingsDep

router = APIRouter()


@router.get("/health", response_model=dict[str, str])
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/version", response_model=dict[str, str])
async def get_version(settings: SettingsDep) -> dict[str, str]:
    from ecosense.api.middleware import _VERSION

    return {"name": settings.app_name, "version": _VERSION}


@router.get("/status", response_model=dict[str, object])
async def get_status(dashboard: DashboardDep) -> dict[str, object]:
    """Scheduler and decision-path status for operators."""
    return {
        "decision_hub": dashboard.decision_hub,
        "vision_provider": dashboard.settings.vision_provider,
        "vision_model": dashboard.settings.vision_model,
        "scheduler_running": dashboard.scheduler.running,
        "jobs": dashboard.scheduler.job_ids(),
        "analyzing": sorted(dashboard.coordinator.in_flight),
    }
