"""Dashboard read models and the auto-cycle toggle."""

from __future__ import annotations

from fastapi import APIRouter

from ecosense.api.dependencies import DashboardDep
from ecosense.models.schemas import (
    ActivityLogEntryResponse,
    AutoCycleResponse,
    AutoCycleUpdate,
    DashboardSnapshot,
    EnergySampleResponse,
    RateLimitResponse,
)

router = APIRouter()


@router.get("", response_model=DashboardSnapshot)
async def get_snapshot(dashboard: DashboardDep) -> DashboardSnapshot:
    """Everything the dashboard renders, in one payload."""
    return dashboard.snapshot()


@router.get("/telemetry", response_model=list[EnergySampleResponse])
async def get_telemetry(dashboard: DashboardDep) -> list[EnergySampleResponse]:
    """Energy history, oldest sample first."""
    return [EnergySampleResponse.model_validate(s) for s in dashboard.telemetry.samples]


@router.get("/logs", response_model=list[ActivityLogEntryResponse])
async def get_logs(dashboard: DashboardDep) -> list[ActivityLogEntryResponse]:
    """Activity log, newest entry first."""
    return [ActivityLogEntryResponse.model_validate(e) for e in dashboard.activity_log.entries()]


@router.get("/rate-limit", response_model=RateLimitResponse)
async def get_rate_limit(dashboard: DashboardDep) -> RateLimitResponse:
    return dashboard.rate_limit_view()


@router.get("/auto-cycle", response_model=AutoCycleResponse)
async def get_auto_cycle(dashboard: DashboardDep) -> AutoCycleResponse:
    return dashboard.auto_cycle_view()


@router.put("/auto-cycle", response_model=AutoCycleResponse)
async def update_auto_cycle(payload: AutoCycleUpdate, dashboard: DashboardDep) -> AutoCycleResponse:
    """Start or stop the round-robin audit.

    Enabling immediately advances the camera and audits that room.
    """
    dashboard.auto_cycle.set_enabled(payload.enabled)
    await dashboard.notify()
    return dashboard.auto_cycle_view()
