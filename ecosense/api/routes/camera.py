"""Live camera binding and frame uplink routes."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from ecosense.api.dependencies import DashboardDep
from ecosense.core.dashboard import Dashboard
from ecosense.core.rooms import UnknownRoomError
from ecosense.models.schemas import (
    CameraBindingResponse,
    CameraBindingUpdate,
    CameraErrorReport,
    CameraErrorResponse,
    CameraFramePayload,
)

router = APIRouter()


@router.get("/binding", response_model=CameraBindingResponse)
async def get_binding(dashboard: DashboardDep) -> CameraBindingResponse:
    return _binding_view(dashboard)


@router.put("/binding", response_model=CameraBindingResponse)
async def update_binding(payload: CameraBindingUpdate, dashboard: DashboardDep) -> CameraBindingResponse:
    """Point the live camera at a room (``null`` unbinds it)."""
    try:
        dashboard.registry.bind_camera(payload.room_id)
    except UnknownRoomError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Room {payload.room_id} not found",
        ) from exc
    await dashboard.notify()
    return _binding_view(dashboard)


@router.post("/session", response_model=CameraBindingResponse)
async def open_session(dashboard: DashboardDep) -> CameraBindingResponse:
    dashboard.camera.open_session()
    return _binding_view(dashboard)


@router.delete("/session", response_model=CameraBindingResponse)
async def close_session(dashboard: DashboardDep) -> CameraBindingResponse:
    dashboard.camera.close_session()
    return _binding_view(dashboard)


@router.post("/frames", status_code=status.HTTP_204_NO_CONTENT)
async def push_frame(payload: CameraFramePayload, dashboard: DashboardDep) -> None:
    """Replace the current frame; the next audit of the bound room uses it."""
    dashboard.camera.push_frame(payload.frame)


@router.post("/errors", response_model=CameraErrorResponse)
async def report_error(payload: CameraErrorReport, dashboard: DashboardDep) -> CameraErrorResponse:
    """Classify a browser media error and close the session."""
    error = dashboard.camera.report_error(payload.name)
    return CameraErrorResponse.model_validate(error)


def _binding_view(dashboard: Dashboard) -> CameraBindingResponse:
    return CameraBindingResponse(
        camera_room_id=dashboard.registry.camera_room_id,
        session_active=dashboard.camera.active,
    )
