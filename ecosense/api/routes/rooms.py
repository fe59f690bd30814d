"""Room listing and on-demand analysis routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Response, status

from ecosense.api.dependencies import DashboardDep
from ecosense.core.dashboard import Dashboard
from ecosense.core.rooms import RoomState, UnknownRoomError
from ecosense.models.schemas import AnalysisOutcomeResponse, AnalyzeResponse, RoomResponse

router = APIRouter()


@router.get("", response_model=list[RoomResponse])
async def list_rooms(dashboard: DashboardDep) -> list[RoomResponse]:
    """Return every room in display order."""
    return [RoomResponse.model_validate(room) for room in dashboard.registry.iter_states()]


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(room_id: str, dashboard: DashboardDep) -> RoomResponse:
    return RoomResponse.model_validate(_fetch_room(dashboard, room_id))


@router.post(
    "/{room_id}/analyze",
    response_model=AnalyzeResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def analyze_room(
    room_id: str,
    dashboard: DashboardDep,
    response: Response,
    wait: Annotated[bool, Query(description="Block until the analysis settles")] = False,
) -> AnalyzeResponse:
    """Start an audit of one room.

    A second request for a room whose analysis is still running is
    accepted but ignored (``accepted`` is false).
    """
    _fetch_room(dashboard, room_id)
    coordinator = dashboard.coordinator

    if not wait:
        return AnalyzeResponse(room_id=room_id, accepted=coordinator.schedule(room_id))

    if coordinator.is_analyzing(room_id):
        return AnalyzeResponse(room_id=room_id, accepted=False)

    outcome = await coordinator.analyze(room_id)
    response.status_code = status.HTTP_200_OK
    return AnalyzeResponse(
        room_id=room_id,
        accepted=True,
        outcome=AnalysisOutcomeResponse.model_validate(outcome) if outcome else None,
    )


def _fetch_room(dashboard: Dashboard, room_id: str) -> RoomState:
    """Look up a room or raise 404."""
    try:
        return dashboard.registry.require(room_id)
    except UnknownRoomError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Room {room_id} not found",
        ) from exc
