"""API route registration for EcoSense."""

from fastapi import APIRouter

from . import camera, dashboard, preferences, rooms, system

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(system.router, prefix="/system", tags=["system"])
api_router.include_router(rooms.router, prefix="/rooms", tags=["rooms"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(camera.router, prefix="/camera", tags=["camera"])
api_router.include_router(preferences.router, prefix="/preferences", tags=["preferences"])


__all__ = [
    "api_router",
    "camera",
    "dashboard",
    "preferences",
    "rooms",
    "system",
]
