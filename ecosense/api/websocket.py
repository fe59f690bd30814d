"""WebSocket connection manager for live dashboard updates."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import suppress
from typing import Any

from fastapi import WebSocket

from ecosense.models.schemas import DashboardSnapshot

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Track active WebSocket clients and push dashboard changes to them."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)
        logger.debug("WebSocket connected; %s clients active", self.get_connection_count())

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            removed = websocket in self._connections
            self._connections.discard(websocket)
        if removed:
            await self._safe_close(websocket)

    async def disconnect_all(self) -> None:
        async with self._lock:
            clients = list(self._connections)
            self._connections.clear()
        for websocket in clients:
            await self._safe_close(websocket)

    async def shutdown(self) -> None:
        await self.broadcast({"type": "server_shutdown", "message": "Server is shutting down"})
        await self.disconnect_all()

    def get_connection_count(self) -> int:
        return len(self._connections)

    # ------------------------------------------------------------------
    # Broadcasting
    # ------------------------------------------------------------------
    async def broadcast(self, message: dict[str, Any]) -> None:
        async with self._lock:
            clients = list(self._connections)
        if not clients:
            return
        payload = json.dumps(message, default=str)
        disconnected: list[WebSocket] = []
        for websocket in clients:
            try:
                await websocket.send_text(payload)
            except Exception:
                logger.debug("WebSocket send failed; scheduling removal", exc_info=True)
                disconnected.append(websocket)
        for websocket in disconnected:
            await self.disconnect(websocket)

    async def broadcast_snapshot(self, snapshot: DashboardSnapshot) -> None:
        """Dashboard listener: fan a snapshot out as a ``dashboard_update``."""

        await self.broadcast(snapshot_message(snapshot))

    async def _safe_close(self, websocket: WebSocket) -> None:
        with suppress(Exception):
            await websocket.close()


def snapshot_message(snapshot: DashboardSnapshot, *, kind: str = "dashboard_update") -> dict[str, Any]:
    return {
        "type": kind,
        "data": snapshot.model_dump(mode="json"),
        "timestamp": snapshot.timestamp.isoformat(),
    }


__all__ = ["ConnectionManager", "snapshot_message"]
