import asyncio
from typing import Any

import pytest


@pytest.mark.asyncio
async def test_list_rooms(client: Any) -> None:
    response = await client.get("/api/v1/rooms")
    assert response.status_code == 200
    data = response.json()
    assert [room["room_id"] for room in data] == ["room-101", "room-102", "room-103"]
    lab = data[1]
    assert lab["status"] == "OCCUPIED"
    assert lab["occupancy_count"] == 15
    assert lab["active_power_w"] == 2400
    assert {d["type"] for d in lab["devices"]} == {"LIGHT", "FAN", "AC"}


@pytest.mark.asyncio
async def test_get_room(client: Any) -> None:
    response = await client.get("/api/v1/rooms/room-103")
    assert response.status_code == 200
    assert response.json()["temperature_c"] == 30


@pytest.mark.asyncio
async def test_unknown_room_returns_404(client: Any) -> None:
    response = await client.get("/api/v1/rooms/room-999")
    assert response.status_code == 404
    assert response.json()["detail"] == "Room room-999 not found"

    response = await client.post("/api/v1/rooms/room-999/analyze")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_analyze_and_wait(client: Any, vision: Any) -> None:
    response = await client.post("/api/v1/rooms/room-101/analyze", params={"wait": True})
    assert response.status_code == 200
    data = response.json()
    assert data["accepted"] is True
    outcome = data["outcome"]
    assert outcome["source"] == "vision"
    assert outcome["result"]["personCount"] == 3
    assert outcome["room"]["status"] == "OCCUPIED"
    assert vision.calls[0]["temperature"] == 28
    assert vision.calls[0]["brightness"] == 80


@pytest.mark.asyncio
async def test_analyze_in_background(client: Any, dashboard: Any) -> None:
    response = await client.post("/api/v1/rooms/room-102/analyze")
    assert response.status_code == 202
    assert response.json() == {"room_id": "room-102", "accepted": True, "outcome": None}

    await dashboard.coordinator.drain()
    assert dashboard.registry.require("room-102").occupancy_count == 3


@pytest.mark.asyncio
async def test_analyze_while_busy_is_ignored(client: Any, dashboard: Any, vision: Any) -> None:
    vision.gate = asyncio.Event()
    first = await client.post("/api/v1/rooms/room-103/analyze")
    assert first.json()["accepted"] is True
    assert dashboard.coordinator.is_analyzing("room-103")

    second = await client.post("/api/v1/rooms/room-103/analyze", params={"wait": True})
    assert second.status_code == 202
    assert second.json()["accepted"] is False

    vision.gate.set()
    await dashboard.coordinator.drain()
    assert len(vision.calls) == 1
