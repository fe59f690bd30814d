from typing import Any

import pytest


@pytest.mark.asyncio
async def test_health_check(client: Any) -> None:
    response = await client.get("/api/v1/system/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


@pytest.mark.asyncio
async def test_version(client: Any) -> None:
    response = await client.get("/api/v1/system/version")
    assert response.status_code == 200
    data = response.json()
    assert "version" in data
    assert data["name"]


@pytest.mark.asyncio
async def test_status(client: Any) -> None:
    response = await client.get("/api/v1/system/status")
    assert response.status_code == 200
    data = response.json()
    assert data["decision_hub"] == "GEMINI"
    assert data["scheduler_running"] is False
    assert data["jobs"] == []
    assert data["analyzing"] == []


@pytest.mark.asyncio
async def test_liveness_probe(client: Any) -> None:
    response = await client.get("/health/live")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_theme_preference(client: Any) -> None:
    response = await client.get("/api/v1/preferences/theme", params={"prefers_dark": True})
    assert response.status_code == 200
    assert response.json() == {"theme": "dark", "persisted": False}

    response = await client.put("/api/v1/preferences/theme", json={"theme": "light"})
    assert response.status_code == 200
    assert response.json()["theme"] == "light"

    response = await client.get("/api/v1/preferences/theme", params={"prefers_dark": True})
    assert response.json()["theme"] == "light"


@pytest.mark.asyncio
async def test_invalid_theme_rejected(client: Any) -> None:
    response = await client.put("/api/v1/preferences/theme", json={"theme": "sepia"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_theme_read_failure_reports_not_persisted(client: Any) -> None:
    from unittest.mock import AsyncMock

    from ecosense.api.main import app
    from ecosense.services.preferences import ThemePreferenceService

    redis_client = AsyncMock()
    redis_client.get = AsyncMock(side_effect=ConnectionError("down"))
    app.state.preferences = ThemePreferenceService(redis_client)

    response = await client.get("/api/v1/preferences/theme", params={"prefers_dark": True})

    assert response.status_code == 200
    assert response.json() == {"theme": "dark", "persisted": False}
