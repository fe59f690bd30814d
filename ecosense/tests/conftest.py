from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from ecosense.config import Settings
from ecosense.core.dashboard import Dashboard, build_dashboard
from ecosense.core.occupancy import OccupancyReading
from ecosense.core.rooms import RoomState
from ecosense.core.scheduler import JobScheduler
from ecosense.models.enums import Recommendation, Theme
from ecosense.models.schemas import AnalysisResult
from ecosense.services.preferences import ThemePreferenceService

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


def make_result(
    *,
    occupied: bool = True,
    person_count: int = 3,
    light: Recommendation = Recommendation.on,
    fan: Recommendation = Recommendation.off,
    fan_speed: int = 0,
    ac: Recommendation = Recommendation.off,
    target_temp: float = 23.0,
) -> AnalysisResult:
    return AnalysisResult(
        occupied=occupied,
        person_count=person_count if occupied else 0,
        light_recommendation=light,
        fan_recommendation=fan,
        fan_speed=fan_speed,
        ac_recommendation=ac,
        target_temp=target_temp,
    )


EMPTY_RESULT = make_result(occupied=False, light=Recommendation.off)


class FakeVision:
    """In-memory stand-in for the remote vision service."""

    def __init__(self, result: AnalysisResult | None = None) -> None:
        self.result = result or make_result()
        self.error: BaseException | None = None
        self.calls: list[dict[str, Any]] = []
        self.gate: asyncio.Event | None = None

    async def analyze(
        self,
        source: str,
        temperature: int,
        brightness: int,
        *,
        is_inline: bool = False,
    ) -> AnalysisResult:
        self.calls.append(
            {
                "source": source,
                "temperature": temperature,
                "brightness": brightness,
                "is_inline": is_inline,
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class FixedDetector:
    def __init__(self, occupied: bool = True, person_count: int = 5) -> None:
        self.reading = OccupancyReading(occupied=occupied, person_count=person_count)
        self.rooms: list[str] = []

    def detect(self, room: RoomState) -> OccupancyReading:
        self.rooms.append(room.room_id)
        return self.reading


def mock_scheduler() -> MagicMock:
    scheduler = MagicMock(spec=JobScheduler)
    scheduler.running = False
    scheduler.job_ids.return_value = []
    return scheduler


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        fallback_delay_s=0,
        telemetry_seed_samples=0,
        vision_api_key="test-key",
        api_key="",
    )


@pytest.fixture()
def vision() -> FakeVision:
    return FakeVision()


@pytest.fixture()
def detector() -> FixedDetector:
    return FixedDetector()


@pytest.fixture()
def dashboard(settings: Settings, vision: FakeVision, detector: FixedDetector) -> Dashboard:
    return build_dashboard(
        settings,
        vision=vision,
        scheduler=mock_scheduler(),
        detector=detector,
    )


@pytest.fixture()
async def client(dashboard: Dashboard, settings: Settings) -> AsyncGenerator[AsyncClient]:
    from ecosense.api.main import app

    app.state.dashboard = dashboard
    app.state.preferences = ThemePreferenceService(
        None, key=settings.theme_key, default=Theme.light
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await dashboard.coordinator.drain()
    del app.state.dashboard
    del app.state.preferences
