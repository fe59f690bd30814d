"""Unit tests for ecosense.core.coordinator — per-room analysis dispatch."""

from __future__ import annotations

import asyncio
import time
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from ecosense.core.activity_log import ActivityLog
from ecosense.core.coordinator import RequestCoordinator
from ecosense.core.rate_limit import RateLimitGuard
from ecosense.core.rooms import RoomRegistry, UnknownRoomError, default_rooms
from ecosense.core.telemetry import TelemetrySampler
from ecosense.integrations.camera import LiveCameraFeed
from ecosense.integrations.llm.provider import QuotaExceededError
from ecosense.models.enums import DecisionSource, LogSeverity, Recommendation, RoomStatus
from ecosense.models.schemas import AnalysisResult

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _result(occupied: bool = True, person_count: int = 3, **overrides: Any) -> AnalysisResult:
    data: dict[str, Any] = {
        "occupied": occupied,
        "personCount": person_count if occupied else 0,
        "lightRecommendation": "ON" if occupied else "OFF",
        "fanRecommendation": "OFF",
        "fanSpeed": 0,
        "acRecommendation": "OFF",
        "targetTemp": 23,
    }
    data.update(overrides)
    return AnalysisResult.model_validate(data)


async def _wait_for_call(vision: Any, count: int = 1) -> None:
    for _ in range(50):
        if len(vision.calls) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError("vision service was never called")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def registry() -> RoomRegistry:
    return RoomRegistry(default_rooms())


@pytest.fixture()
def activity_log() -> ActivityLog:
    return ActivityLog(capacity=10)


@pytest.fixture()
def telemetry() -> TelemetrySampler:
    return TelemetrySampler(savings_baseline_kwh=142.5)


@pytest.fixture()
def rate_limit() -> RateLimitGuard:
    return RateLimitGuard(cooldown_seconds=90)


@pytest.fixture()
def coordinator(
    registry: RoomRegistry,
    vision: Any,
    rate_limit: RateLimitGuard,
    activity_log: ActivityLog,
    telemetry: TelemetrySampler,
    detector: Any,
) -> RequestCoordinator:
    return RequestCoordinator(
        registry=registry,
        vision=vision,
        rate_limit=rate_limit,
        activity_log=activity_log,
        telemetry=telemetry,
        detector=detector,
        fallback_delay_s=0,
    )


# ===================================================================
# In-flight tracking
# ===================================================================


class TestInFlight:
    async def test_overlapping_requests_dispatch_once(
        self, coordinator: RequestCoordinator, vision: Any
    ) -> None:
        vision.gate = asyncio.Event()
        first = asyncio.create_task(coordinator.analyze("room-101"))
        await _wait_for_call(vision)

        assert coordinator.is_analyzing("room-101")
        assert await coordinator.analyze("room-101") is None
        assert coordinator.schedule("room-101") is False

        vision.gate.set()
        outcome = await first

        assert outcome is not None
        assert len(vision.calls) == 1
        assert coordinator.in_flight == frozenset()

    async def test_different_rooms_run_concurrently(
        self, coordinator: RequestCoordinator, vision: Any
    ) -> None:
        vision.gate = asyncio.Event()
        a = asyncio.create_task(coordinator.analyze("room-101"))
        b = asyncio.create_task(coordinator.analyze("room-102"))
        await _wait_for_call(vision, count=2)

        assert coordinator.in_flight == {"room-101", "room-102"}

        vision.gate.set()
        await asyncio.gather(a, b)
        assert coordinator.in_flight == frozenset()

    async def test_failure_clears_in_flight_and_leaves_room(
        self,
        coordinator: RequestCoordinator,
        vision: Any,
        registry: RoomRegistry,
        activity_log: ActivityLog,
        rate_limit: RateLimitGuard,
    ) -> None:
        before = registry.require("room-101")
        vision.error = RuntimeError("connection reset")

        assert await coordinator.analyze("room-101") is None

        assert coordinator.in_flight == frozenset()
        assert registry.require("room-101") == before
        assert len(activity_log) == 0
        assert rate_limit.throttled is False

    async def test_unknown_room_raises(self, coordinator: RequestCoordinator) -> None:
        with pytest.raises(UnknownRoomError):
            await coordinator.analyze("room-999")
        with pytest.raises(UnknownRoomError):
            coordinator.schedule("room-999")

    async def test_schedule_runs_in_background(
        self, coordinator: RequestCoordinator, vision: Any, registry: RoomRegistry
    ) -> None:
        assert coordinator.schedule("room-101") is True
        await coordinator.drain()

        assert len(vision.calls) == 1
        assert registry.require("room-101").status == RoomStatus.occupied

    async def test_back_to_back_schedule_claims_room(
        self, coordinator: RequestCoordinator, vision: Any
    ) -> None:
        vision.gate = asyncio.Event()

        assert coordinator.schedule("room-101") is True
        assert coordinator.is_analyzing("room-101")
        assert coordinator.schedule("room-101") is False
        assert await coordinator.analyze("room-101") is None

        vision.gate.set()
        await coordinator.drain()

        assert len(vision.calls) == 1
        assert coordinator.in_flight == frozenset()
        assert coordinator.schedule("room-101") is True
        await coordinator.drain()

    async def test_back_to_back_schedule_while_throttled_decides_once(
        self,
        coordinator: RequestCoordinator,
        rate_limit: RateLimitGuard,
        detector: Any,
        activity_log: ActivityLog,
    ) -> None:
        rate_limit.trip()

        results = [coordinator.schedule("room-103"), coordinator.schedule("room-103")]
        await coordinator.drain()

        assert results == [True, False]
        assert detector.rooms == ["room-103"]
        assert len(activity_log) == 1

    async def test_change_listener_called_on_start_and_finish(
        self,
        registry: RoomRegistry,
        vision: Any,
        rate_limit: RateLimitGuard,
        activity_log: ActivityLog,
    ) -> None:
        on_change = AsyncMock()
        coordinator = RequestCoordinator(
            registry=registry,
            vision=vision,
            rate_limit=rate_limit,
            activity_log=activity_log,
            on_change=on_change,
        )

        await coordinator.analyze("room-101")

        assert on_change.await_count == 2


# ===================================================================
# Quota handling and the local override
# ===================================================================


class TestRateLimitFallback:
    async def test_quota_error_trips_guard_and_logs_warning(
        self,
        coordinator: RequestCoordinator,
        vision: Any,
        rate_limit: RateLimitGuard,
        activity_log: ActivityLog,
    ) -> None:
        vision.error = QuotaExceededError("429 RESOURCE_EXHAUSTED")

        assert await coordinator.analyze("room-101") is None

        assert rate_limit.throttled is True
        assert rate_limit.remaining_seconds == 90
        entry = activity_log.entries()[0]
        assert entry.room == "System"
        assert entry.message == "Traffic Warning: Local Override Active"
        assert entry.severity == LogSeverity.warning
        assert coordinator.in_flight == frozenset()

    async def test_throttled_requests_never_reach_vision(
        self,
        coordinator: RequestCoordinator,
        vision: Any,
        detector: Any,
        rate_limit: RateLimitGuard,
        registry: RoomRegistry,
    ) -> None:
        rate_limit.trip()

        outcome = await coordinator.analyze("room-101")

        assert vision.calls == []
        assert detector.rooms == ["room-101"]
        assert outcome is not None
        assert outcome.source == DecisionSource.local
        # room-101 is 28°C at brightness 80 with five people detected
        assert outcome.result.person_count == 5
        assert outcome.result.ac_recommendation == Recommendation.on
        assert outcome.result.light_recommendation == Recommendation.off
        room = registry.require("room-101")
        assert room.temperature_c == 23
        assert room.occupancy_count == 5

    async def test_fallback_waits_before_deciding(
        self,
        registry: RoomRegistry,
        vision: Any,
        detector: Any,
        rate_limit: RateLimitGuard,
        activity_log: ActivityLog,
    ) -> None:
        coordinator = RequestCoordinator(
            registry=registry,
            vision=vision,
            rate_limit=rate_limit,
            activity_log=activity_log,
            detector=detector,
            fallback_delay_s=1.5,
        )
        rate_limit.trip()

        with patch("ecosense.core.coordinator.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await coordinator.analyze("room-103")

        sleep.assert_awaited_once_with(1.5)

    async def test_remote_resumes_after_cooldown(
        self, coordinator: RequestCoordinator, vision: Any, rate_limit: RateLimitGuard
    ) -> None:
        rate_limit.trip()
        for _ in range(90):
            rate_limit.tick()

        outcome = await coordinator.analyze("room-101")

        assert outcome is not None
        assert outcome.source == DecisionSource.vision
        assert len(vision.calls) == 1


# ===================================================================
# Image source selection
# ===================================================================


class TestImageSource:
    async def test_unbound_room_uses_reference_image(
        self, coordinator: RequestCoordinator, vision: Any, registry: RoomRegistry
    ) -> None:
        await coordinator.analyze("room-101")

        call = vision.calls[0]
        assert call["source"] == registry.require("room-101").image_url
        assert call["is_inline"] is False
        assert call["temperature"] == 28
        assert call["brightness"] == 80

    async def test_bound_room_uses_live_frame(
        self,
        registry: RoomRegistry,
        vision: Any,
        rate_limit: RateLimitGuard,
        activity_log: ActivityLog,
    ) -> None:
        camera = LiveCameraFeed()
        camera.push_frame("data:image/jpeg;base64,AAAA")
        registry.bind_camera("room-101")
        coordinator = RequestCoordinator(
            registry=registry,
            vision=vision,
            rate_limit=rate_limit,
            activity_log=activity_log,
            frame_source=camera,
        )

        await coordinator.analyze("room-101")
        await coordinator.analyze("room-102")

        assert vision.calls[0]["source"] == "data:image/jpeg;base64,AAAA"
        assert vision.calls[0]["is_inline"] is True
        assert vision.calls[1]["source"] == registry.require("room-102").image_url
        assert vision.calls[1]["is_inline"] is False

    async def test_stale_frame_falls_back_to_reference_image(
        self,
        registry: RoomRegistry,
        vision: Any,
        rate_limit: RateLimitGuard,
        activity_log: ActivityLog,
    ) -> None:
        camera = LiveCameraFeed(max_frame_age_s=5)
        camera.push_frame("AAAA", received_at=time.monotonic() - 60)
        registry.bind_camera("room-101")
        coordinator = RequestCoordinator(
            registry=registry,
            vision=vision,
            rate_limit=rate_limit,
            activity_log=activity_log,
            frame_source=camera,
        )

        await coordinator.analyze("room-101")

        assert vision.calls[0]["is_inline"] is False


# ===================================================================
# Applying results
# ===================================================================


class TestApply:
    async def test_occupied_result_logs_optimized(
        self, coordinator: RequestCoordinator, activity_log: ActivityLog
    ) -> None:
        await coordinator.analyze("room-101")

        entry = activity_log.entries()[0]
        assert entry.room == "Lecture Hall A (LH-101)"
        assert entry.message == "Optimized: 3 Detected. Temp: 28°C."
        assert entry.severity == LogSeverity.info

    async def test_eco_lock_when_empty_room_had_active_devices(
        self,
        coordinator: RequestCoordinator,
        vision: Any,
        activity_log: ActivityLog,
        telemetry: TelemetrySampler,
        registry: RoomRegistry,
    ) -> None:
        vision.result = _result(occupied=False)

        await coordinator.analyze("room-102")

        entry = activity_log.entries()[0]
        assert entry.message == "Eco-Lock: Node Secure. High-Power Assets Terminated."
        assert entry.severity == LogSeverity.success
        # 2400 W switched off, credited at a tenth of its kW draw
        assert telemetry.total_saved_kwh == pytest.approx(142.5 + 0.24)
        room = registry.require("room-102")
        assert room.status == RoomStatus.empty
        assert not room.has_active_devices

    async def test_empty_room_without_active_devices_logs_standby(
        self,
        coordinator: RequestCoordinator,
        vision: Any,
        activity_log: ActivityLog,
        telemetry: TelemetrySampler,
    ) -> None:
        vision.result = _result(occupied=False)

        await coordinator.analyze("room-101")

        entry = activity_log.entries()[0]
        assert entry.message == "Standby: Node Empty. No Active Assets."
        assert entry.severity == LogSeverity.info
        assert telemetry.total_saved_kwh == 142.5

    async def test_fan_devices_follow_recommendation(
        self, coordinator: RequestCoordinator, vision: Any, registry: RoomRegistry
    ) -> None:
        vision.result = _result(fanRecommendation="ON", fanSpeed=4)

        outcome = await coordinator.analyze("room-101")

        assert outcome is not None
        fan = next(d for d in outcome.room.devices if d.device_id == "101-f1")
        assert fan.is_on is True
        assert fan.speed == 4
        # AC stayed off, so the reading is not replaced by the target
        assert registry.require("room-101").temperature_c == 28
