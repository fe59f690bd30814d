"""Application state container wiring the EcoSense core together."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime
from typing import TypeAlias

from ecosense.config import Settings
from ecosense.core.activity_log import ActivityLog
from ecosense.core.auto_cycle import AutoCycleScheduler
from ecosense.core.coordinator import RequestCoordinator, VisionAnalyzer
from ecosense.core.occupancy import OccupancyDetector, SimulatedOccupancyDetector
from ecosense.core.rate_limit import RateLimitGuard, RateLimitState
from ecosense.core.rooms import RoomRegistry, RoomState, default_rooms
from ecosense.core.scheduler import TELEMETRY_JOB_ID, JobScheduler
from ecosense.core.telemetry import TelemetrySampler
from ecosense.integrations.camera import LiveCameraFeed
from ecosense.integrations.llm.provider import VisionAnalysisProvider
from ecosense.models.enums import LogSeverity
from ecosense.models.schemas import (
    ActivityLogEntryResponse,
    AutoCycleResponse,
    DashboardSnapshot,
    EnergySampleResponse,
    RateLimitResponse,
    RoomResponse,
)

logger = logging.getLogger(__name__)

HIGH_LOAD_THRESHOLD_W = 4000
LOCAL_DECISION_HUB = "HARDWARE"

SnapshotListener: TypeAlias = Callable[[DashboardSnapshot], Awaitable[None]]


class Dashboard:
    """Everything the API needs, built once per process."""

    def __init__(
        self,
        *,
        settings: Settings,
        registry: RoomRegistry,
        vision: VisionAnalyzer,
        scheduler: JobScheduler,
        camera: LiveCameraFeed | None = None,
        detector: OccupancyDetector | None = None,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.scheduler = scheduler
        self.camera = camera or LiveCameraFeed(max_frame_age_s=settings.camera_frame_max_age_s)
        self.activity_log = ActivityLog(capacity=settings.activity_log_size)
        self.telemetry = TelemetrySampler(
            capacity=settings.energy_history_size,
            savings_baseline_kwh=settings.savings_baseline_kwh,
            shutdown_credit_factor=settings.shutdown_credit_factor,
            co2_kg_per_kwh=settings.co2_kg_per_kwh,
        )
        self.rate_limit = RateLimitGuard(
            cooldown_seconds=settings.cooldown_seconds,
            scheduler=scheduler,
            on_change=self._on_rate_limit_change,
        )
        self.coordinator = RequestCoordinator(
            registry=registry,
            vision=vision,
            rate_limit=self.rate_limit,
            activity_log=self.activity_log,
            telemetry=self.telemetry,
            detector=detector
            or SimulatedOccupancyDetector(
                probability=settings.fallback_occupancy_probability,
                max_occupants=settings.fallback_max_occupants,
            ),
            frame_source=self.camera,
            fallback_delay_s=settings.fallback_delay_s,
            on_change=self.notify,
        )
        self.auto_cycle = AutoCycleScheduler(
            registry=registry,
            coordinator=self.coordinator,
            scheduler=scheduler,
            interval_s=settings.auto_cycle_interval_s,
        )
        self._listeners: list[SnapshotListener] = []
        self._pending: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, *, seed_history: bool = True) -> None:
        if seed_history and self.settings.telemetry_seed_samples:
            self.telemetry.seed_history(
                self.settings.telemetry_seed_samples,
                spacing_s=self.settings.telemetry_seed_spacing_s,
            )
        self.activity_log.add("System", "EcoSense Grid Node Connected", LogSeverity.success)
        self.scheduler.start_interval(
            TELEMETRY_JOB_ID,
            self.sample_telemetry,
            seconds=self.settings.telemetry_interval_s,
            immediate=True,
            name="Energy Telemetry",
        )
        self.scheduler.start()

    async def shutdown(self) -> None:
        self.auto_cycle.disable()
        await self.scheduler.shutdown(wait=False)
        await self.coordinator.drain()
        self._listeners.clear()

    async def sample_telemetry(self) -> None:
        try:
            sample = self.telemetry.sample(self.registry.iter_states())
        except Exception:
            logger.exception("Telemetry sample failed")
            return
        if sample is not None:
            await self.notify()

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------
    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                await listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed")

    def _on_rate_limit_change(self, state: RateLimitState) -> None:
        if not self._listeners:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.notify())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    @property
    def decision_hub(self) -> str:
        if self.rate_limit.throttled:
            return LOCAL_DECISION_HUB
        return self.settings.vision_provider.upper()

    def rate_limit_view(self) -> RateLimitResponse:
        state = self.rate_limit.state
        banner = None
        if state.throttled:
            banner = (
                "Traffic Congestion: Local Override. Hardware-level logic active for "
                f"{state.remaining_seconds}s until API restores."
            )
        return RateLimitResponse(
            throttled=state.throttled,
            remaining_seconds=state.remaining_seconds,
            banner=banner,
        )

    def auto_cycle_view(self) -> AutoCycleResponse:
        return AutoCycleResponse(
            enabled=self.auto_cycle.enabled,
            status="CYCLING" if self.auto_cycle.enabled else "IDLE",
            interval_seconds=self.auto_cycle.interval_s,
            camera_room_id=self.registry.camera_room_id,
        )

    def snapshot(self) -> DashboardSnapshot:
        consumption_w = self.registry.total_consumption_w()
        return DashboardSnapshot(
            rooms=[RoomResponse.model_validate(room) for room in self.registry.iter_states()],
            analyzing=sorted(self.coordinator.in_flight),
            camera_room_id=self.registry.camera_room_id,
            auto_cycle=self.auto_cycle_view(),
            rate_limit=self.rate_limit_view(),
            decision_hub=self.decision_hub,
            energy_history=[
                EnergySampleResponse.model_validate(s) for s in self.telemetry.samples
            ],
            logs=[
                ActivityLogEntryResponse.model_validate(e) for e in self.activity_log.entries()
            ],
            total_consumption_w=consumption_w,
            high_load=consumption_w > HIGH_LOAD_THRESHOLD_W,
            total_saved_kwh=round(self.telemetry.total_saved_kwh, 2),
            co2_mitigated_kg=round(self.telemetry.co2_mitigated_kg, 2),
            timestamp=datetime.now(UTC),
        )


def build_dashboard(
    settings: Settings,
    *,
    vision: VisionAnalyzer | None = None,
    scheduler: JobScheduler | None = None,
    rooms: Iterable[RoomState] | None = None,
    detector: OccupancyDetector | None = None,
    camera: LiveCameraFeed | None = None,
) -> Dashboard:
    room_list = list(rooms) if rooms is not None else default_rooms()
    registry = RoomRegistry(
        room_list, camera_room_id=room_list[0].room_id if room_list else None
    )
    vision = vision or VisionAnalysisProvider(
        provider=settings.vision_provider,
        api_key=settings.vision_api_key,
        model=settings.vision_model,
        timeout_s=settings.vision_timeout_s,
        image_timeout_s=settings.image_fetch_timeout_s,
    )
    return Dashboard(
        settings=settings,
        registry=registry,
        vision=vision,
        scheduler=scheduler or JobScheduler(),
        camera=camera,
        detector=detector,
    )


__all__ = ["HIGH_LOAD_THRESHOLD_W", "Dashboard", "SnapshotListener", "build_dashboard"]
