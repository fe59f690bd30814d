"""Per-room analysis coordination for EcoSense."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from ecosense.core.activity_log import ActivityLog
from ecosense.core.occupancy import OccupancyDetector, SimulatedOccupancyDetector
from ecosense.core.rate_limit import RateLimitGuard
from ecosense.core.rooms import RoomRegistry, RoomState
from ecosense.core.rule_engine import RuleEngine
from ecosense.core.telemetry import TelemetrySampler
from ecosense.integrations.llm.provider import QuotaExceededError
from ecosense.models.enums import DecisionSource, LogSeverity
from ecosense.models.schemas import AnalysisResult

logger = logging.getLogger(__name__)

SYSTEM_LABEL = "System"


class VisionAnalyzer(Protocol):
    async def analyze(
        self,
        source: str,
        temperature: int,
        brightness: int,
        *,
        is_inline: bool = False,
    ) -> AnalysisResult: ...


class FrameSource(Protocol):
    def capture_frame(self) -> str | None: ...


@dataclass(frozen=True, slots=True)
class AnalysisOutcome:
    room_id: str
    source: DecisionSource
    result: AnalysisResult
    room: RoomState
    timestamp: datetime


class RequestCoordinator:
    """Run at most one analysis per room and apply the results.

    Dispatch goes to the vision service unless the rate-limit guard reports
    a throttle, in which case the rule engine decides from a detector
    reading. Quota failures trip the guard; any other failure leaves the
    room untouched.
    """

    def __init__(
        self,
        *,
        registry: RoomRegistry,
        vision: VisionAnalyzer,
        rate_limit: RateLimitGuard,
        activity_log: ActivityLog,
        telemetry: TelemetrySampler | None = None,
        rule_engine: RuleEngine | None = None,
        detector: OccupancyDetector | None = None,
        frame_source: FrameSource | None = None,
        fallback_delay_s: float = 1.5,
        on_change: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._registry = registry
        self._vision = vision
        self._rate_limit = rate_limit
        self._log = activity_log
        self._telemetry = telemetry
        self._rule_engine = rule_engine or RuleEngine()
        self._detector = detector or SimulatedOccupancyDetector()
        self._frame_source = frame_source
        self._fallback_delay_s = max(0.0, fallback_delay_s)
        self._on_change = on_change
        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task[AnalysisOutcome | None]] = set()

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    def is_analyzing(self, room_id: str) -> bool:
        return room_id in self._in_flight

    async def analyze(self, room_id: str) -> AnalysisOutcome | None:
        """Analyze ``room_id`` and apply the result.

        Returns None when an analysis for the room is already running or
        when the attempt failed.
        """

        self._registry.require(room_id)
        if room_id in self._in_flight:
            logger.debug("Analysis already in flight for %s; ignoring", room_id)
            return None

        self._in_flight.add(room_id)
        return await self._run(room_id)

    def schedule(self, room_id: str) -> bool:
        """Start an analysis in the background; False if already in flight.

        The room is claimed before the task is created, so a second call in
        the same loop turn is refused.
        """

        self._registry.require(room_id)
        if room_id in self._in_flight:
            return False
        self._in_flight.add(room_id)
        task = asyncio.create_task(self._run(room_id), name=f"ecosense-analyze-{room_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def drain(self) -> None:
        """Wait for every background analysis to settle."""

        while pending := [task for task in self._tasks if not task.done()]:
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _run(self, room_id: str) -> AnalysisOutcome | None:
        # Caller has already claimed room_id in _in_flight.
        try:
            await self._notify()
            room = self._registry.require(room_id)
            result, source = await self._dispatch(room)
            return self._apply(room_id, result, source)
        except QuotaExceededError:
            self._rate_limit.trip()
            self._log.add(SYSTEM_LABEL, "Traffic Warning: Local Override Active", LogSeverity.warning)
            return None
        except Exception as exc:
            logger.warning("Analysis failed for %s: %s", room_id, exc, exc_info=True)
            return None
        finally:
            self._in_flight.discard(room_id)
            await self._notify()

    async def _dispatch(self, room: RoomState) -> tuple[AnalysisResult, DecisionSource]:
        if self._rate_limit.throttled:
            if self._fallback_delay_s:
                await asyncio.sleep(self._fallback_delay_s)
            reading = self._detector.detect(room)
            result = self._rule_engine.evaluate(
                occupied=reading.occupied,
                person_count=reading.person_count,
                temperature_c=room.temperature_c,
                brightness=room.brightness,
            )
            return result, DecisionSource.local

        source, is_inline = room.image_url, False
        if room.room_id == self._registry.camera_room_id and self._frame_source is not None:
            frame = self._frame_source.capture_frame()
            if frame:
                source, is_inline = frame, True

        result = await self._vision.analyze(
            source,
            round(room.temperature_c),
            round(room.brightness),
            is_inline=is_inline,
        )
        return result, DecisionSource.vision

    def _apply(
        self, room_id: str, result: AnalysisResult, source: DecisionSource
    ) -> AnalysisOutcome:
        now = datetime.now(UTC)
        previous, updated = self._registry.apply_result(room_id, result, timestamp=now)

        if not result.occupied and previous.has_active_devices:
            if self._telemetry is not None:
                self._telemetry.credit_shutdown(previous.active_power_w)
            self._log.add(
                previous.name,
                "Eco-Lock: Node Secure. High-Power Assets Terminated.",
                LogSeverity.success,
                timestamp=now,
            )
        elif result.occupied:
            self._log.add(
                previous.name,
                f"Optimized: {result.person_count} Detected. Temp: {previous.temperature_c:g}°C.",
                LogSeverity.info,
                timestamp=now,
            )
        else:
            self._log.add(
                previous.name,
                "Standby: Node Empty. No Active Assets.",
                LogSeverity.info,
                timestamp=now,
            )

        logger.info(
            "Decision: room=%s source=%s occupied=%s people=%d light=%s ac=%s fan=%s/%d",
            room_id,
            source.value,
            result.occupied,
            result.person_count,
            result.light_recommendation.value,
            result.ac_recommendation.value,
            result.fan_recommendation.value,
            result.fan_speed,
        )
        return AnalysisOutcome(
            room_id=room_id, source=source, result=result, room=updated, timestamp=now
        )

    async def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            await self._on_change()
        except Exception:
            logger.exception("Dashboard change listener failed")


__all__ = ["AnalysisOutcome", "FrameSource", "RequestCoordinator", "VisionAnalyzer"]
