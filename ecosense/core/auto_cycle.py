"""Round-robin automatic room audits."""

from __future__ import annotations

import logging

from ecosense.core.coordinator import RequestCoordinator
from ecosense.core.rooms import RoomRegistry, RoomState
from ecosense.core.scheduler import AUTO_CYCLE_JOB_ID, JobScheduler

logger = logging.getLogger(__name__)


class AutoCycleScheduler:
    """Advance the camera binding through the rooms and audit each in turn.

    The pointer is the registry's camera binding, so a manual re-binding
    changes where the next cycle continues from.
    """

    def __init__(
        self,
        *,
        registry: RoomRegistry,
        coordinator: RequestCoordinator,
        scheduler: JobScheduler | None = None,
        interval_s: int = 15,
    ) -> None:
        self._registry = registry
        self._coordinator = coordinator
        self._scheduler = scheduler
        self._interval_s = interval_s
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def interval_s(self) -> int:
        return self._interval_s

    def enable(self) -> None:
        if self._enabled:
            return
        self._enabled = True
        logger.info("Auto-cycle enabled (every %ss)", self._interval_s)
        self.cycle_once()
        if self._scheduler is not None:
            self._scheduler.start_interval(
                AUTO_CYCLE_JOB_ID, self._run, seconds=self._interval_s, name="Auto Audit Cycle"
            )

    def disable(self) -> None:
        if not self._enabled:
            return
        self._enabled = False
        if self._scheduler is not None:
            self._scheduler.cancel(AUTO_CYCLE_JOB_ID)
        logger.info("Auto-cycle disabled")

    def set_enabled(self, enabled: bool) -> None:
        if enabled:
            self.enable()
        else:
            self.disable()

    def cycle_once(self) -> RoomState:
        """Bind the camera to the next room and start its analysis."""

        room = self._registry.next_room_after(self._registry.camera_room_id)
        self._registry.bind_camera(room.room_id)
        if not self._coordinator.schedule(room.room_id):
            logger.debug("Auto-cycle skipped %s; analysis already running", room.room_id)
        return room

    async def _run(self) -> None:
        if not self._enabled:
            return
        try:
            self.cycle_once()
        except Exception:
            logger.exception("Auto-cycle tick failed")


__all__ = ["AutoCycleScheduler"]
