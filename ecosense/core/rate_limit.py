"""Cooldown state machine for the throttled vision service."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ecosense.core.scheduler import COOLDOWN_JOB_ID, JobScheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimitState:
    throttled: bool = False
    remaining_seconds: int = 0

    def __post_init__(self) -> None:
        if self.remaining_seconds < 0:
            raise ValueError("remaining_seconds cannot be negative")
        if self.remaining_seconds > 0 and not self.throttled:
            raise ValueError("a pending cooldown requires the throttled flag")


NOMINAL = RateLimitState()


class RateLimitGuard:
    """Track whether the vision service is throttled and count down to recovery.

    ``trip`` enters ``Throttled(cooldown)`` and (re)starts a one-second
    countdown job; ``tick`` is what that job runs. The countdown job is
    removed as soon as the state returns to nominal.
    """

    def __init__(
        self,
        *,
        cooldown_seconds: int = 90,
        scheduler: JobScheduler | None = None,
        on_change: Callable[[RateLimitState], None] | None = None,
    ) -> None:
        if cooldown_seconds < 1:
            raise ValueError("cooldown_seconds must be positive")
        self._cooldown = cooldown_seconds
        self._scheduler = scheduler
        self._on_change = on_change
        self._state = NOMINAL

    @property
    def state(self) -> RateLimitState:
        return self._state

    @property
    def throttled(self) -> bool:
        return self._state.throttled

    @property
    def remaining_seconds(self) -> int:
        return self._state.remaining_seconds

    @property
    def cooldown_seconds(self) -> int:
        return self._cooldown

    def trip(self) -> RateLimitState:
        restarted = self._state.throttled
        self._set(RateLimitState(throttled=True, remaining_seconds=self._cooldown))
        if self._scheduler is not None:
            self._scheduler.start_interval(
                COOLDOWN_JOB_ID, self._countdown, seconds=1, name="Rate Limit Countdown"
            )
        logger.warning(
            "Vision service throttled; local override for %ss%s",
            self._cooldown,
            " (countdown restarted)" if restarted else "",
        )
        return self._state

    def tick(self) -> RateLimitState:
        if not self._state.throttled:
            return self._state
        remaining = max(0, self._state.remaining_seconds - 1)
        if remaining == 0:
            self._set(NOMINAL)
            if self._scheduler is not None:
                self._scheduler.cancel(COOLDOWN_JOB_ID)
            logger.info("Vision service cooldown elapsed; resuming remote analysis")
        else:
            self._set(RateLimitState(throttled=True, remaining_seconds=remaining))
        return self._state

    async def _countdown(self) -> None:
        self.tick()

    def _set(self, state: RateLimitState) -> None:
        self._state = state
        if self._on_change is not None:
            try:
                self._on_change(state)
            except Exception:
                logger.exception("Rate limit listener failed")


__all__ = ["NOMINAL", "RateLimitGuard", "RateLimitState"]
