"""Energy telemetry sampling and the savings ledger."""

from __future__ import annotations

import logging
import random
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from ecosense.core.activity_log import time_label
from ecosense.core.rooms import RoomState
from ecosense.models.enums import RoomStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EnergySample:
    timestamp: str
    consumption_kw: float
    savings_kw: float


def measure_consumption_kw(rooms: Iterable[RoomState]) -> float:
    """Draw of every device that is currently on, in kW."""

    return round(sum(room.active_power_w for room in rooms) / 1000, 2)


def measure_savings_kw(rooms: Iterable[RoomState]) -> float:
    """Draw held off by devices that are off in empty rooms, in kW."""

    return round(
        sum(room.idle_power_w for room in rooms if room.status == RoomStatus.empty) / 1000, 2
    )


class TelemetrySampler:
    """Maintain the capped energy time series and the cumulative savings total."""

    def __init__(
        self,
        *,
        capacity: int = 30,
        savings_baseline_kwh: float = 0.0,
        shutdown_credit_factor: float = 0.1,
        co2_kg_per_kwh: float = 0.4,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._samples: deque[EnergySample] = deque(maxlen=capacity)
        self._total_saved_kwh = savings_baseline_kwh
        self._credit_factor = shutdown_credit_factor
        self._co2_factor = co2_kg_per_kwh

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> list[EnergySample]:
        return list(self._samples)

    @property
    def latest(self) -> EnergySample | None:
        return self._samples[-1] if self._samples else None

    def append(self, sample: EnergySample) -> bool:
        """Append unless the newest sample carries the same time label."""

        latest = self.latest
        if latest is not None and latest.timestamp == sample.timestamp:
            return False
        self._samples.append(sample)
        return True

    def sample(self, rooms: Iterable[RoomState], *, now: datetime | None = None) -> EnergySample | None:
        rooms = list(rooms)
        sample = EnergySample(
            timestamp=time_label(now or datetime.now(UTC)),
            consumption_kw=measure_consumption_kw(rooms),
            savings_kw=measure_savings_kw(rooms),
        )
        if not self.append(sample):
            logger.debug("Skipping duplicate telemetry sample at %s", sample.timestamp)
            return None
        return sample

    def seed_history(
        self,
        count: int,
        *,
        spacing_s: int = 30,
        now: datetime | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Backfill synthetic samples so the chart has a history at startup."""

        rng = rng or random.Random()  # noqa: S311
        now = now or datetime.now(UTC)
        for i in range(count):
            moment = now - timedelta(seconds=(count - i) * spacing_s)
            self.append(
                EnergySample(
                    timestamp=time_label(moment),
                    consumption_kw=round(rng.random() * 1.5 + 2, 2),
                    savings_kw=round(rng.random() * 0.4 + 0.1, 2),
                )
            )

    # ------------------------------------------------------------------
    # Savings ledger
    # ------------------------------------------------------------------
    @property
    def total_saved_kwh(self) -> float:
        return self._total_saved_kwh

    @property
    def co2_mitigated_kg(self) -> float:
        return self._total_saved_kwh * self._co2_factor

    def credit_shutdown(self, power_w: float) -> float:
        """Credit the power cut by an automatic shutdown; returns the new total."""

        self._total_saved_kwh += (power_w / 1000) * self._credit_factor
        return self._total_saved_kwh


__all__ = [
    "EnergySample",
    "TelemetrySampler",
    "measure_consumption_kw",
    "measure_savings_kw",
]
