"""Occupancy detectors used by the local override path."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Protocol

from ecosense.core.rooms import RoomState


@dataclass(frozen=True, slots=True)
class OccupancyReading:
    occupied: bool
    person_count: int


class OccupancyDetector(Protocol):
    """Anything that can tell whether a room is occupied and by how many."""

    def detect(self, room: RoomState) -> OccupancyReading: ...


class SimulatedOccupancyDetector:
    """Stand-in detector that draws occupancy at random.

    It ignores the room entirely; swap in a real sensor-backed detector to
    make the local override meaningful.
    """

    def __init__(
        self,
        *,
        probability: float = 0.6,
        max_occupants: int = 20,
        rng: random.Random | None = None,
    ) -> None:
        if not 0.0 <= probability <= 1.0:
            raise ValueError("probability must be between 0 and 1")
        if max_occupants < 1:
            raise ValueError("max_occupants must be at least 1")
        self._probability = probability
        self._max_occupants = max_occupants
        self._rng = rng or random.Random()  # noqa: S311

    def detect(self, room: RoomState) -> OccupancyReading:
        occupied = self._rng.random() < self._probability
        count = self._rng.randint(1, self._max_occupants) if occupied else 0
        return OccupancyReading(occupied=occupied, person_count=count)


__all__ = ["OccupancyDetector", "OccupancyReading", "SimulatedOccupancyDetector"]
