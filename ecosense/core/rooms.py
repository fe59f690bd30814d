"""Room registry: live room/device state and the camera binding."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from ecosense.models.enums import DeviceType, RoomStatus
from ecosense.models.schemas import AnalysisResult

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class UnknownRoomError(KeyError):
    """Raised when a room identifier is not in the registry."""

    def __init__(self, room_id: str) -> None:
        super().__init__(room_id)
        self.room_id = room_id

    def __str__(self) -> str:
        return f"Unknown room: {self.room_id}"


@dataclass(frozen=True, slots=True)
class DeviceState:
    """A controllable device inside a room."""

    device_id: str
    name: str
    type: DeviceType
    is_on: bool
    power_w: float
    speed: int | None = None

    def apply(self, result: AnalysisResult) -> DeviceState:
        if self.type == DeviceType.light:
            return replace(self, is_on=result.light_on)
        if self.type == DeviceType.ac:
            return replace(self, is_on=result.ac_on)
        if self.type == DeviceType.fan:
            return replace(
                self, is_on=result.fan_on, speed=result.fan_speed if result.fan_on else 0
            )
        return self


@dataclass(frozen=True, slots=True)
class RoomState:
    """Snapshot of a monitored room (a "node" on the dashboard)."""

    room_id: str
    name: str
    status: RoomStatus
    occupancy_count: int
    temperature_c: float
    brightness: float
    image_url: str
    devices: tuple[DeviceState, ...] = ()
    last_update: datetime = field(default_factory=_utc_now)

    @property
    def active_power_w(self) -> float:
        return sum(d.power_w for d in self.devices if d.is_on)

    @property
    def idle_power_w(self) -> float:
        return sum(d.power_w for d in self.devices if not d.is_on)

    @property
    def has_active_devices(self) -> bool:
        return any(d.is_on for d in self.devices)

    def with_result(self, result: AnalysisResult, *, timestamp: datetime | None = None) -> RoomState:
        """Return a new state with the analysis applied.

        The room temperature only moves to the target when the AC was
        switched on; otherwise the last reading is kept.
        """

        return replace(
            self,
            status=RoomStatus.occupied if result.occupied else RoomStatus.empty,
            occupancy_count=result.person_count,
            temperature_c=result.target_temp if result.ac_on else self.temperature_c,
            devices=tuple(device.apply(result) for device in self.devices),
            last_update=timestamp or _utc_now(),
        )


class RoomRegistry:
    """Own the ordered set of rooms and the live-camera binding."""

    def __init__(self, rooms: Iterable[RoomState], *, camera_room_id: str | None = None) -> None:
        self._rooms: dict[str, RoomState] = {}
        for room in rooms:
            if room.room_id in self._rooms:
                raise ValueError(f"Duplicate room id: {room.room_id}")
            self._rooms[room.room_id] = room
        self._camera_room_id: str | None = None
        if camera_room_id is not None:
            self.bind_camera(camera_room_id)

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    @property
    def room_ids(self) -> list[str]:
        return list(self._rooms)

    @property
    def camera_room_id(self) -> str | None:
        return self._camera_room_id

    def get(self, room_id: str) -> RoomState | None:
        return self._rooms.get(room_id)

    def require(self, room_id: str) -> RoomState:
        room = self._rooms.get(room_id)
        if room is None:
            raise UnknownRoomError(room_id)
        return room

    def iter_states(self) -> list[RoomState]:
        return list(self._rooms.values())

    def bind_camera(self, room_id: str | None) -> None:
        """Bind the live camera to ``room_id``, or unbind it with ``None``."""

        if room_id is not None:
            self.require(room_id)
        if room_id != self._camera_room_id:
            logger.debug("Camera binding %s -> %s", self._camera_room_id, room_id)
        self._camera_room_id = room_id

    def next_room_after(self, room_id: str | None) -> RoomState:
        """Return the room following ``room_id``, wrapping after the last one.

        An unknown or missing ``room_id`` yields the first room.
        """

        ids = self.room_ids
        if not ids:
            raise LookupError("Room registry is empty")
        try:
            index = ids.index(room_id) if room_id is not None else -1
        except ValueError:
            index = -1
        return self._rooms[ids[(index + 1) % len(ids)]]

    def apply_result(
        self,
        room_id: str,
        result: AnalysisResult,
        *,
        timestamp: datetime | None = None,
    ) -> tuple[RoomState, RoomState]:
        """Swap in the analysed state; returns ``(previous, updated)``."""

        previous = self.require(room_id)
        updated = previous.with_result(result, timestamp=timestamp)
        self._rooms[room_id] = updated
        return previous, updated

    def total_consumption_w(self) -> float:
        return sum(room.active_power_w for room in self._rooms.values())

    def total_savings_w(self) -> float:
        """Power held off in empty rooms."""

        return sum(
            room.idle_power_w for room in self._rooms.values() if room.status == RoomStatus.empty
        )


def default_rooms(*, now: datetime | None = None) -> list[RoomState]:
    """The demo building: one lecture hall, one lab, one seminar room."""

    now = now or _utc_now()
    return [
        RoomState(
            room_id="room-101",
            name="Lecture Hall A (LH-101)",
            status=RoomStatus.empty,
            occupancy_count=0,
            temperature_c=28,
            brightness=80,
            image_url="https://picsum.photos/seed/lh101/800/600",
            last_update=now,
            devices=(
                DeviceState("101-l1", "Main Lights", DeviceType.light, False, 200),
                DeviceState("101-f1", "Ceiling Fan 1", DeviceType.fan, False, 75, speed=0),
                DeviceState("101-ac1", "West AC Unit", DeviceType.ac, False, 1500),
            ),
        ),
        RoomState(
            room_id="room-102",
            name="CS Lab 1 (CL-102)",
            status=RoomStatus.occupied,
            occupancy_count=15,
            temperature_c=22,
            brightness=45,
            image_url="https://picsum.photos/seed/cl102/800/600",
            last_update=now,
            devices=(
                DeviceState("102-l1", "Lab Lights", DeviceType.light, True, 300),
                DeviceState("102-f1", "Exhaust Fan", DeviceType.fan, True, 100, speed=1),
                DeviceState("102-ac1", "Server AC", DeviceType.ac, True, 2000),
            ),
        ),
        RoomState(
            room_id="room-103",
            name="Physics Seminar (PS-103)",
            status=RoomStatus.empty,
            occupancy_count=0,
            temperature_c=30,
            brightness=90,
            image_url="https://picsum.photos/seed/ps103/800/600",
            last_update=now,
            devices=(
                DeviceState("103-l1", "Track Lights", DeviceType.light, False, 150),
                DeviceState("103-f1", "Wall Fan", DeviceType.fan, False, 60, speed=0),
                DeviceState("103-ac1", "Seminar AC", DeviceType.ac, False, 1200),
            ),
        ),
    ]


__all__ = ["DeviceState", "RoomRegistry", "RoomState", "UnknownRoomError", "default_rooms"]
