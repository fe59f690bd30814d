"""Bounded, newest-first activity log shown on the dashboard."""

from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime

from ecosense.models.enums import LogSeverity

logger = logging.getLogger(__name__)

_LEVELS = {
    LogSeverity.info: logging.INFO,
    LogSeverity.success: logging.INFO,
    LogSeverity.warning: logging.WARNING,
}


def time_label(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S")


@dataclass(frozen=True, slots=True)
class ActivityLogEntry:
    entry_id: str
    timestamp: datetime
    time_label: str
    room: str
    message: str
    severity: LogSeverity


class ActivityLog:
    def __init__(self, *, capacity: int = 10) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._entries: deque[ActivityLogEntry] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def add(
        self,
        room: str,
        message: str,
        severity: LogSeverity = LogSeverity.info,
        *,
        timestamp: datetime | None = None,
    ) -> ActivityLogEntry:
        moment = timestamp or datetime.now(UTC)
        entry = ActivityLogEntry(
            entry_id=uuid.uuid4().hex[:9],
            timestamp=moment,
            time_label=time_label(moment),
            room=room,
            message=message,
            severity=severity,
        )
        self._entries.appendleft(entry)
        logger.log(_LEVELS.get(severity, logging.INFO), "[%s] %s", room, message)
        return entry

    def entries(self) -> list[ActivityLogEntry]:
        return list(self._entries)


__all__ = ["ActivityLog", "ActivityLogEntry", "time_label"]
