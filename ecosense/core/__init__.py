"""Core decision and scheduling utilities for EcoSense.

Only the leaf modules are re-exported here; ``coordinator``, ``auto_cycle``
and ``dashboard`` depend on the vision integration and are imported from
their own modules.
"""

from __future__ import annotations

from .activity_log import ActivityLog, ActivityLogEntry
from .occupancy import OccupancyReading, SimulatedOccupancyDetector
from .rate_limit import RateLimitGuard, RateLimitState
from .rooms import DeviceState, RoomRegistry, RoomState, UnknownRoomError
from .rule_engine import RuleEngine
from .scheduler import JobScheduler
from .telemetry import EnergySample, TelemetrySampler

__all__ = [
    "ActivityLog",
    "ActivityLogEntry",
    "DeviceState",
    "EnergySample",
    "JobScheduler",
    "OccupancyReading",
    "RateLimitGuard",
    "RateLimitState",
    "RoomRegistry",
    "RoomState",
    "RuleEngine",
    "SimulatedOccupancyDetector",
    "TelemetrySampler",
    "UnknownRoomError",
]
