"""Domain enums for EcoSense models."""

from enum import StrEnum


class RoomStatus(StrEnum):
    occupied = "OCCUPIED"
    empty = "EMPTY"


class DeviceType(StrEnum):
    light = "LIGHT"
    ac = "AC"
    fan = "FAN"


class Recommendation(StrEnum):
    on = "ON"
    off = "OFF"


class LogSeverity(StrEnum):
    info = "INFO"
    success = "SUCCESS"
    warning = "WARNING"


class DecisionSource(StrEnum):
    """Which engine produced an analysis result."""

    vision = "vision"
    local = "local"


class Theme(StrEnum):
    light = "light"
    dark = "dark"


class CameraErrorKind(StrEnum):
    permission_denied = "permission_denied"
    hardware_missing = "hardware_missing"
    hardware_busy = "hardware_busy"
    generic = "generic"
