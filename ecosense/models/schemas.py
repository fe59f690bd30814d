"""Pydantic schemas for EcoSense models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import (
    CameraErrorKind,
    DecisionSource,
    DeviceType,
    LogSeverity,
    Recommendation,
    RoomStatus,
    Theme,
)


class AnalysisResult(BaseModel):
    """Occupancy and device recommendations for a single room.

    Field aliases are the camelCase names used on the wire by the vision
    service; both spellings are accepted on input.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    occupied: bool
    person_count: int = Field(alias="personCount", ge=0)
    light_recommendation: Recommendation = Field(alias="lightRecommendation")
    fan_recommendation: Recommendation = Field(alias="fanRecommendation")
    fan_speed: int = Field(alias="fanSpeed", ge=0, le=5)
    ac_recommendation: Recommendation = Field(alias="acRecommendation")
    target_temp: float = Field(alias="targetTemp")

    @model_validator(mode="before")
    @classmethod
    def _idle_fan_has_no_speed(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        fan = data.get("fanRecommendation", data.get("fan_recommendation"))
        if str(fan).upper() == Recommendation.off:
            data = dict(data)
            data.pop("fan_speed", None)
            data["fanSpeed"] = 0
        return data

    @property
    def light_on(self) -> bool:
        return self.light_recommendation == Recommendation.on

    @property
    def fan_on(self) -> bool:
        return self.fan_recommendation == Recommendation.on

    @property
    def ac_on(self) -> bool:
        return self.ac_recommendation == Recommendation.on


class DeviceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    device_id: str
    name: str
    type: DeviceType
    is_on: bool
    power_w: float
    speed: int | None = None


class RoomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    room_id: str
    name: str
    status: RoomStatus
    occupancy_count: int
    temperature_c: float
    brightness: float
    image_url: str
    last_update: datetime
    devices: list[DeviceResponse] = Field(default_factory=list)
    active_power_w: float = 0.0


class AnalysisOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    room_id: str
    source: DecisionSource
    result: AnalysisResult
    room: RoomResponse


class AnalyzeResponse(BaseModel):
    room_id: str
    accepted: bool
    outcome: AnalysisOutcomeResponse | None = None


class EnergySampleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: str
    consumption_kw: float
    savings_kw: float


class ActivityLogEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entry_id: str
    timestamp: datetime
    time_label: str
    room: str
    message: str
    severity: LogSeverity


class RateLimitResponse(BaseModel):
    throttled: bool
    remaining_seconds: int
    banner: str | None = None


class AutoCycleResponse(BaseModel):
    enabled: bool
    status: str
    interval_seconds: int
    camera_room_id: str | None = None


class AutoCycleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool


class CameraBindingUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_id: str | None = None


class CameraBindingResponse(BaseModel):
    camera_room_id: str | None = None
    session_active: bool = False


class CameraFramePayload(BaseModel):
    frame: str = Field(min_length=1, description="Base64 JPEG data or a data: URL")


class CameraErrorReport(BaseModel):
    name: str | None = Field(default=None, description="DOMException name reported by the browser")


class CameraErrorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: CameraErrorKind
    title: str
    message: str


class ThemeResponse(BaseModel):
    theme: Theme
    persisted: bool


class ThemeUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    theme: Theme


class DashboardSnapshot(BaseModel):
    rooms: list[RoomResponse]
    analyzing: list[str]
    camera_room_id: str | None
    auto_cycle: AutoCycleResponse
    rate_limit: RateLimitResponse
    decision_hub: str
    energy_history: list[EnergySampleResponse]
    logs: list[ActivityLogEntryResponse]
    total_consumption_w: float
    high_load: bool
    total_saved_kwh: float
    co2_mitigated_kg: float
    timestamp: datetime
