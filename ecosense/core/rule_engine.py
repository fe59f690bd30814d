"""Deterministic rule engine for EcoSense device recommendations."""

from __future__ import annotations

import logging

from ecosense.models.enums import Recommendation
from ecosense.models.schemas import AnalysisResult

logger = logging.getLogger(__name__)

LIGHT_BRIGHTNESS_THRESHOLD = 60
AC_TRIGGER_C = 26.0
FAN_BAND_MIN_C = 24.0
AC_TARGET_C = 23.0
FAN_BOOST_SPEED = 4


class RuleEngine:
    """Evaluate the occupancy-driven audit rules.

    This is both the local override used while the vision service is rate
    limited and the contract the vision service is prompted to follow.
    """

    def evaluate(
        self,
        *,
        occupied: bool,
        person_count: int,
        temperature_c: float,
        brightness: float,
    ) -> AnalysisResult:
        light = self.recommend_lighting(occupied=occupied, brightness=brightness)
        ac, fan, fan_speed = self.recommend_thermal(occupied=occupied, temperature_c=temperature_c)
        result = AnalysisResult(
            occupied=occupied,
            person_count=max(0, int(person_count)) if occupied else 0,
            light_recommendation=light,
            fan_recommendation=fan,
            fan_speed=fan_speed,
            ac_recommendation=ac,
            target_temp=AC_TARGET_C,
        )
        logger.debug(
            "Rule decision occupied=%s temp=%.1f brightness=%.0f -> light=%s ac=%s fan=%s/%d",
            occupied,
            temperature_c,
            brightness,
            light,
            ac,
            fan,
            fan_speed,
        )
        return result

    @staticmethod
    def recommend_lighting(*, occupied: bool, brightness: float) -> Recommendation:
        if occupied and brightness < LIGHT_BRIGHTNESS_THRESHOLD:
            return Recommendation.on
        return Recommendation.off

    @staticmethod
    def recommend_thermal(
        *, occupied: bool, temperature_c: float
    ) -> tuple[Recommendation, Recommendation, int]:
        """Return ``(ac, fan, fan_speed)`` for the current reading."""

        if not occupied:
            return Recommendation.off, Recommendation.off, 0
        if temperature_c > AC_TRIGGER_C:
            return Recommendation.on, Recommendation.off, 0
        if temperature_c >= FAN_BAND_MIN_C:
            return Recommendation.off, Recommendation.on, FAN_BOOST_SPEED
        return Recommendation.off, Recommendation.off, 0


__all__ = [
    "AC_TARGET_C",
    "AC_TRIGGER_C",
    "FAN_BAND_MIN_C",
    "FAN_BOOST_SPEED",
    "LIGHT_BRIGHTNESS_THRESHOLD",
    "RuleEngine",
]
