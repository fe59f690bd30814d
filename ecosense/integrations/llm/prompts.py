"""Prompt templates for the room audit vision request.

The audit rules mirror ``ecosense.core.rule_engine`` exactly; change both
together.
"""

from __future__ import annotations

from typing import Any

from ecosense.core.rule_engine import (
    AC_TARGET_C,
    AC_TRIGGER_C,
    FAN_BAND_MIN_C,
    FAN_BOOST_SPEED,
    LIGHT_BRIGHTNESS_THRESHOLD,
)

ANALYSIS_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "occupied": {"type": "boolean"},
        "personCount": {"type": "integer"},
        "lightRecommendation": {"type": "string", "enum": ["ON", "OFF"]},
        "fanRecommendation": {"type": "string", "enum": ["ON", "OFF"]},
        "fanSpeed": {"type": "integer", "minimum": 0, "maximum": 5},
        "acRecommendation": {"type": "string", "enum": ["ON", "OFF"]},
        "targetTemp": {"type": "number"},
    },
    "required": [
        "occupied",
        "personCount",
        "lightRecommendation",
        "fanRecommendation",
        "fanSpeed",
        "acRecommendation",
        "targetTemp",
    ],
}


def _c(value: float) -> str:
    return f"{value:g}°C"


def room_audit_prompt(*, temperature: int, brightness: int) -> str:
    return (
        f"Current Node Status: Temperature: {temperature}°C, Ambient Light: {brightness} Lux.\n"
        "\n"
        "Audit Rules (STRICT):\n"
        "1. Occupancy: Detect total human count.\n"
        "2. Lighting Management:\n"
        f"   - If occupants > 0 AND Ambient Light < {LIGHT_BRIGHTNESS_THRESHOLD} Lux: Recommend ON.\n"
        "   - Otherwise: Recommend OFF.\n"
        "3. Thermal Management (Occupancy Triggered):\n"
        "   - If occupants = 0: AC OFF, Fan OFF.\n"
        "   - If occupants > 0:\n"
        f"      - If Temp > {_c(AC_TRIGGER_C)}: AC ON (Target {_c(AC_TARGET_C)}), Fan OFF.\n"
        f"      - If {_c(FAN_BAND_MIN_C)} <= Temp <= {_c(AC_TRIGGER_C)}: "
        f"AC OFF, Fan ON (Speed {FAN_BOOST_SPEED}).\n"
        f"      - If Temp < {_c(FAN_BAND_MIN_C)}: AC OFF, Fan OFF.\n"
        "\n"
        "Output ONLY JSON format following the schema provided."
    )


def room_audit_messages(
    *, temperature: int, brightness: int, image_b64: str, mime_type: str = "image/jpeg"
) -> list[dict[str, Any]]:
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": room_audit_prompt(temperature=temperature, brightness=brightness)},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{mime_type};base64,{image_b64}"},
                },
            ],
        }
    ]


__all__ = ["ANALYSIS_RESPONSE_SCHEMA", "room_audit_messages", "room_audit_prompt"]
