"""EcoSense application services."""

from .preferences import ThemePreferenceService, ThemeReading

__all__ = [
    "ThemePreferenceService",
    "ThemeReading",
]
