"""Persisted user preferences (dashboard theme)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import redis.asyncio as redis

from ecosense.models.enums import Theme

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ThemeReading:
    theme: Theme
    persisted: bool


class ThemePreferenceService:
    """Store the light/dark theme flag under a fixed Redis key.

    Without a Redis client the flag lives in process memory only and is
    lost on restart.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None,
        *,
        key: str = "ecosense-theme",
        default: Theme = Theme.light,
    ) -> None:
        self._redis = redis_client
        self._key = key
        self._default = default
        self._memory: Theme | None = None

    @property
    def key(self) -> str:
        return self._key

    @property
    def persistent(self) -> bool:
        return self._redis is not None

    async def get_stored(self) -> Theme | None:
        """Return the saved theme, or None when nothing has been saved."""

        stored, _ = await self._load()
        return stored

    async def get_theme(self, *, prefers_dark: bool | None = None) -> Theme:
        """Resolve the theme: saved value, then ambient preference, then default."""

        return (await self.read_theme(prefers_dark=prefers_dark)).theme

    async def read_theme(self, *, prefers_dark: bool | None = None) -> ThemeReading:
        """Resolve the theme and report whether this read was served by Redis."""

        stored, from_redis = await self._load()
        if stored is not None:
            theme = stored
        elif prefers_dark is not None:
            theme = Theme.dark if prefers_dark else Theme.light
        else:
            theme = self._default
        return ThemeReading(theme=theme, persisted=from_redis)

    async def set_theme(self, theme: Theme) -> bool:
        """Save ``theme``; returns True when it reached Redis."""

        self._memory = theme
        if self._redis is None:
            return False
        try:
            await self._redis.set(self._key, theme.value)
        except Exception as exc:
            logger.warning("Failed to persist theme preference to Redis: %s", exc)
            return False
        return True

    async def _load(self) -> tuple[Theme | None, bool]:
        if self._redis is None:
            return self._memory, False
        try:
            raw = await self._redis.get(self._key)
        except Exception as exc:
            logger.warning("Failed to read theme preference from Redis: %s", exc)
            return self._memory, False
        if raw is None:
            return None, True
        value = raw.decode() if isinstance(raw, bytes) else str(raw)
        try:
            return Theme(value.strip().lower()), True
        except ValueError:
            logger.warning("Ignoring unknown stored theme %r", value)
            return None, True


__all__ = ["ThemePreferenceService", "ThemeReading"]
