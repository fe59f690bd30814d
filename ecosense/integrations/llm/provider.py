"""EcoSense vision provider.

Sends a room image plus the current readings to a multimodal model through
litellm and parses the structured audit result. Rate-limit failures are
surfaced as ``QuotaExceededError`` so callers can switch to the local rule
engine.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, ClassVar

import httpx
from pydantic import ValidationError

from ecosense.models.schemas import AnalysisResult

from .prompts import ANALYSIS_RESPONSE_SCHEMA, room_audit_messages

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class VisionProviderError(Exception):
    """Base exception for vision provider failures."""


class QuotaExceededError(VisionProviderError):
    """Raised when the provider reports too many requests (HTTP 429)."""

    status_code = 429


class VisionResponseError(VisionProviderError):
    """Raised when the model output is not a valid audit result."""


def _require_litellm() -> Any:
    try:
        import litellm

        return litellm
    except Exception as e:  # pragma: no cover
        raise RuntimeError("litellm is required. Install with: pip install litellm") from e


def is_quota_error(exc: BaseException) -> bool:
    """Return True when ``exc`` carries a rate-limit / quota signal."""

    if isinstance(exc, QuotaExceededError):
        return True
    if getattr(exc, "status_code", None) == 429:
        return True
    response = getattr(exc, "response", None)
    if getattr(response, "status_code", None) == 429:
        return True
    text = str(exc)
    return "429" in text or "RESOURCE_EXHAUSTED" in text.upper()


def strip_data_url(data: str) -> tuple[str, str]:
    """Split ``data:<mime>;base64,<payload>`` into ``(payload, mime)``."""

    if data.startswith("data:") and "," in data:
        header, payload = data.split(",", 1)
        mime = header[5:].split(";", 1)[0] or "image/jpeg"
        return payload, mime
    return data, "image/jpeg"


class VisionAnalysisProvider:
    """Room audit over any litellm-supported multimodal model."""

    PROVIDER_MODELS: ClassVar[dict[str, str]] = {
        "gemini": "gemini-3-pro-preview",
        "openai": "gpt-4o",
        "anthropic": "claude-sonnet-4-20250514",
    }

    def __init__(
        self,
        provider: str = "gemini",
        api_key: str | None = None,
        model: str | None = None,
        *,
        timeout_s: float = 30.0,
        image_timeout_s: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.provider = provider.lower().strip()
        self.api_key = api_key or None
        self.model = model or self.PROVIDER_MODELS.get(self.provider, "gemini-3-pro-preview")
        self.timeout_s = timeout_s
        self.image_timeout_s = image_timeout_s
        self._http = http_client

    @property
    def model_id(self) -> str:
        if self.provider == "openai":
            return self.model
        return f"{self.provider}/{self.model}"

    async def analyze(
        self,
        source: str,
        temperature: int,
        brightness: int,
        *,
        is_inline: bool = False,
    ) -> AnalysisResult:
        """Audit one room image.

        Args:
            source: Image URL, or inline base64 data / data URL when ``is_inline``.
            temperature: Current room temperature in °C.
            brightness: Ambient light level (0-100).
            is_inline: Whether ``source`` already holds the image bytes.
        """
        try:
            if is_inline:
                image_b64, mime = strip_data_url(source)
            else:
                image_b64, mime = await self._fetch_image(source)
            content = await self._complete(
                room_audit_messages(
                    temperature=temperature,
                    brightness=brightness,
                    image_b64=image_b64,
                    mime_type=mime,
                )
            )
        except VisionProviderError:
            raise
        except Exception as exc:
            if is_quota_error(exc):
                logger.warning("Vision provider rate limited provider=%s: %s", self.provider, exc)
                raise QuotaExceededError(str(exc)) from exc
            logger.error("Vision provider error provider=%s: %s", self.provider, exc)
            raise
        return parse_analysis(content)

    async def _complete(self, messages: list[dict[str, Any]]) -> str:
        litellm = _require_litellm()
        response = await litellm.acompletion(
            model=self.model_id,
            messages=messages,
            api_key=self.api_key,
            timeout=self.timeout_s,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "room_audit", "schema": ANALYSIS_RESPONSE_SCHEMA},
            },
        )
        choice = response.choices[0]
        return choice.message.content or "{}"

    async def _fetch_image(self, url: str) -> tuple[str, str]:
        if self._http is not None:
            response = await self._http.get(url, follow_redirects=True)
        else:
            async with httpx.AsyncClient(timeout=self.image_timeout_s) as client:
                response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
        mime = response.headers.get("content-type", "image/jpeg").split(";", 1)[0].strip()
        return base64.b64encode(response.content).decode("ascii"), mime or "image/jpeg"


def parse_analysis(content: str) -> AnalysisResult:
    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        return AnalysisResult.model_validate_json(text.strip())
    except ValidationError as exc:
        raise VisionResponseError(f"Invalid audit response: {exc.error_count()} error(s)") from exc


__all__ = [
    "QuotaExceededError",
    "VisionAnalysisProvider",
    "VisionProviderError",
    "VisionResponseError",
    "is_quota_error",
    "parse_analysis",
    "strip_data_url",
]
