"""EcoSense LLM integration package.

This package provides:
- VisionAnalysisProvider: multimodal room audit via litellm
- Prompt templates and the audit response schema
- Error types distinguishing quota exhaustion from other failures
"""

from .prompts import ANALYSIS_RESPONSE_SCHEMA, room_audit_messages, room_audit_prompt
from .provider import (
    QuotaExceededError,
    VisionAnalysisProvider,
    VisionProviderError,
    VisionResponseError,
    is_quota_error,
    parse_analysis,
)

__all__ = [
    "ANALYSIS_RESPONSE_SCHEMA",
    "QuotaExceededError",
    "VisionAnalysisProvider",
    "VisionProviderError",
    "VisionResponseError",
    "is_quota_error",
    "parse_analysis",
    "room_audit_messages",
    "room_audit_prompt",
]
