"""EcoSense integration clients."""

from .camera import CameraError, LiveCameraFeed, classify_camera_error
from .llm import QuotaExceededError, VisionAnalysisProvider, VisionProviderError

__all__ = [
    "CameraError",
    "LiveCameraFeed",
    "QuotaExceededError",
    "VisionAnalysisProvider",
    "VisionProviderError",
    "classify_camera_error",
]
