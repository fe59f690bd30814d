"""Live camera uplink fed by the dashboard browser.

The browser owns the actual capture device; it pushes JPEG frames here and
reports access failures. The analysis path only ever calls
``capture_frame``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from ecosense.models.enums import CameraErrorKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CameraError:
    kind: CameraErrorKind
    title: str
    message: str


_CAMERA_ERRORS: dict[CameraErrorKind, CameraError] = {
    CameraErrorKind.permission_denied: CameraError(
        CameraErrorKind.permission_denied,
        "Access Restricted",
        "Camera permission denied. The AI Vision system requires visual input to function. "
        "Please enable camera access in browser settings.",
    ),
    CameraErrorKind.hardware_missing: CameraError(
        CameraErrorKind.hardware_missing,
        "Hardware Missing",
        "No imaging device detected. Ensure a compatible camera is connected to the grid node.",
    ),
    CameraErrorKind.hardware_busy: CameraError(
        CameraErrorKind.hardware_busy,
        "Node Conflict",
        "The camera is currently reserved by another process. "
        "Please close other applications using the video feed.",
    ),
    CameraErrorKind.generic: CameraError(
        CameraErrorKind.generic,
        "Link Error",
        "Unable to establish video uplink. Please check hardware connection.",
    ),
}

_ERROR_NAMES: dict[str, CameraErrorKind] = {
    "NotAllowedError": CameraErrorKind.permission_denied,
    "PermissionDeniedError": CameraErrorKind.permission_denied,
    "NotFoundError": CameraErrorKind.hardware_missing,
    "DevicesNotFoundError": CameraErrorKind.hardware_missing,
    "NotReadableError": CameraErrorKind.hardware_busy,
    "TrackStartError": CameraErrorKind.hardware_busy,
}


def classify_camera_error(name: str | None) -> CameraError:
    """Map a browser media error name to a user-facing category."""

    kind = _ERROR_NAMES.get((name or "").strip(), CameraErrorKind.generic)
    return _CAMERA_ERRORS[kind]


class LiveCameraFeed:
    """Hold the most recent frame of the active camera session."""

    def __init__(self, *, max_frame_age_s: float = 10.0) -> None:
        self._max_age = max_frame_age_s
        self._active = False
        self._frame: str | None = None
        self._frame_at: float = 0.0
        self._last_error: CameraError | None = None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def last_error(self) -> CameraError | None:
        return self._last_error

    def open_session(self) -> None:
        self._active = True
        self._last_error = None
        logger.info("Camera session opened")

    def close_session(self) -> None:
        self._active = False
        self._frame = None
        logger.info("Camera session closed")

    def push_frame(self, frame: str, *, received_at: float | None = None) -> None:
        if not self._active:
            self.open_session()
        self._frame = frame
        self._frame_at = received_at if received_at is not None else time.monotonic()

    def report_error(self, name: str | None) -> CameraError:
        error = classify_camera_error(name)
        logger.warning("Camera access failed (%s): %s", name or "unknown", error.title)
        self.close_session()
        self._last_error = error
        return error

    def capture_frame(self) -> str | None:
        """Return the current frame, or None without a live, fresh frame."""

        if not self._active or self._frame is None:
            return None
        if time.monotonic() - self._frame_at > self._max_age:
            return None
        return self._frame


__all__ = ["CameraError", "LiveCameraFeed", "classify_camera_error"]
