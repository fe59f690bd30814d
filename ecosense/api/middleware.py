"""HTTP middleware for the EcoSense API."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from pathlib import Path

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

_VERSION_FILE = Path(__file__).resolve().parents[2] / "VERSION"
_VERSION = _VERSION_FILE.read_text().strip() if _VERSION_FILE.exists() else "unknown"

_HEALTH_PATHS = frozenset({"/health", "/health/ready", "/health/live"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory rate limiter.

    Limits are per-IP over a sliding 60 second window. Health-check paths
    are exempt. Camera frame uploads count like any other request, so the
    limit should leave room for the browser's capture rate.

    Args:
        app: ASGI application.
        requests_per_minute: Maximum requests allowed per IP per minute.
    """

    _EXEMPT_PATHS = _HEALTH_PATHS
    _MAX_TRACKED_CLIENTS = 10_000

    def __init__(self, app: ASGIApp, *, requests_per_minute: int = 240) -> None:
        super().__init__(app)
        self._limit = requests_per_minute
        self._window = 60.0
        self._requests: dict[str, list[float]] = {}
        self._last_sweep = time.monotonic()

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path in self._EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()
        cutoff = now - self._window

        # Drop idle clients once per window
        if now - self._last_sweep >= self._window:
            self._sweep(cutoff)
            self._last_sweep = now

        timestamps = [t for t in self._requests.get(client_ip, []) if t > cutoff]
        self._requests[client_ip] = timestamps

        if len(self._requests) > self._MAX_TRACKED_CLIENTS:
            oldest = sorted(
                self._requests,
                key=lambda ip: self._requests[ip][0] if self._requests[ip] else 0,
            )
            for ip in oldest[: len(oldest) // 2]:
                if ip != client_ip:
                    del self._requests[ip]

        if len(timestamps) >= self._limit:
            logger.debug("Rate limit exceeded for %s", client_ip)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": str(int(self._window))},
            )

        timestamps.append(now)
        return await call_next(request)

    def _sweep(self, cutoff: float) -> None:
        idle = [ip for ip, stamps in self._requests.items() if not stamps or stamps[-1] <= cutoff]
        for ip in idle:
            del self._requests[ip]
        if idle:
            logger.debug("Dropped %d idle rate-limit entries", len(idle))


class APIKeyMiddleware:
    """Optional API key authentication.

    When ``ECOSENSE_API_KEY`` is set, every endpoint except the health
    probes requires an ``Authorization: Bearer <key>`` header. WebSocket
    clients may pass the key as an ``api_key`` query parameter instead,
    since browsers cannot set headers on the upgrade request.
    """

    _PUBLIC_PATHS = _HEALTH_PATHS | {"/"}

    def __init__(self, app: ASGIApp, *, api_key: str) -> None:
        self.app = app
        self._api_key = api_key

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not self._api_key or scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        if scope.get("path", "/") in self._PUBLIC_PATHS:
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        auth_header = headers.get(b"authorization", b"").decode("utf-8")
        if auth_header == f"Bearer {self._api_key}":
            await self.app(scope, receive, send)
            return

        if scope["type"] == "websocket":
            query = scope.get("query_string", b"").decode("utf-8")
            params = dict(part.split("=", 1) for part in query.split("&") if "=" in part)
            if params.get("api_key") == self._api_key:
                await self.app(scope, receive, send)
                return
            await send({"type": "websocket.close", "code": 4401})
            return

        response = JSONResponse(
            status_code=401,
            content={"detail": "Invalid or missing API key"},
        )
        await response(scope, receive, send)


__all__ = ["_VERSION", "APIKeyMiddleware", "RateLimitMiddleware"]
