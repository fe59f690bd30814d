"""
EcoSense AI - API entry point

FastAPI application serving the energy dashboard: room audits, the
rate-limit fallback, the auto-cycle and live telemetry over WebSocket.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import redis.asyncio as redis
from fastapi import FastAPI, Request, Response, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from ecosense.api.middleware import _VERSION, APIKeyMiddleware, RateLimitMiddleware
from ecosense.api.routes import api_router
from ecosense.api.websocket import ConnectionManager, snapshot_message
from ecosense.config import get_settings
from ecosense.core.dashboard import Dashboard, build_dashboard
from ecosense.core.rooms import UnknownRoomError
from ecosense.models.enums import Theme
from ecosense.services.preferences import ThemePreferenceService

# Configure logging
settings_instance = get_settings()
logging.basicConfig(
    level=logging.DEBUG if settings_instance.debug else settings_instance.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


# ============================================================================
# Application State
# ============================================================================


class AppState:
    """Centralized application state container."""

    def __init__(self) -> None:
        self.redis_client: redis.Redis | None = None
        self.dashboard: Dashboard | None = None
        self.ws_manager: ConnectionManager = ConnectionManager()
        self.startup_time: datetime | None = None
        self.is_healthy: bool = False


app_state = AppState()


# ============================================================================
# Lifecycle Management
# ============================================================================


async def init_redis() -> redis.Redis | None:
    """Initialize the Redis connection used for saved preferences."""
    settings = settings_instance
    try:
        redis_client = redis.from_url(
            str(settings.redis_url),
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )
        ping_result = redis_client.ping()
        if asyncio.iscoroutine(ping_result):
            await ping_result
        logger.info("Redis connection established")
        return redis_client
    except Exception as e:
        logger.warning("Redis connection failed (theme will not persist): %s", e)
        return None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager for startup and shutdown.
    """
    logger.info("Starting EcoSense API...")

    try:
        logger.info("Connecting to Redis...")
        app_state.redis_client = await init_redis()
        app.state.preferences = ThemePreferenceService(
            app_state.redis_client,
            key=settings_instance.theme_key,
            default=Theme(settings_instance.default_theme),
        )

        logger.info(
            "Building dashboard (vision=%s/%s)",
            settings_instance.vision_provider,
            settings_instance.vision_model,
        )
        dashboard = build_dashboard(settings_instance)
        dashboard.add_listener(app_state.ws_manager.broadcast_snapshot)
        dashboard.start()
        app_state.dashboard = dashboard
        app.state.dashboard = dashboard

        app_state.startup_time = datetime.now(UTC)
        app_state.is_healthy = True
        logger.info("EcoSense API startup complete")

    except Exception as e:
        logger.error("Startup failed: %s", e)
        app_state.is_healthy = False
        raise

    yield

    # Shutdown
    logger.info("Shutting down EcoSense API...")
    app_state.is_healthy = False

    if app_state.dashboard:
        logger.info("Stopping dashboard jobs...")
        await app_state.dashboard.shutdown()
        app_state.dashboard = None

    logger.info("Closing WebSocket connections...")
    await app_state.ws_manager.shutdown()

    if app_state.redis_client:
        logger.info("Closing Redis connection...")
        await app_state.redis_client.aclose()

    logger.info("EcoSense API shutdown complete")


# ============================================================================
# FastAPI Application
# ============================================================================

settings = settings_instance

app = FastAPI(
    title="EcoSense AI API",
    description="""
    EcoSense AI energy dashboard for campus buildings.

    ## Features

    * **Room Audits** - Vision-based occupancy analysis with device recommendations
    * **Local Override** - Rule-engine fallback while the vision service is rate limited
    * **Auto Cycle** - Round-robin audits of every room
    * **Telemetry** - Rolling consumption and savings history
    * **Real-time Updates** - WebSocket push of the full dashboard state
    """,
    version=_VERSION,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)


# ============================================================================
# Middleware (applied in reverse order - last added = outermost)
# ============================================================================

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(RateLimitMiddleware, requests_per_minute=240)

_cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
    max_age=600,
)

if settings.api_key:
    logger.info("API key authentication enabled")
    app.add_middleware(APIKeyMiddleware, api_key=settings.api_key)


@app.middleware("http")
async def request_logging_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Log all requests with timing and correlation IDs."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    start_time = time.perf_counter()

    request.state.request_id = request_id

    try:
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        logger.info(
            "%s %s status=%s duration=%.4fs",
            request.method,
            request.url.path,
            response.status_code,
            process_time,
        )

        return response
    except Exception as e:
        logger.error("Request failed: %s", e, exc_info=True)
        raise


# ============================================================================
# Route Registration
# ============================================================================

app.include_router(api_router)


# ============================================================================
# WebSocket Endpoints
# ============================================================================


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Push the dashboard state on connect and after every change."""
    manager = app_state.ws_manager
    dashboard: Dashboard | None = getattr(websocket.app.state, "dashboard", None)

    await manager.connect(websocket)

    try:
        if dashboard is not None:
            await websocket.send_json(snapshot_message(dashboard.snapshot(), kind="snapshot"))

        while True:
            try:
                data = await websocket.receive_json()

                if data.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})

                elif data.get("type") == "request_snapshot" and dashboard is not None:
                    await websocket.send_json(
                        snapshot_message(dashboard.snapshot(), kind="snapshot")
                    )

            except WebSocketDisconnect:
                raise
            except Exception as e:
                logger.warning("WebSocket message error: %s", e)

    except WebSocketDisconnect:
        await manager.disconnect(websocket)
    except Exception as e:
        logger.error("WebSocket error: %s", e)
        await manager.disconnect(websocket)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, object]:
    """Basic health check."""
    uptime = None
    if app_state.startup_time:
        uptime = (datetime.now(UTC) - app_state.startup_time).total_seconds()
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime_seconds": uptime,
        "websockets": app_state.ws_manager.get_connection_count(),
    }


@app.get("/health/ready", tags=["Health"], response_model=None)
async def readiness_check() -> Response:
    """Kubernetes readiness probe."""
    if not app_state.is_healthy:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready"},
        )
    return JSONResponse(content={"status": "ready"})


@app.get("/health/live", tags=["Health"])
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe."""
    return {"status": "alive"}


@app.get("/", tags=["Root"])
async def root() -> dict[str, object]:
    return {
        "name": settings.app_name,
        "version": _VERSION,
        "documentation": "/docs" if settings.debug else None,
        "health": "/health",
        "websocket": "/ws",
    }


# ============================================================================
# Exception Handlers
# ============================================================================


@app.exception_handler(UnknownRoomError)
async def unknown_room_handler(request: Request, exc: UnknownRoomError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": f"Room {exc.room_id} not found"},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": 500,
                "message": "An internal error occurred" if not settings.debug else str(exc),
                "request_id": getattr(request.state, "request_id", None),
            },
        },
    )


# ============================================================================
# CLI Entry Point
# ============================================================================


def run() -> None:
    import uvicorn

    uvicorn.run(
        "ecosense.api.main:app",
        host=settings.host,
        port=settings.port,
        loop="asyncio",
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
        access_log=True,
    )


if __name__ == "__main__":
    run()
