"""
FastAPI Room Relay Application Factory
======================================

This is the main entry point for the room relay: a real-time, room-based
publish/subscribe service for text chat over WebSockets.

Architecture:
    Clients ⇄ /ws (WebSocket) → MessageRouter → RoomRegistry → broadcasts

Routes:
    - /ws               : WebSocket connection for room chat
    - /realtime/status  : Connection and room statistics
    - /health           : Health check endpoint

Environment Variables (all optional):
    - HOST / PORT: Bind address (default 0.0.0.0:3000)
    - LOG_LEVEL: Logging level (default: INFO)
    - ALLOWED_ORIGINS: Comma-separated CORS origins
    - TYPING_THROTTLE_MS: Typing indicator window (default: 2000)
    - ADMIN_DIRECTORY_URL / ADMIN_DIRECTORY_TIMEOUT_SECONDS /
      ADMIN_DIRECTORY_ON_CREATE: Optional admin directory lookup

Running the Service:
    Development:
        uvicorn relay.main:app --reload --port 3000

    Direct:
        python -m relay.main
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings, validate_configuration
from .directory import AdminDirectory
from .realtime import MessageRouter, RoomRegistry, TypingThrottle, realtime_router


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def build_router(settings: Settings) -> MessageRouter:
    """
    Wire the registry, throttle and optional admin directory together.

    Args:
        settings: Loaded application settings

    Returns:
        MessageRouter: Router owning a fresh registry
    """
    registry = RoomRegistry(throttle=TypingThrottle(window_seconds=settings.typing_throttle_seconds))

    directory = None
    if settings.ADMIN_DIRECTORY_ON_CREATE and settings.admin_directory_url_str:
        directory = AdminDirectory(
            settings.admin_directory_url_str,
            timeout=settings.ADMIN_DIRECTORY_TIMEOUT_SECONDS,
        )

    return MessageRouter(registry, directory=directory)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Configure logging
        - Log configuration warnings

    Shutdown tasks:
        - Close active WebSocket connections and leave their rooms
        - Close the admin directory HTTP client
    """
    settings: Settings = app.state.settings
    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("relay.main")

    report = validate_configuration(settings)
    for warning in report["warnings"]:
        logger.warning(warning)

    logger.info(
        "Starting room relay",
        extra={
            "port": settings.PORT,
            "log_level": settings.LOG_LEVEL,
            "admin_directory_enabled": report["admin_directory_enabled"],
        }
    )

    yield

    logger.info("Shutting down room relay")

    router: MessageRouter = app.state.message_router
    for session in list(router.sessions):
        try:
            await session.transport.close(code=status.WS_1001_GOING_AWAY, reason="Server shutdown")
        except Exception as e:
            logger.warning(f"Error closing WebSocket: {str(e)}")
        await router.disconnect(session)
    await router.wait_closed()

    if router.directory is not None:
        await router.directory.aclose()

    logger.info("Room relay shutdown complete")


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application instance with:
        - Lifespan management
        - CORS middleware (when ALLOWED_ORIGINS is set)
        - Realtime routes
        - Health check

    Args:
        settings: Settings to use instead of the environment

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Room Relay",
        description="Room-based publish/subscribe relay for text chat",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.message_router = build_router(settings)

    origins = settings.allowed_origins_list
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET"],
            allow_headers=["*"],
        )

    app.include_router(realtime_router, tags=["Real-time Communications"])

    @app.get("/health", tags=["System"])
    async def health_check() -> Dict[str, str]:
        """
        Health check endpoint.

        Returns:
            dict: Service health information
        """
        return {
            "status": "ok",
            "service": "relay",
            "version": "1.0.0"
        }

    return app


# Create app instance for uvicorn
app = create_application()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "relay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
