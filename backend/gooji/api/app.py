"""FastAPI application setup with lifespan and exception handlers."""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gooji import __version__, validate_dependencies
from gooji.api.routes import router
from gooji.config import Settings, load_settings
from gooji.container import build_services
from gooji.errors import ErrorKind, VideoError
from gooji.logging_config import configure_logging
from gooji.services.media_inspector import MediaInspector

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    inspector: Optional[MediaInspector] = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Application settings; loaded from YAML/env when None.
        inspector: Media inspector override. When None, ffmpeg is validated
            at startup and a missing executable aborts startup.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager.

        Startup:
            - Configure logging
            - Create storage directories
            - Validate system dependencies (ffmpeg)
            - Build services

        Shutdown:
            - Stop the thumbnail queue (pending jobs discarded unless draining)
        """
        # Startup
        configure_logging(settings.logging, settings.storage.logs)
        logger.info("Starting Gooji API...")
        settings.storage.ensure_directories()
        if inspector is None:
            validate_dependencies(settings.ffmpeg.path)
        app.state.services = build_services(settings, inspector=inspector)
        logger.info("API startup complete")

        yield

        # Shutdown
        logger.info("Shutting down Gooji API...")
        discarded = app.state.services.close()
        if discarded:
            logger.warning(f"{discarded} thumbnail job(s) were not completed")
        logger.info("API shutdown complete")

    app = FastAPI(
        title="Gooji API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.exception_handler(VideoError)
    async def video_error_handler(request: Request, exc: VideoError):
        """Map error kinds to HTTP status codes; causes are logged only."""
        if exc.status_code >= 500:
            logger.error(
                f"{exc.kind.value} error in {request.method} {request.url.path}: {exc.message}",
                exc_info=exc.__cause__,
            )
        else:
            logger.warning(
                f"{exc.kind.value} error in {request.method} {request.url.path}: {exc.message}"
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed requests are validation errors (400), not 422."""
        logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={"error": ErrorKind.VALIDATION.value, "message": "Invalid request"},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch-all exception handler to prevent stack traces in API responses."""
        logger.error(
            f"Unhandled exception in {request.method} {request.url.path}: "
            f"{type(exc).__name__}: {str(exc)}",
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "internal", "message": "Internal server error"},
        )

    return app
