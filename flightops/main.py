"""FastAPI app factory, logging setup and the uvicorn entry point."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config.settings import settings
from .controllers import admin, bids, fleet, pireps, sessions
from .database import dispose_engine, init_models
from .domain.errors import FlightOpsError
from .middleware import StructuredLoggingMiddleware, TelemetryMiddleware
from .services import ExpirationReaper
from .views import ErrorResponse

logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
AUDIT_LOGGER = "flightops.services.adjudication"
ACCESS_LOGGER = "flightops.middleware.structured"
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "sqlalchemy.engine")


def _rotating_handler(path: str, fmt: str, max_bytes: int) -> RotatingFileHandler:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _configure_logging() -> None:
    """Application log to stdout and file; access lines bare; PIREP decisions to an audit file."""

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root.addHandler(_rotating_handler(settings.log_file, LOG_FORMAT, 1_000_000))
    root.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    # The access middleware colours its own lines; keep them off the root handlers.
    access = logging.getLogger(ACCESS_LOGGER)
    access.handlers.clear()
    access_console = logging.StreamHandler(sys.stdout)
    access_console.setFormatter(logging.Formatter("%(message)s"))
    access.addHandler(access_console)
    access.setLevel(logging.INFO)
    access.propagate = False

    # Adjudication records also propagate to the main log.
    audit = logging.getLogger(AUDIT_LOGGER)
    audit.handlers.clear()
    audit.addHandler(
        _rotating_handler(
            settings.adjudication_log_file,
            "%(asctime)s | %(levelname)s | %(message)s",
            500_000,
        )
    )
    audit.setLevel(logging.INFO)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        description=(
            "Levant Virtual Airline flight operations: bids, ACARS sessions, "
            "PIREP adjudication and fleet economics"
        ),
    )

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(bids.router)
    app.include_router(fleet.router)
    app.include_router(sessions.router)
    app.include_router(pireps.router)
    app.include_router(admin.router)

    reaper: Optional[ExpirationReaper] = None

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""

        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "status": "operational",
        }

    @app.get("/health", include_in_schema=False)
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""

        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose application metrics for Prometheus scraping."""

        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(FlightOpsError)
    async def flightops_exception_handler(request: Request, exc: FlightOpsError):
        logger.info(
            "%s %s rejected: %s (%s)",
            request.method,
            request.url.path,
            exc.reason,
            exc.code,
        )
        body = ErrorResponse(detail=exc.reason, code=exc.code)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.on_event("startup")
    async def startup_event() -> None:
        nonlocal reaper
        await init_models()
        if settings.operations.reaper_enabled:
            reaper = ExpirationReaper()
            reaper.start()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        if reaper is not None:
            await reaper.stop()
        await dispose_engine()

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "flightops.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
