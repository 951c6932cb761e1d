"""Application entry point and FastAPI app factory."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config.settings import settings
from .controllers import jobs
from .jobs.orchestrator import get_orchestrator
from .middleware import SecurityMiddleware, StructuredLoggingMiddleware, TelemetryMiddleware
from .services.llm_client import get_llm_client
from .services.storage import purge_directory
from .services.transcribe import get_transcribe_service
from .views import HealthResponse

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Stream application logs to stdout and rotating files."""

    logging.getLogger().handlers.clear()

    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)

    log_path = Path(settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=1_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    middleware_logger = logging.getLogger("salescoach.middleware.structured")
    middleware_logger.handlers.clear()
    middleware_stdout = logging.StreamHandler(sys.stdout)
    middleware_stdout.setFormatter(logging.Formatter("%(message)s"))
    middleware_logger.addHandler(middleware_stdout)
    middleware_logger.setLevel(logging.INFO)
    middleware_logger.propagate = False

    # Job lifecycle lines also go to the root handlers; this file keeps them together.
    jobs_log_path = Path(settings.jobs_log_file)
    jobs_log_path.parent.mkdir(parents=True, exist_ok=True)
    jobs_handler = RotatingFileHandler(
        jobs_log_path,
        maxBytes=500_000,
        backupCount=5,
        encoding="utf-8",
    )
    jobs_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    )
    jobs_logger = logging.getLogger("salescoach.jobs")
    jobs_logger.handlers.clear()
    jobs_logger.addHandler(jobs_handler)
    jobs_logger.setLevel(logging.INFO)

    noisy_loggers = [
        "httpx",
        "httpcore",
        "multipart",
        "python_multipart",
    ]
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        description="Sales call transcription and coaching analysis API",
    )

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(SecurityMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(jobs.router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""

        return {
            "message": f"{settings.app_name} is running",
            "version": settings.app_version,
            "status": "operational",
        }

    @app.get("/health", include_in_schema=False, response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""

        return HealthResponse(
            status="healthy",
            service=settings.app_name,
            version=settings.app_version,
            jobs=len(get_orchestrator().store),
        )

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose application metrics for Prometheus scraping."""

        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.on_event("startup")
    async def startup_event() -> None:
        removed = purge_directory(Path(settings.upload.directory))
        if removed:
            logger.info("Removed %s stale upload(s) from %s", removed, settings.upload.directory)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await get_orchestrator().shutdown()
        await get_transcribe_service().aclose()
        await get_llm_client().aclose()

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "salescoach.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
