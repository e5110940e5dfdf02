"""
Tubely API - FastAPI Application Entry Point.

Wires the video router, the error handlers, static thumbnail serving and the
MongoDB lifecycle into a single FastAPI application.

API Structure:
    /api/videos                     - Create and list videos
    /api/videos/{video_id}          - Get a video with a signed playback URL
    /api/thumbnail_upload/{video_id} - Upload a thumbnail
    /api/video_upload/{video_id}    - Upload a video
    /assets/...                     - Uploaded thumbnails
    /health, /ready                 - Liveness and readiness probes

Usage:
    uvicorn tubely.main:app --host 0.0.0.0 --port 8091
"""

import logging

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from tubely import __version__
from tubely.api.v1 import api_router
from tubely.config import get_settings
from tubely.core.database import close_db, get_db_client, init_db
from tubely.core.errors import TubelyError
from tubely.utils.logger import setup_logging


logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Configure logging and open the MongoDB connection for the app's lifetime.

    Startup fails if MongoDB cannot be reached; every endpoint except the
    probes needs it.
    """
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    logger.info(
        "Tubely API starting: env=%s, host=%s:%d, bucket=%s",
        settings.app_env,
        settings.host,
        settings.port,
        settings.s3_bucket_name,
    )

    await init_db(settings)

    yield

    logger.info("Tubely API shutting down")
    await close_db()


# =============================================================================
# FastAPI Application Instance
# =============================================================================

_settings = get_settings()

app = FastAPI(
    title="Tubely API",
    description="Upload, classify, store and play back user videos.",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=_settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(TubelyError)
async def tubely_error_handler(request: Request, exc: TubelyError) -> JSONResponse:
    """
    Render a TubelyError as ``{"error": message}`` with its status code.

    Server-side failures are logged with their cause; the cause never reaches
    the client.
    """
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "%s on %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc.__cause__ or exc,
        )
    else:
        logger.info(
            "%s on %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Invalid request on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Couldn't decode parameters"},
    )


# =============================================================================
# Routes
# =============================================================================

app.include_router(api_router, prefix="/api")

app.mount(
    "/assets",
    StaticFiles(directory=_settings.assets_root, check_dir=False),
    name="assets",
)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, Any]:
    """Liveness probe; does not touch dependencies."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": __version__,
        "service": "Tubely API",
    }


@app.get("/ready", tags=["health"])
async def readiness_check() -> JSONResponse:
    """Readiness probe; reports whether MongoDB answers a ping."""
    try:
        mongodb_ready = await get_db_client().ping()
    except RuntimeError:
        mongodb_ready = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if mongodb_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "ready": mongodb_ready,
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": {"mongodb": mongodb_ready},
        },
    )


if __name__ == "__main__":
    uvicorn.run(
        "tubely.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level=_settings.log_level,
    )
