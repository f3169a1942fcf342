"""
FastAPI Application
==================

Main FastAPI application exposing scene rendering over HTTP.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator

import aiohttp
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from scene_raster.config.settings import get_settings
from scene_raster.config.logging import get_logger
from scene_raster.core.rendering.renderer import SceneRenderError
from scene_raster.core.storage.manager import (
    StorageError,
    close_storage_manager,
    get_storage_manager,
)
from scene_raster.api.routes.health import router as health_router
from scene_raster.api.routes.render import router as render_router
from scene_raster.models.schemas import ErrorResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting FastAPI application")

    storage = await get_storage_manager()
    logger.info("Output directory", path=str(storage.output_path.resolve()))

    # Shared for image fetches; no drawing state lives here
    app.state.http_session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))

    try:
        yield
    finally:
        logger.info("Shutting down FastAPI application")

        try:
            await app.state.http_session.close()
        except Exception as e:
            logger.error("Error closing HTTP session", error=str(e))

        await close_storage_manager()


settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    description="Render origin-anchored scene documents to PNG images",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_hosts,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(health_router)
app.include_router(render_router)


@app.middleware("http")
async def add_request_id(request: Request, call_next) -> JSONResponse:  # type: ignore
    """Add request ID to all requests."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)  # type: ignore
    response.headers["X-Request-ID"] = request_id  # type: ignore

    return response  # type: ignore


@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """HTTP exception handler with structured error response."""
    detail = exc.detail if isinstance(exc.detail, dict) else {"error": str(exc.detail)}
    error_response = ErrorResponse(
        error=detail.get("error", "Request failed"),
        error_code=str(exc.status_code),
        details=detail.get("details"),
        request_id=getattr(request.state, "request_id", None),
    )

    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        error=error_response.error,
        request_id=error_response.request_id,
    )

    return JSONResponse(status_code=exc.status_code, content=error_response.model_dump(mode="json"))


@app.exception_handler(SceneRenderError)
async def scene_render_exception_handler(request: Request, exc: SceneRenderError) -> JSONResponse:
    """Handle rendering failures; no partial output is returned."""
    error_response = ErrorResponse(
        error="Failed to render canvas",
        error_code="RENDER_ERROR",
        details={"message": str(exc)},
        request_id=getattr(request.state, "request_id", None),
    )

    logger.error(
        "Scene rendering failed",
        error_message=str(exc),
        request_id=error_response.request_id,
    )

    return JSONResponse(status_code=500, content=error_response.model_dump(mode="json"))


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Handle failures persisting a rendered file."""
    error_response = ErrorResponse(
        error="Failed to store rendered canvas",
        error_code="STORAGE_ERROR",
        details={"message": str(exc)} if settings.debug else None,
        request_id=getattr(request.state, "request_id", None),
    )

    logger.error("Storage error", error_message=str(exc), request_id=error_response.request_id)

    return JSONResponse(status_code=500, content=error_response.model_dump(mode="json"))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """General exception handler for unexpected errors."""
    error_response = ErrorResponse(
        error="Internal server error",
        error_code="INTERNAL_ERROR",
        details={"exception": str(exc)} if settings.debug else None,
        request_id=getattr(request.state, "request_id", None),
    )

    logger.error(
        "Unhandled exception",
        exception=str(exc),
        request_id=error_response.request_id,
        exc_info=True,
    )

    return JSONResponse(status_code=500, content=error_response.model_dump(mode="json"))


@app.get("/", tags=["Root"])
async def root() -> dict:
    """Service information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "method": "pillow",
        "endpoints": {
            "render": "/api/v1/render",
            "render_image": "/api/v1/render/image",
            "validate": "/api/v1/validate",
            "health": "/health",
        },
    }


def run_development_server() -> None:
    """Run development server with auto-reload."""
    uvicorn.run(
        "scene_raster.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


def create_app() -> FastAPI:
    """
    Application factory function for creating FastAPI app instance.
    Used by integration tests and external deployment scripts.
    """
    return app


if __name__ == "__main__":
    run_development_server()
