"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

from fastapi import APIRouter

from scene_raster.config.settings import get_settings
from scene_raster.core.storage.manager import get_storage_manager
from scene_raster.models.schemas import HealthStatus

router = APIRouter(tags=["Health"])


async def check_system_health() -> HealthStatus:
    """
    Check rendering service health.
    Used by integration tests and route handlers.
    """
    storage = await get_storage_manager()
    storage_ok = storage.is_writable()

    return HealthStatus(
        status="OK" if storage_ok else "degraded",
        version=get_settings().app_version,
        storage=storage_ok,
    )


@router.get("/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    """Basic health check endpoint."""
    return await check_system_health()


@router.get("/api/v1/health", response_model=HealthStatus)
async def versioned_health_check() -> HealthStatus:
    """Health check under the versioned API prefix."""
    return await check_system_health()
