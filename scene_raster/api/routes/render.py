"""
Render Routes
=============

FastAPI routes for scene rendering and validation.
"""

from typing import Any, Optional
import asyncio
import time

import aiohttp
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from scene_raster.config.logging import get_logger
from scene_raster.config.settings import get_settings
from scene_raster.core.rendering.renderer import render_scene
from scene_raster.core.scene.parser import INVALID_OBJECTS_MESSAGE, parse_scene_data
from scene_raster.core.storage.manager import get_storage_manager
from scene_raster.models.schemas import (
    PNGResult,
    RenderOptions,
    RenderResponse,
    SceneValidationResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Rendering"])


async def render_scene_payload(
    payload: Any,
    options: RenderOptions,
    session: Optional[aiohttp.ClientSession] = None,
) -> PNGResult:
    """
    Validate a decoded scene payload and render it.
    Used by the route handlers and integration tests.

    Raises:
        HTTPException: 400 for invalid scenes, 504 when rendering times out
    """
    parse_result = parse_scene_data(payload)
    if not parse_result.success or parse_result.document is None:
        raise HTTPException(
            status_code=400,
            detail={"error": INVALID_OBJECTS_MESSAGE, "details": parse_result.errors},
        )

    logger.info("Rendering canvas with Pillow", warnings=len(parse_result.warnings))

    settings = get_settings()
    try:
        return await asyncio.wait_for(
            render_scene(parse_result.document, options, session=session),
            timeout=settings.render_timeout,
        )
    except asyncio.TimeoutError:
        raise HTTPException(
            status_code=504,
            detail={"error": f"Rendering exceeded {settings.render_timeout}s timeout"},
        )


def render_options(
    device_scale_factor: float = Query(1.0, gt=0, le=3.0, description="Device pixel ratio"),
    optimize_png: bool = Query(True, description="Optimize PNG file size"),
    background_color: Optional[str] = Query(None, description="Background color override"),
) -> RenderOptions:
    """Render options from query parameters."""
    return RenderOptions(
        device_scale_factor=device_scale_factor,
        optimize_png=optimize_png,
        background_color=background_color,
    )


def _http_session(request: Request) -> Optional[aiohttp.ClientSession]:
    return getattr(request.app.state, "http_session", None)


@router.post("/render", response_model=RenderResponse)
async def render_to_file(
    request: Request,
    payload: Any = Body(...),
    options: RenderOptions = Depends(render_options),
) -> RenderResponse:
    """Render a scene and store the PNG in the output directory."""
    start_time = time.time()

    png_result = await render_scene_payload(payload, options, _http_session(request))

    storage = await get_storage_manager()
    stored = await storage.save_png(png_result.png_data)

    return RenderResponse(
        success=True,
        message="Canvas rendered successfully",
        filename=stored.filename,
        filepath=str(stored.filepath),
        width=png_result.width,
        height=png_result.height,
        file_size=png_result.file_size,
        processing_time=time.time() - start_time,
    )


@router.post(
    "/render/image",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def render_to_image(
    request: Request,
    payload: Any = Body(...),
    options: RenderOptions = Depends(render_options),
) -> Response:
    """Render a scene and return the PNG bytes directly."""
    png_result = await render_scene_payload(payload, options, _http_session(request))
    return Response(
        content=png_result.png_data,
        media_type="image/png",
        headers={
            "X-Image-Width": str(png_result.width),
            "X-Image-Height": str(png_result.height),
        },
    )


@router.post("/validate", response_model=SceneValidationResponse)
async def validate_scene(payload: Any = Body(...)) -> SceneValidationResponse:
    """Validate a scene without rendering it."""
    result = parse_scene_data(payload)
    return SceneValidationResponse(
        valid=result.success,
        errors=result.errors,
        warnings=result.warnings,
    )
