"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
The environment is prepared before any application module is imported, since
settings and logging are initialized on import.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="scene_raster_test_"))
os.environ["SCENE_RASTER_ENVIRONMENT"] = "testing"
os.environ["SCENE_RASTER_DEBUG"] = "true"
os.environ["SCENE_RASTER_LOG_LEVEL"] = "DEBUG"
os.environ["SCENE_RASTER_STORAGE_PATH"] = str(_TEST_ROOT / "storage")
os.environ["SCENE_RASTER_OUTPUT_PATH"] = str(_TEST_ROOT / "output")

import pytest
from fastapi.testclient import TestClient

from scene_raster.config.settings import Settings, get_settings
from scene_raster.core.rendering.image_loader import ImageLoader
from scene_raster.core.rendering.surface import RasterSurface

from tests.utils.data_generators import SceneDataGenerator


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_root() -> Generator[Path, None, None]:
    """Remove the temporary storage tree after the session."""
    yield _TEST_ROOT
    shutil.rmtree(_TEST_ROOT, ignore_errors=True)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Settings as seen by the application under test."""
    return get_settings()


@pytest.fixture
def surface() -> RasterSurface:
    """Small white surface."""
    return RasterSurface(200, 100, "white")


@pytest.fixture
async def image_loader():
    """Image loader that never touches the network."""
    async with ImageLoader() as loader:
        yield loader


@pytest.fixture
def red_png_url() -> str:
    """10x10 red PNG as a data URL."""
    return SceneDataGenerator.png_data_url((255, 0, 0), (10, 10))


@pytest.fixture(scope="session")
def fastapi_client() -> Generator[TestClient, None, None]:
    """FastAPI test client with the application lifespan running."""
    from scene_raster.api.main import create_app

    with TestClient(create_app()) as client:
        yield client
