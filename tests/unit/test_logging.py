"""
Unit Tests for Logging Configuration
====================================

Tests the dictConfig mapping built for each environment.
"""

import pytest

from scene_raster.config.logging import (
    IMAGE_LOADER_LOGGER,
    RENDER_LOGGER,
    STORAGE_LOGGER,
    get_logger,
    get_logging_config,
)
from scene_raster.config.settings import Settings


def make_settings(tmp_path, environment: str, debug: bool = False) -> Settings:
    return Settings(
        environment=environment,
        debug=debug,
        log_level="INFO",
        storage_path=tmp_path / "storage",
        output_path=tmp_path / "output",
    )


class TestLoggingConfig:
    """Test logging configuration per environment."""

    def test_testing_logs_to_console_only(self, tmp_path):
        config = get_logging_config(make_settings(tmp_path, "testing"))

        assert list(config["handlers"]) == ["console"]
        assert config["loggers"][""]["handlers"] == ["console"]
        assert config["loggers"][RENDER_LOGGER]["handlers"] == []
        assert config["loggers"][STORAGE_LOGGER]["handlers"] == []

    def test_development_writes_component_files(self, tmp_path):
        config = get_logging_config(make_settings(tmp_path, "development"))
        handlers = config["handlers"]

        assert handlers["render_file"]["filename"].endswith("render.log")
        assert handlers["storage_file"]["filename"].endswith("storage.log")
        assert handlers["error_file"]["level"] == "ERROR"
        assert handlers["console"]["formatter"] == "standard"
        assert config["loggers"][RENDER_LOGGER]["handlers"] == ["render_file"]
        assert config["loggers"][STORAGE_LOGGER]["handlers"] == ["storage_file"]
        assert config["loggers"][""]["handlers"] == ["console", "app_file", "error_file"]

    def test_production_uses_json(self, tmp_path):
        config = get_logging_config(make_settings(tmp_path, "production"))

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["handlers"]["render_file"]["formatter"] == "json"
        assert config["formatters"]["json"]["()"] == "pythonjsonlogger.json.JsonFormatter"

    @pytest.mark.parametrize("debug,level", [(True, "DEBUG"), (False, "INFO")])
    def test_image_loader_level_follows_debug(self, tmp_path, debug, level):
        config = get_logging_config(make_settings(tmp_path, "development", debug=debug))
        assert config["loggers"][IMAGE_LOADER_LOGGER]["level"] == level

    def test_third_party_loggers_quieted(self, tmp_path):
        config = get_logging_config(make_settings(tmp_path, "development"))
        for name in ("PIL", "aiohttp"):
            assert config["loggers"][name]["level"] == "WARNING"

    def test_module_loggers_sit_under_component_trees(self):
        from scene_raster.core.rendering import image_loader, renderer
        from scene_raster.core.storage import manager

        assert renderer.__name__.startswith(RENDER_LOGGER)
        assert image_loader.__name__ == IMAGE_LOADER_LOGGER
        assert manager.__name__.startswith(STORAGE_LOGGER)
        assert get_logger(renderer.__name__) is not None
