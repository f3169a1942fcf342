"""
Logging Configuration
=====================

structlog on top of stdlib logging. Rendering, image loading and storage each
get their own logger tree so their levels and files can be tuned separately:
render and image-load events also land in ``render.log``, saved files in
``storage.log``. Console output is JSON in production.
"""

import logging
import logging.config
import sys
from typing import Dict, Any, List, TYPE_CHECKING
import structlog
from structlog.types import Processor

from .settings import get_settings

if TYPE_CHECKING:
    from .settings import Settings

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

RENDER_LOGGER = "scene_raster.core.rendering"
IMAGE_LOADER_LOGGER = "scene_raster.core.rendering.image_loader"
STORAGE_LOGGER = "scene_raster.core.storage"

# Third-party loggers that are noisy at DEBUG
QUIET_LOGGERS = ("PIL", "aiohttp", "asyncio")


def setup_logging() -> None:
    """Configure structlog and the stdlib logger tree from settings."""
    settings = get_settings()

    structlog.configure(
        processors=_structlog_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(get_logging_config(settings))


def _structlog_processors(settings: "Settings") -> List[Processor]:
    processors: List[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.environment == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.environment != "testing"))
    return processors


def _file_handler(settings: "Settings", filename: str, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "json" if settings.environment == "production" else "detailed",
        "filename": str(settings.storage_path / "logs" / filename),
        "maxBytes": LOG_FILE_MAX_BYTES,
        "backupCount": LOG_FILE_BACKUPS,
    }


def get_logging_config(settings: "Settings") -> Dict[str, Any]:
    """
    Build the ``dictConfig`` mapping for the given settings.

    The testing environment logs to the console only.
    """
    write_files = settings.environment != "testing"

    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.log_level,
            "formatter": "json" if settings.environment == "production" else "standard",
            "stream": sys.stdout,
        },
    }
    if write_files:
        handlers["app_file"] = _file_handler(settings, "app.log", settings.log_level)
        handlers["error_file"] = _file_handler(settings, "error.log", "ERROR")
        handlers["render_file"] = _file_handler(settings, "render.log", settings.log_level)
        handlers["storage_file"] = _file_handler(settings, "storage.log", "INFO")

    def attach(*names: str) -> List[str]:
        return [name for name in names if name in handlers]

    loggers: Dict[str, Any] = {
        "": {
            "level": settings.log_level,
            "handlers": attach("console", "app_file", "error_file"),
        },
        # Children propagate to the root, so these only add the extra file
        RENDER_LOGGER: {
            "level": settings.log_level,
            "handlers": attach("render_file"),
        },
        IMAGE_LOADER_LOGGER: {
            "level": "DEBUG" if settings.debug else "INFO",
            "handlers": [],
        },
        STORAGE_LOGGER: {
            "level": "INFO",
            "handlers": attach("storage_file"),
        },
        "uvicorn.access": {
            "level": "WARNING" if settings.environment == "testing" else "INFO",
        },
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def ensure_log_directories() -> None:
    settings = get_settings()
    (settings.storage_path / "logs").mkdir(parents=True, exist_ok=True)


# Initialize logging on import
ensure_log_directories()
setup_logging()
