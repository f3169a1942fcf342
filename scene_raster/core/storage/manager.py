"""
Storage Manager
===============

Persists rendered PNGs as timestamped files in the configured output
directory. Writes run in a worker thread to keep the event loop free.
"""

from typing import Any, Optional
import asyncio
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from scene_raster.config.logging import get_logger
from scene_raster.config.settings import get_settings

logger = get_logger(__name__)

FILENAME_PREFIX = "fabric-canvas"


class StorageError(Exception):
    """Exception raised when a rendered file cannot be stored."""

    pass


@dataclass(frozen=True)
class StoredFile:
    """Location of a stored render."""

    filename: str
    filepath: Path
    size: int


def timestamped_filename(now: Optional[datetime] = None, prefix: str = FILENAME_PREFIX) -> str:
    """Build ``<prefix>-<ISO timestamp>.png`` with ``:`` and ``.`` replaced by ``-``."""
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
    return f"{prefix}-{stamp.replace(':', '-').replace('.', '-')}.png"


class StorageManager:
    """Writes rendered PNGs to the output directory."""

    def __init__(self, output_path: Optional[Path] = None):
        self.output_path = Path(output_path or get_settings().output_path)
        self.logger: Any = logger.bind(component="storage")

    async def initialize(self) -> None:
        """Ensure the output directory exists."""
        await asyncio.to_thread(self.output_path.mkdir, parents=True, exist_ok=True)
        self.logger.info("Storage initialized", output_path=str(self.output_path.resolve()))

    async def save_png(self, png_data: bytes, filename: Optional[str] = None) -> StoredFile:
        """
        Store PNG bytes under a timestamped name.

        Args:
            png_data: Encoded PNG
            filename: Optional explicit file name

        Returns:
            StoredFile describing the written file

        Raises:
            StorageError: If the file cannot be written
        """
        filename = filename or timestamped_filename()
        filepath = self.output_path / filename

        try:
            await asyncio.to_thread(filepath.write_bytes, png_data)
        except OSError as e:
            self.logger.error("Failed to store render", filepath=str(filepath), error=str(e))
            raise StorageError(f"Failed to store {filename}: {e}") from e

        self.logger.info("Canvas rendered", filepath=str(filepath), size=len(png_data))
        return StoredFile(filename=filename, filepath=filepath, size=len(png_data))

    def is_writable(self) -> bool:
        """Whether the output directory exists and accepts writes."""
        return self.output_path.is_dir() and os.access(self.output_path, os.W_OK)


# Global storage manager instance
_storage_manager: Optional[StorageManager] = None


async def get_storage_manager() -> StorageManager:
    """Get or create the global storage manager."""
    global _storage_manager
    if _storage_manager is None:
        _storage_manager = StorageManager()
        await _storage_manager.initialize()
    return _storage_manager


async def close_storage_manager() -> None:
    """Release the global storage manager."""
    global _storage_manager
    _storage_manager = None
