"""
Image Loader
============

Async fetching and decoding of image resources referenced by scene nodes.
Supports http(s) URLs through aiohttp, ``data:`` URLs, ``file://`` URLs and
local paths. Every failure is normalized to ``ImageLoadError``.
"""

from typing import Any, Dict, Optional
import asyncio
import base64
import binascii
import io
from pathlib import Path
from urllib.parse import unquote, urlparse

import aiohttp
from PIL import Image, UnidentifiedImageError

from scene_raster.config.logging import get_logger

logger = get_logger(__name__)


class ImageLoadError(Exception):
    """Exception raised when an image resource cannot be fetched or decoded."""

    pass


class ImageLoader:
    """Loads and caches decoded images for a single render."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        base_path: Optional[Path] = None,
    ):
        self.session = session
        self._own_session = session is None
        self.base_path = base_path
        self._cache: Dict[str, Image.Image] = {}
        self._failures: Dict[str, ImageLoadError] = {}
        self.logger: Any = logger.bind(component="image_loader")

    async def __aenter__(self) -> "ImageLoader":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if this loader created it."""
        if self._own_session and self.session is not None:
            await self.session.close()
            self.session = None
        self._cache.clear()
        self._failures.clear()

    async def load(self, src: str) -> Image.Image:
        """
        Load and decode an image.

        Args:
            src: Resource locator (http/https/data/file URL or path)

        Returns:
            Decoded RGBA image

        Raises:
            ImageLoadError: If the resource cannot be fetched or decoded; a
                failed resource is not fetched again by the same loader
        """
        if src in self._cache:
            return self._cache[src]
        if src in self._failures:
            raise self._failures[src]

        try:
            data = await self._read(src)
            image = self._decode(data)
        except ImageLoadError as e:
            self._failures[src] = e
            raise
        except Exception as e:
            error = ImageLoadError(f"Failed to load image '{_shorten(src)}': {e}")
            self._failures[src] = error
            raise error from e

        self._cache[src] = image
        self.logger.debug("Image loaded", src=_shorten(src), width=image.width, height=image.height)
        return image

    async def _read(self, src: str) -> bytes:
        scheme = urlparse(src).scheme.lower()

        if scheme in ("http", "https"):
            return await self._fetch_http(src)
        if scheme == "data":
            return self._decode_data_url(src)
        if scheme == "file":
            return await self._read_file(Path(unquote(urlparse(src).path)))
        if scheme and len(scheme) > 1:
            raise ImageLoadError(f"Unsupported image scheme: {scheme}")
        return await self._read_file(Path(src))

    async def _fetch_http(self, url: str) -> bytes:
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))

        async with self.session.get(url) as response:
            if response.status >= 400:
                raise ImageLoadError(f"HTTP {response.status} fetching image '{url}'")
            return await response.read()

    def _decode_data_url(self, src: str) -> bytes:
        header, sep, payload = src.partition(",")
        if not sep:
            raise ImageLoadError("Malformed data URL")

        if header.endswith(";base64"):
            try:
                return base64.b64decode(payload, validate=False)
            except binascii.Error as e:
                raise ImageLoadError(f"Invalid base64 payload: {e}") from e
        return unquote(payload).encode("latin-1")

    async def _read_file(self, path: Path) -> bytes:
        if not path.is_absolute() and self.base_path is not None:
            path = self.base_path / path
        return await asyncio.to_thread(path.read_bytes)

    def _decode(self, data: bytes) -> Image.Image:
        if not data:
            raise ImageLoadError("Empty image data")
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                return image.convert("RGBA")
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ImageLoadError(f"Cannot decode image: {e}") from e


def _shorten(src: str, limit: int = 80) -> str:
    """Keep inline data URLs out of log lines."""
    return src if len(src) <= limit else f"{src[:limit]}..."
