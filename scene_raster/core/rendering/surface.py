"""
Raster Surface
==============

Canvas owned by a single render call. Drawers paint primitives into small
local RGBA layers and hand them to the surface together with the transform
that maps the layer's local coordinates onto the canvas.
"""

import io
import math
from typing import Any, Optional, Tuple

from PIL import Image

from scene_raster.config.logging import get_logger
from scene_raster.core.rendering.transform import Affine

logger = get_logger(__name__)


class RasterSurface:
    """Opaque RGB canvas with affine layer compositing."""

    def __init__(self, width: int, height: int, background: Any = "white"):
        self.width = width
        self.height = height
        self.image = Image.new("RGB", (width, height), background)
        self.logger: Any = logger.bind(component="surface")

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def composite(
        self, layer: Image.Image, transform: Affine, offset: Tuple[float, float] = (0.0, 0.0)
    ) -> None:
        """
        Composite an RGBA layer onto the canvas.

        Args:
            layer: RGBA image whose pixel (0, 0) sits at ``offset`` in local space
            transform: Local-to-device transform
            offset: Local coordinates of the layer's top-left pixel
        """
        if layer.width == 0 or layer.height == 0:
            return

        if layer.mode != "RGBA":
            layer = layer.convert("RGBA")

        placement = transform.translate(*offset)

        if placement.is_integer_translation:
            self.image.paste(layer, (round(placement.c), round(placement.f)), layer)
            return

        if abs(placement.determinant) < 1e-9:
            # Degenerate transform collapses the layer to a line
            return

        bounds = self._device_bounds(layer, placement)
        if bounds is None:
            return

        left, top, right, bottom = bounds
        # Output pixel (x, y) samples layer coordinates through the inverse
        inverse = placement.inverse().translate(left, top)
        warped = (
            layer.convert("RGBa")
            .transform(
                (right - left, bottom - top),
                Image.Transform.AFFINE,
                inverse.to_pillow(),
                resample=Image.Resampling.BICUBIC,
            )
            .convert("RGBA")
        )
        self.image.paste(warped, (left, top), warped)

    def local_bounds(self, transform: Affine) -> Optional[Tuple[float, float, float, float]]:
        """The canvas as seen in ``transform``'s local space, as (x0, y0, x1, y1)."""
        try:
            inverse = transform.inverse()
        except ValueError:
            return None

        corners = [
            inverse.apply(x, y)
            for x, y in ((0, 0), (self.width, 0), (0, self.height), (self.width, self.height))
        ]
        xs = [x for x, _ in corners]
        ys = [y for _, y in corners]
        return min(xs), min(ys), max(xs), max(ys)

    def _device_bounds(
        self, layer: Image.Image, placement: Affine
    ) -> Optional[Tuple[int, int, int, int]]:
        """Canvas-clipped bounding box of a transformed layer."""
        corners = [
            placement.apply(x, y)
            for x, y in ((0, 0), (layer.width, 0), (0, layer.height), (layer.width, layer.height))
        ]
        xs = [x for x, _ in corners]
        ys = [y for _, y in corners]

        left = max(0, math.floor(min(xs)))
        top = max(0, math.floor(min(ys)))
        right = min(self.width, math.ceil(max(xs)))
        bottom = min(self.height, math.ceil(max(ys)))

        if right <= left or bottom <= top:
            return None
        return left, top, right, bottom

    def encode_png(self, optimize: bool = True) -> bytes:
        """Encode the canvas as PNG bytes."""
        output = io.BytesIO()
        self.image.save(output, format="PNG", optimize=optimize, compress_level=9 if optimize else 6)
        png_bytes = output.getvalue()

        self.logger.debug("PNG encoded", size=len(png_bytes), optimized=optimize)
        return png_bytes
