"""
Scene Renderer
==============

Depth-first traversal of a scene document onto a raster surface.

Each node resolves its box's top-left against its parent's frame, then draws
under ``parent ∘ translate(top_left) ∘ rotate(angle) ∘ scale(scale_x, scale_y)``.
Groups hand their children a frame translated to the group's resolved top-left
only; a group's own angle and scale never reach its children. Nodes are
processed strictly in document order. Image loading is awaited on the event
loop; pixel work and PNG encoding are awaited in worker threads, one step at a
time, so a surface is never touched by two threads at once.
"""

from typing import Any, Optional, Tuple
import asyncio
import base64
import math
import time

import aiohttp

from scene_raster.config.logging import get_logger
from scene_raster.core.rendering.drawers import (
    PLACEHOLDER_DEFAULT_SIZE,
    draw_image,
    draw_text,
    measure_text,
    parse_color,
)
from scene_raster.core.rendering.image_loader import ImageLoader, ImageLoadError
from scene_raster.core.rendering.origin import resolve_origin
from scene_raster.core.rendering.surface import RasterSurface
from scene_raster.core.rendering.transform import Affine
from scene_raster.models.schemas import (
    BaseNode,
    GroupNode,
    ImageNode,
    PNGResult,
    RenderOptions,
    SceneDocument,
    SceneNode,
    TextNode,
)

logger = get_logger(__name__)


class SceneRenderError(Exception):
    """Exception raised when a scene cannot be rendered."""

    pass


def _over_white(color: Tuple[int, int, int, int]) -> Tuple[int, int, int]:
    """Flatten a possibly translucent background onto the white page."""
    r, g, b, a = color
    alpha = a / 255
    return tuple(round(c * alpha + 255 * (1 - alpha)) for c in (r, g, b))  # type: ignore[return-value]


def node_transform(
    node: BaseNode, parent: Affine, box: Optional[Tuple[float, float]] = None
) -> Affine:
    """Local-to-device transform for a node in its parent's frame.

    ``box`` overrides the node's declared width and height for origin resolution.
    """
    width, height = box if box is not None else (node.box_width, node.box_height)
    x, y = resolve_origin(node.left, node.top, width, height, node.origin_x, node.origin_y)
    return parent.translate(x, y).rotate(node.angle).scale(node.scale_x, node.scale_y)


class NodeRenderer:
    """Draws scene nodes onto a surface owned by one render call."""

    def __init__(self, surface: RasterSurface, image_loader: ImageLoader):
        self.surface = surface
        self.image_loader = image_loader
        self.nodes_drawn = 0
        self.logger: Any = logger.bind(component="node_renderer")

    async def render(self, node: SceneNode, parent: Affine) -> None:
        """
        Render a node and, for groups, all of its descendants.

        Args:
            node: Node to render
            parent: Transform of the parent frame
        """
        if not isinstance(node, (GroupNode, TextNode, ImageNode)):
            return

        box = await self.box_size(node)

        if isinstance(node, GroupNode):
            x, y = resolve_origin(node.left, node.top, box[0], box[1], node.origin_x, node.origin_y)
            frame = parent.translate(x, y)
            for child in node.objects:
                await self.render(child, frame)
            return

        transform = node_transform(node, parent, box)
        if isinstance(node, TextNode):
            await self._draw_text(node, transform)
        elif isinstance(node, ImageNode):
            await self._draw_image(node, transform)

    async def box_size(self, node: BaseNode) -> Tuple[float, float]:
        """
        Box used to resolve a node's origin.

        Text without an explicit size is measured; images without one use their
        intrinsic size, or the placeholder size when they fail to load.
        """
        if isinstance(node, TextNode) and (node.width is None or node.height is None):
            measured = measure_text(node.text, node.font_size, node.font_family, node.font_weight)
            return node.width or measured[0], node.height or measured[1]

        if isinstance(node, ImageNode) and node.src and (node.width is None or node.height is None):
            try:
                image = await self.image_loader.load(node.src)
                intrinsic: Tuple[float, float] = image.size
            except ImageLoadError:
                intrinsic = PLACEHOLDER_DEFAULT_SIZE
            return node.width or intrinsic[0], node.height or intrinsic[1]

        return node.box_width, node.box_height

    async def _draw_text(self, node: TextNode, transform: Affine) -> None:
        if not node.text:
            return
        await asyncio.to_thread(
            draw_text,
            self.surface,
            transform,
            node.text,
            font_size=node.font_size,
            font_family=node.font_family,
            font_weight=node.font_weight,
            fill=node.fill,
        )
        self.nodes_drawn += 1

    async def _draw_image(self, node: ImageNode, transform: Affine) -> None:
        if not node.src:
            return
        await draw_image(
            self.surface, transform, node.src, node.width, node.height, self.image_loader
        )
        self.nodes_drawn += 1


class SceneRenderer:
    """Renders complete scene documents to PNG."""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self.session = session
        self.logger: Any = logger.bind(renderer="pillow")

    async def render(
        self, document: SceneDocument, options: Optional[RenderOptions] = None
    ) -> PNGResult:
        """
        Render a scene document.

        Args:
            document: Parsed scene document
            options: Rendering options

        Returns:
            PNGResult containing PNG data and metadata

        Raises:
            SceneRenderError: If rendering fails; no partial output is returned
        """
        options = options or RenderOptions()
        start_time = time.time()

        scale = options.device_scale_factor
        # Fractional sizes round up so the whole canvas is covered
        width = max(1, math.ceil(document.width * scale - 1e-9))
        height = max(1, math.ceil(document.height * scale - 1e-9))
        background = _over_white(
            parse_color(options.background_color or document.background_color)
        )

        try:
            self.logger.info(
                "Rendering scene",
                width=width,
                height=height,
                node_count=len(document.objects),
            )

            surface = RasterSurface(width, height, background)
            root = Affine.identity().scale(scale, scale)

            async with ImageLoader(session=self.session) as loader:
                renderer = NodeRenderer(surface, loader)
                for node in document.objects:
                    await renderer.render(node, root)

            png_bytes = await asyncio.to_thread(surface.encode_png, options.optimize_png)

        except asyncio.CancelledError:
            raise
        except Exception as e:
            error_msg = f"Scene rendering failed: {e}"
            self.logger.error("Scene rendering error", error=error_msg)
            raise SceneRenderError(error_msg) from e

        result = PNGResult(
            png_data=png_bytes,
            base64_data=base64.b64encode(png_bytes).decode("utf-8"),
            width=width,
            height=height,
            file_size=len(png_bytes),
            metadata={
                "generator": "pillow",
                "device_scale_factor": scale,
                "nodes_drawn": renderer.nodes_drawn,
                "render_time": time.time() - start_time,
            },
        )

        self.logger.info(
            "Scene rendered",
            file_size=result.file_size,
            nodes_drawn=renderer.nodes_drawn,
        )
        return result


async def render_scene(
    document: SceneDocument,
    options: Optional[RenderOptions] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> PNGResult:
    """
    Render a scene document to PNG.

    Args:
        document: Parsed scene document
        options: Rendering options
        session: Optional shared HTTP session for image fetches

    Returns:
        PNGResult containing PNG data and metadata
    """
    return await SceneRenderer(session).render(document, options)


def render_scene_sync(
    document: SceneDocument, options: Optional[RenderOptions] = None
) -> PNGResult:
    """Blocking wrapper around ``render_scene`` for callers without an event loop."""
    return asyncio.run(render_scene(document, options))
