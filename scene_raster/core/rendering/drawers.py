"""
Primitive Drawers
=================

Text, image and placeholder drawing. Every drawer paints at the local origin
(0, 0); positioning, rotation and scale come entirely from the transform the
node renderer hands in.
"""

from typing import Iterable, List, Optional, Tuple, Union
from functools import lru_cache
import asyncio
import math
from pathlib import Path

from PIL import Image, ImageColor, ImageDraw, ImageFont

from scene_raster.config.logging import get_logger
from scene_raster.config.settings import get_settings
from scene_raster.core.rendering.image_loader import ImageLoader, ImageLoadError
from scene_raster.core.rendering.surface import RasterSurface
from scene_raster.core.rendering.transform import Affine

logger = get_logger(__name__)

Color = Tuple[int, int, int, int]
Font = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

PLACEHOLDER_FILL = "#CCCCCC"
PLACEHOLDER_LABEL = "Image Error"
PLACEHOLDER_LABEL_COLOR = "#333333"
PLACEHOLDER_LABEL_OFFSET = (5, 5)
PLACEHOLDER_LABEL_SIZE = 12
PLACEHOLDER_DEFAULT_SIZE = (100, 100)

# Single-line text box height relative to the font size
TEXT_HEIGHT_FACTOR = 1.13

# Characters rasterized per text layer
TEXT_CHUNK_LENGTH = 64

TRANSPARENT: Color = (0, 0, 0, 0)

FONT_FILES = {
    "arial": {
        "regular": ["arial.ttf", "Arial.ttf", "LiberationSans-Regular.ttf"],
        "bold": ["arialbd.ttf", "Arial Bold.ttf", "LiberationSans-Bold.ttf"],
    },
    "helvetica": {
        "regular": ["Helvetica.ttc", "LiberationSans-Regular.ttf"],
        "bold": ["Helvetica.ttc", "LiberationSans-Bold.ttf"],
    },
    "times new roman": {
        "regular": ["times.ttf", "Times New Roman.ttf", "LiberationSerif-Regular.ttf"],
        "bold": ["timesbd.ttf", "Times New Roman Bold.ttf", "LiberationSerif-Bold.ttf"],
    },
    "courier new": {
        "regular": ["cour.ttf", "Courier New.ttf", "LiberationMono-Regular.ttf"],
        "bold": ["courbd.ttf", "Courier New Bold.ttf", "LiberationMono-Bold.ttf"],
    },
}

FALLBACK_FONT_FILES = {
    "regular": [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
        "DejaVuSans.ttf",
    ],
    "bold": [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
        "DejaVuSans-Bold.ttf",
    ],
}


# --- Color helpers ---

def parse_color(value: Optional[str], default: Color = (0, 0, 0, 255)) -> Color:
    """Parse a CSS colour string into RGBA, falling back on ``default``."""
    if not value:
        return default

    normalized = value.strip().lower()
    if normalized in ("transparent", "none"):
        return TRANSPARENT

    try:
        return ImageColor.getcolor(normalized, "RGBA")  # type: ignore[return-value]
    except ValueError:
        logger.warning("Unrecognized colour, using default", color=value)
        return default


# --- Font handling ---

def is_bold(weight: Union[str, int, None]) -> bool:
    """Whether a CSS font weight selects a bold face."""
    if weight is None:
        return False
    text = str(weight).strip().lower()
    if text in ("bold", "bolder"):
        return True
    try:
        return float(text) >= 600
    except ValueError:
        return False


def _candidate_files(family: str, style: str) -> Iterable[str]:
    known = FONT_FILES.get(family.lower())
    if known:
        yield from known[style]

    suffix = " Bold" if style == "bold" else ""
    compact = family.replace(" ", "")
    yield f"{family}{suffix}.ttf"
    yield f"{compact}-{'Bold' if style == 'bold' else 'Regular'}.ttf"
    yield f"{compact}.ttf"


def _search_paths(filename: str, font_dirs: Iterable[Path]) -> Iterable[str]:
    for font_dir in font_dirs:
        yield str(Path(font_dir) / filename)
    # Pillow looks bare file names up in the system font directories
    yield filename


@lru_cache(maxsize=128)
def load_font(family: str, size: int, bold: bool = False) -> Font:
    """
    Resolve a font by family, size and weight.

    Tries family-specific files (in configured font directories first, then the
    system font directories), then common sans-serif faces, and finally
    Pillow's built-in scalable font.
    """
    style = "bold" if bold else "regular"
    font_dirs = list(get_settings().font_dirs)

    candidates: List[str] = []
    for filename in _candidate_files(family, style):
        candidates.extend(_search_paths(filename, font_dirs))
    candidates.extend(FALLBACK_FONT_FILES[style])

    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue

    logger.debug("No font file found, using built-in font", family=family, bold=bold)
    return ImageFont.load_default(size=size)


# --- Layers ---

def _text_layer(text: str, font: Font, fill: Color) -> Tuple[Optional[Image.Image], Tuple[int, int]]:
    """Render single-line text anchored at its left ascender into a tight layer."""
    kwargs: dict = {"anchor": "la"} if isinstance(font, ImageFont.FreeTypeFont) else {}
    left, top, right, bottom = font.getbbox(text, **kwargs)

    x0 = min(0, math.floor(left))
    y0 = min(0, math.floor(top))
    width = math.ceil(right) - x0
    height = math.ceil(bottom) - y0
    if width <= 0 or height <= 0:
        return None, (0, 0)

    layer = Image.new("RGBA", (width, height), TRANSPARENT)
    ImageDraw.Draw(layer).text((-x0, -y0), text, font=font, fill=fill, **kwargs)
    return layer, (x0, y0)


def _font_pixels(font_size: float) -> int:
    return min(max(1, round(font_size)), get_settings().max_font_size)


def _clamp_box(width: float, height: float) -> Tuple[int, int]:
    """Whole-pixel layer size, bounded like the canvas."""
    settings = get_settings()
    return (
        min(max(1, round(width)), settings.max_width),
        min(max(1, round(height)), settings.max_height),
    )


def measure_text(
    text: str,
    font_size: float = 16,
    font_family: str = "Arial",
    font_weight: Union[str, int] = "normal",
) -> Tuple[float, float]:
    """Box size of single-line text: advance width by one line of font height."""
    size = _font_pixels(font_size)
    font = load_font(font_family, size, is_bold(font_weight))
    return font.getlength(_single_line(text)), size * TEXT_HEIGHT_FACTOR


def _single_line(text: str) -> str:
    return text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")


def draw_text(
    surface: RasterSurface,
    transform: Affine,
    text: str,
    font_size: float = 16,
    font_family: str = "Arial",
    font_weight: Union[str, int] = "normal",
    fill: Optional[str] = "#000000",
) -> None:
    """
    Draw single-line text at the local origin.

    Text is left-aligned with its ascender line on local y = 0. Line breaks are
    drawn as spaces; there is no wrapping. Long text is laid out in chunks and
    chunks that cannot reach the canvas are never rasterized.
    """
    if not text:
        return

    visible = surface.local_bounds(transform)
    if visible is None:
        return

    single_line = _single_line(text)
    size = _font_pixels(font_size)
    font = load_font(font_family, size, is_bold(font_weight))
    color = parse_color(fill)

    # Generous margins cover glyph overhang past the advance box
    if visible[3] < -size or visible[1] > 2 * size:
        return

    x = 0.0
    for start in range(0, len(single_line), TEXT_CHUNK_LENGTH):
        chunk = single_line[start:start + TEXT_CHUNK_LENGTH]
        advance = font.getlength(chunk)
        if x + advance + size >= visible[0] and x - size <= visible[2]:
            layer, (ox, oy) = _text_layer(chunk, font, color)
            if layer is not None:
                surface.composite(layer, transform, (x + ox, oy))
        x += advance


def draw_placeholder(
    surface: RasterSurface,
    transform: Affine,
    width: Optional[float] = None,
    height: Optional[float] = None,
) -> None:
    """Draw the image-failure placeholder: a grey box with an error label."""
    box_width, box_height = _clamp_box(
        width or PLACEHOLDER_DEFAULT_SIZE[0], height or PLACEHOLDER_DEFAULT_SIZE[1]
    )

    layer = Image.new("RGBA", (box_width, box_height), parse_color(PLACEHOLDER_FILL))
    label, (lx, ly) = _text_layer(
        PLACEHOLDER_LABEL,
        load_font("Arial", PLACEHOLDER_LABEL_SIZE),
        parse_color(PLACEHOLDER_LABEL_COLOR),
    )
    if label is not None:
        dx, dy = PLACEHOLDER_LABEL_OFFSET
        # The label is clipped to the box
        layer.alpha_composite(label, dest=(max(0, dx + lx), max(0, dy + ly)))

    surface.composite(layer, transform)


async def draw_image(
    surface: RasterSurface,
    transform: Affine,
    src: Optional[str],
    width: Optional[float],
    height: Optional[float],
    loader: ImageLoader,
) -> None:
    """
    Draw an image at the local origin, or a placeholder when it fails to load.

    A missing ``src`` draws nothing. Load and decode failures are logged and
    replaced by the placeholder; they never abort the render. Pixel work runs in
    a worker thread so the event loop stays free.
    """
    if not src:
        return

    try:
        image = await loader.load(src)
    except ImageLoadError as e:
        logger.warning("Image load failed, drawing placeholder", error=str(e))
        await asyncio.to_thread(draw_placeholder, surface, transform, width, height)
        return

    await asyncio.to_thread(_composite_image, surface, transform, image, width, height)


def _composite_image(
    surface: RasterSurface,
    transform: Affine,
    image: Image.Image,
    width: Optional[float],
    height: Optional[float],
) -> None:
    target = _clamp_box(width or image.width, height or image.height)
    if target != image.size:
        image = image.resize(target, Image.Resampling.LANCZOS)

    surface.composite(image, transform)
