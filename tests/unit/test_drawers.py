"""
Unit Tests for Primitive Drawers
================================

Tests colours, fonts, text, image and placeholder drawing.
"""

from unittest.mock import patch

from PIL import Image, ImageFont
import pytest

from scene_raster.core.rendering.drawers import (
    PLACEHOLDER_DEFAULT_SIZE,
    TEXT_HEIGHT_FACTOR,
    draw_image,
    draw_placeholder,
    draw_text,
    is_bold,
    load_font,
    measure_text,
    parse_color,
)
from scene_raster.core.rendering.surface import RasterSurface
from scene_raster.core.rendering.transform import Affine

from tests.utils.assertions import assert_blank, assert_pixel, ink_bbox
from tests.utils.data_generators import SceneDataGenerator

GREY = (204, 204, 204)


class TestParseColor:
    """Test CSS colour parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("red", (255, 0, 0, 255)),
            ("#00ff00", (0, 255, 0, 255)),
            ("#333", (51, 51, 51, 255)),
            ("rgb(1, 2, 3)", (1, 2, 3, 255)),
            ("rgba(0, 0, 255, 128)", (0, 0, 255, 128)),
            ("transparent", (0, 0, 0, 0)),
            (" White ", (255, 255, 255, 255)),
        ],
    )
    def test_known_colors(self, value, expected):
        assert parse_color(value) == expected

    def test_unknown_color_uses_default(self):
        """Test unparseable colours fall back."""
        assert parse_color("not-a-colour", (1, 2, 3, 4)) == (1, 2, 3, 4)

    def test_empty_color_uses_default(self):
        assert parse_color(None) == (0, 0, 0, 255)
        assert parse_color("") == (0, 0, 0, 255)


class TestFonts:
    """Test font resolution."""

    @pytest.mark.parametrize(
        "weight,expected",
        [("bold", True), ("BOLDER", True), (700, True), ("600", True),
         ("normal", False), (400, False), ("heavy", False), (None, False)],
    )
    def test_is_bold(self, weight, expected):
        assert is_bold(weight) is expected

    def test_load_font_always_resolves(self):
        """Test unknown families fall back to an available font."""
        font = load_font("Definitely Not A Font", 20)
        assert isinstance(font, (ImageFont.FreeTypeFont, ImageFont.ImageFont))
        assert font.getlength("abc") > 0

    def test_load_font_is_cached(self):
        assert load_font("Arial", 14, True) is load_font("Arial", 14, True)

    def test_measure_text(self):
        """Test measured width grows with text and height follows font size."""
        short_width, height = measure_text("a", 20)
        long_width, _ = measure_text("aaaa", 20)
        assert height == pytest.approx(20 * TEXT_HEIGHT_FACTOR)
        assert long_width > short_width > 0

    def test_measure_empty_text(self):
        assert measure_text("", 16)[0] == 0


class TestDrawText:
    """Test text drawing."""

    def test_draws_at_local_origin(self, surface):
        """Test text ink starts near the transform origin."""
        draw_text(surface, Affine.translation(20, 10), "Hello", font_size=20)
        left, top, right, bottom = ink_bbox(surface.image)
        assert 18 <= left <= 25
        assert 10 <= top <= 20
        assert right > left and bottom > top

    def test_empty_text_draws_nothing(self, surface):
        draw_text(surface, Affine.identity(), "")
        assert_blank(surface.image)

    def test_fill_color(self, surface):
        """Test text uses its fill colour."""
        draw_text(surface, Affine.translation(10, 10), "MMMM", font_size=40, fill="#ff0000")
        colors = {color for _, color in surface.image.getcolors(maxcolors=100000)}
        assert (255, 0, 0) in colors

    def test_line_breaks_drawn_as_spaces(self):
        """Test text is never wrapped."""
        wrapped = RasterSurface(200, 60)
        spaced = RasterSurface(200, 60)
        draw_text(wrapped, Affine.translation(5, 5), "ab\ncd", font_size=20)
        draw_text(spaced, Affine.translation(5, 5), "ab cd", font_size=20)
        assert wrapped.image.tobytes() == spaced.image.tobytes()


class TestDrawPlaceholder:
    """Test the image error placeholder."""

    def test_placeholder_box(self, surface):
        """Test the grey box with a darker label."""
        draw_placeholder(surface, Affine.translation(10, 10), 50, 30)
        assert ink_bbox(surface.image) == (10, 10, 60, 40)
        assert_pixel(surface.image, (58, 38), GREY)
        box = surface.image.crop((10, 10, 60, 40)).convert("L")
        assert box.getextrema()[0] < 150

    def test_placeholder_default_size(self):
        """Test unset sizes use the default box."""
        surface = RasterSurface(300, 300)
        draw_placeholder(surface, Affine.identity())
        assert ink_bbox(surface.image) == (0, 0) + PLACEHOLDER_DEFAULT_SIZE


class TestDrawImage:
    """Test image drawing."""

    @pytest.mark.asyncio
    async def test_draws_intrinsic_size(self, surface, image_loader):
        """Test images without a box keep their own size."""
        src = SceneDataGenerator.png_data_url((0, 0, 255), (12, 8))
        await draw_image(surface, Affine.translation(5, 5), src, None, None, image_loader)
        assert ink_bbox(surface.image) == (5, 5, 17, 13)
        assert_pixel(surface.image, (10, 10), (0, 0, 255))

    @pytest.mark.asyncio
    async def test_resizes_to_box(self, surface, image_loader, red_png_url):
        """Test images are stretched to their box."""
        await draw_image(surface, Affine.identity(), red_png_url, 40, 20, image_loader)
        assert ink_bbox(surface.image) == (0, 0, 40, 20)

    @pytest.mark.asyncio
    async def test_missing_src_draws_nothing(self, surface, image_loader):
        await draw_image(surface, Affine.identity(), None, 10, 10, image_loader)
        assert_blank(surface.image)

    @pytest.mark.asyncio
    async def test_failure_draws_placeholder(self, surface, image_loader, tmp_path):
        """Test load failures are replaced by the placeholder."""
        missing = str(tmp_path / "missing.png")
        await draw_image(surface, Affine.translation(10, 10), missing, 50, 30, image_loader)
        assert ink_bbox(surface.image) == (10, 10, 60, 40)
        assert_pixel(surface.image, (58, 38), GREY)

    @pytest.mark.asyncio
    async def test_translucent_image(self, surface, image_loader):
        """Test image alpha blends with the canvas."""
        src = SceneDataGenerator.png_data_url((0, 0, 0, 0), (10, 10))
        await draw_image(surface, Affine.identity(), src, None, None, image_loader)
        assert_blank(surface.image)


class TestLayerBounds:
    """Test that oversized nodes never allocate oversized layers."""

    def test_placeholder_box_is_capped(self, surface, test_settings, monkeypatch):
        """Test a huge placeholder box is bounded by the configured maximum."""
        monkeypatch.setattr(test_settings, "max_width", 300)
        monkeypatch.setattr(test_settings, "max_height", 250)
        with patch.object(surface, "composite", wraps=surface.composite) as composite:
            draw_placeholder(surface, Affine.identity(), 30000, 30000)
        assert composite.call_args[0][0].size == (300, 250)
        assert ink_bbox(surface.image) == (0, 0, 200, 100)

    @pytest.mark.asyncio
    async def test_image_target_is_capped(self, surface, image_loader, red_png_url,
                                          test_settings, monkeypatch):
        """Test a huge image box is bounded by the configured maximum."""
        monkeypatch.setattr(test_settings, "max_width", 120)
        monkeypatch.setattr(test_settings, "max_height", 80)
        with patch.object(surface, "composite", wraps=surface.composite) as composite:
            await draw_image(surface, Affine.identity(), red_png_url, 30000, 30000, image_loader)
        assert composite.call_args[0][0].size == (120, 80)

    def test_font_size_is_capped(self, test_settings, monkeypatch):
        """Test text is never rasterized above the maximum font size."""
        monkeypatch.setattr(test_settings, "max_font_size", 50)
        assert measure_text("a", 10000)[1] == pytest.approx(50 * TEXT_HEIGHT_FACTOR)

    def test_long_text_only_rasterizes_visible_chunks(self, surface):
        """Test text far past the canvas edge is skipped chunk by chunk."""
        with patch.object(surface, "composite", wraps=surface.composite) as composite:
            draw_text(surface, Affine.translation(5, 5), "x" * 100000, font_size=20)
        assert 1 <= composite.call_count <= 3
        assert ink_bbox(surface.image) is not None

    def test_text_outside_canvas_draws_nothing(self, surface):
        with patch.object(surface, "composite", wraps=surface.composite) as composite:
            draw_text(surface, Affine.translation(10, 5000), "Hello", font_size=20)
        composite.assert_not_called()
        assert_blank(surface.image)
