"""
Unit Tests for Origin Resolution
================================

Tests converting anchor positions into box top-left corners.
"""

import pytest

from scene_raster.core.rendering.origin import resolve_node_origin, resolve_origin
from scene_raster.models.schemas import GroupNode, OriginX, OriginY, TextNode


class TestResolveOrigin:
    """Test the pure origin resolver."""

    @pytest.mark.parametrize(
        "origin_x,origin_y,expected",
        [
            ("left", "top", (100, 100)),
            ("center", "top", (50, 100)),
            ("right", "top", (0, 100)),
            ("left", "center", (100, 80)),
            ("left", "bottom", (100, 60)),
            ("center", "center", (50, 80)),
            ("right", "bottom", (0, 60)),
        ],
    )
    def test_origin_combinations(self, origin_x, origin_y, expected):
        """Test every anchor against a 100x40 box at (100, 100)."""
        assert resolve_origin(100, 100, 100, 40, origin_x, origin_y) == expected

    def test_accepts_enum_values(self):
        """Test enum members behave like their string values."""
        assert resolve_origin(10, 10, 10, 10, OriginX.RIGHT, OriginY.BOTTOM) == (0, 0)

    def test_unrecognized_values_behave_as_left_top(self):
        """Test unknown origins never raise."""
        assert resolve_origin(30, 40, 100, 100, "middle", "baseline") == (30, 40)

    def test_zero_box_ignores_origin(self):
        """Test a zero-sized box resolves to its anchor for every origin."""
        assert resolve_origin(25, 35, 0, 0, "right", "bottom") == (25, 35)

    def test_defaults_are_left_top(self):
        """Test default origins."""
        assert resolve_origin(5, 6, 50, 60) == (5, 6)


class TestResolveNodeOrigin:
    """Test resolving origins from nodes."""

    def test_group_center_origin(self):
        """Test a centred group's top-left is offset by half its box."""
        group = GroupNode.model_validate(
            {"type": "group", "left": 100, "top": 100, "width": 100, "height": 100,
             "originX": "center", "originY": "center", "objects": []}
        )
        assert resolve_node_origin(group) == (50, 50)

    def test_text_without_box_uses_zero_size(self):
        """Test declared-box resolution for text without width/height."""
        node = TextNode.model_validate(
            {"type": "text", "text": "x", "left": 10, "top": 20, "originX": "right"}
        )
        assert resolve_node_origin(node) == (10, 20)
