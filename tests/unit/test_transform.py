"""
Unit Tests for Affine Transforms
================================

Tests composition, application and inversion of affine transforms.
"""

import math

import pytest

from scene_raster.core.rendering.transform import Affine


def _close(actual, expected, tol=1e-9):
    return all(math.isclose(a, e, abs_tol=tol) for a, e in zip(actual, expected))


class TestAffineConstruction:
    """Test basic transforms."""

    def test_identity(self):
        """Test identity leaves points unchanged."""
        assert Affine.identity().apply(3, 4) == (3, 4)

    def test_translation(self):
        """Test translation shifts points."""
        assert Affine.translation(10, -5).apply(1, 1) == (11, -4)

    def test_rotation_is_clockwise_in_y_down_space(self):
        """Test 90 degrees maps +x onto +y."""
        assert _close(Affine.rotation(90).apply(1, 0), (0, 1))
        assert _close(Affine.rotation(90).apply(0, 1), (-1, 0))

    def test_rotation_180_reflects(self):
        """Test 180 degrees negates both axes."""
        assert _close(Affine.rotation(180).apply(20, 10), (-20, -10))

    def test_scaling(self):
        """Test axis scaling."""
        assert Affine.scaling(2, 3).apply(4, 5) == (8, 15)


class TestAffineComposition:
    """Test local-side composition."""

    def test_translate_rotate_scale_order(self):
        """Test scale applies first and translation last."""
        transform = Affine.identity().translate(100, 50).rotate(90).scale(2, 2)
        assert _close(transform.apply(1, 0), (100, 52))

    def test_matmul_applies_right_operand_first(self):
        """Test composition order of the @ operator."""
        combined = Affine.translation(10, 0) @ Affine.scaling(2, 2)
        assert combined.apply(1, 1) == (12, 2)

    def test_noop_rotate_and_scale_return_same_instance(self):
        """Test zero rotation and unit scale do not build new transforms."""
        transform = Affine.translation(1, 2)
        assert transform.rotate(0) is transform
        assert transform.scale(1, 1) is transform

    def test_transforms_are_immutable(self):
        """Test composing leaves the original untouched."""
        base = Affine.identity()
        base.translate(5, 5)
        assert base == Affine.identity()
        with pytest.raises(AttributeError):
            base.c = 5  # type: ignore[misc]


class TestAffineInverse:
    """Test inversion."""

    def test_inverse_round_trip(self):
        """Test a point survives transform and inverse."""
        transform = Affine.identity().translate(30, 40).rotate(33).scale(2, 0.5)
        x, y = transform.apply(7, -3)
        assert _close(transform.inverse().apply(x, y), (7, -3), tol=1e-6)

    def test_singular_transform_raises(self):
        """Test zero scale cannot be inverted."""
        with pytest.raises(ValueError):
            Affine.scaling(0, 1).inverse()

    def test_determinant(self):
        """Test the determinant of a scale."""
        assert Affine.scaling(2, 3).determinant == 6


class TestIntegerTranslation:
    """Test the whole-pixel translation check."""

    def test_integer_translation(self):
        assert Affine.translation(3, 4).is_integer_translation

    def test_fractional_translation(self):
        assert not Affine.translation(3.5, 4).is_integer_translation

    def test_rotation_is_not_translation(self):
        assert not Affine.rotation(180).is_integer_translation

    def test_to_pillow_order(self):
        """Test coefficients come out in a..f order."""
        assert Affine(1, 2, 3, 4, 5, 6).to_pillow() == (1, 2, 3, 4, 5, 6)
