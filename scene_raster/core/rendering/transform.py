"""
Affine Transforms
=================

Immutable 2D affine transforms threaded through the scene traversal.

A transform maps local coordinates to device coordinates::

    x' = a * x + b * y + c
    y' = d * x + e * y + f

``translate``, ``rotate`` and ``scale`` compose on the local side, the same way
canvas drawing contexts do, so ``t.translate(...).rotate(...).scale(...)``
applies the scale first and the translation last to a local point.
"""

from dataclasses import dataclass
import math
from typing import Tuple

_EPSILON = 1e-9


@dataclass(frozen=True)
class Affine:
    """2x3 affine matrix in row-major order."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 0.0
    e: float = 1.0
    f: float = 0.0

    @classmethod
    def identity(cls) -> "Affine":
        return cls()

    @classmethod
    def translation(cls, tx: float, ty: float) -> "Affine":
        return cls(1.0, 0.0, tx, 0.0, 1.0, ty)

    @classmethod
    def rotation(cls, degrees: float) -> "Affine":
        """Clockwise rotation in a y-down coordinate system."""
        radians = math.radians(degrees)
        cos, sin = math.cos(radians), math.sin(radians)
        return cls(cos, -sin, 0.0, sin, cos, 0.0)

    @classmethod
    def scaling(cls, sx: float, sy: float) -> "Affine":
        return cls(sx, 0.0, 0.0, 0.0, sy, 0.0)

    def __matmul__(self, other: "Affine") -> "Affine":
        """Compose so that ``other`` is applied first."""
        return Affine(
            self.a * other.a + self.b * other.d,
            self.a * other.b + self.b * other.e,
            self.a * other.c + self.b * other.f + self.c,
            self.d * other.a + self.e * other.d,
            self.d * other.b + self.e * other.e,
            self.d * other.c + self.e * other.f + self.f,
        )

    def translate(self, tx: float, ty: float) -> "Affine":
        return self @ Affine.translation(tx, ty)

    def rotate(self, degrees: float) -> "Affine":
        if not degrees:
            return self
        return self @ Affine.rotation(degrees)

    def scale(self, sx: float, sy: float) -> "Affine":
        if sx == 1 and sy == 1:
            return self
        return self @ Affine.scaling(sx, sy)

    def apply(self, x: float, y: float) -> Tuple[float, float]:
        return self.a * x + self.b * y + self.c, self.d * x + self.e * y + self.f

    @property
    def determinant(self) -> float:
        return self.a * self.e - self.b * self.d

    def inverse(self) -> "Affine":
        det = self.determinant
        if abs(det) < _EPSILON:
            raise ValueError("Affine transform is not invertible")
        a, b, d, e = self.e / det, -self.b / det, -self.d / det, self.a / det
        return Affine(a, b, -(a * self.c + b * self.f), d, e, -(d * self.c + e * self.f))

    @property
    def is_integer_translation(self) -> bool:
        """True when the transform only shifts by whole pixels."""
        return (
            abs(self.a - 1.0) < _EPSILON
            and abs(self.b) < _EPSILON
            and abs(self.d) < _EPSILON
            and abs(self.e - 1.0) < _EPSILON
            and abs(self.c - round(self.c)) < 1e-6
            and abs(self.f - round(self.f)) < 1e-6
        )

    def to_pillow(self) -> Tuple[float, float, float, float, float, float]:
        """Coefficients in the order expected by ``Image.transform``."""
        return (self.a, self.b, self.c, self.d, self.e, self.f)
