"""
Origin Resolver
===============

Converts a node's anchor-relative position into the absolute top-left of its
box in the parent's coordinate space.
"""

from typing import Tuple, Union

from scene_raster.models.schemas import BaseNode, OriginX, OriginY

_X_FACTORS = {OriginX.LEFT: 0.0, OriginX.CENTER: 0.5, OriginX.RIGHT: 1.0}
_Y_FACTORS = {OriginY.TOP: 0.0, OriginY.CENTER: 0.5, OriginY.BOTTOM: 1.0}


def _x_factor(origin_x: Union[OriginX, str]) -> float:
    try:
        return _X_FACTORS[OriginX(origin_x)]
    except ValueError:
        return 0.0


def _y_factor(origin_y: Union[OriginY, str]) -> float:
    try:
        return _Y_FACTORS[OriginY(origin_y)]
    except ValueError:
        return 0.0


def resolve_origin(
    left: float,
    top: float,
    width: float,
    height: float,
    origin_x: Union[OriginX, str] = OriginX.LEFT,
    origin_y: Union[OriginY, str] = OriginY.TOP,
) -> Tuple[float, float]:
    """
    Resolve the absolute top-left of a box from its anchor position.

    Args:
        left: Horizontal position of the anchor
        top: Vertical position of the anchor
        width: Box width
        height: Box height
        origin_x: Horizontal anchor; unrecognized values behave as ``left``
        origin_y: Vertical anchor; unrecognized values behave as ``top``

    Returns:
        Tuple of (x, y) for the box's top-left corner
    """
    return left - width * _x_factor(origin_x), top - height * _y_factor(origin_y)


def resolve_node_origin(node: BaseNode) -> Tuple[float, float]:
    """Resolve a node's top-left from its own position, box and anchor."""
    return resolve_origin(
        node.left,
        node.top,
        node.box_width,
        node.box_height,
        node.origin_x,
        node.origin_y,
    )
