"""
Pydantic Models and Schemas
===========================

Core data models for scene documents, render results and API responses.

Scene nodes form a closed variant over group, text, image and unknown nodes.
Every field default is applied once here, at parse time, so the renderer never
has to fall back on missing values itself.
"""

from typing import Annotated, Optional, List, Dict, Any, Union, Literal
from datetime import datetime, timezone
from enum import Enum

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_validator,
)


# Enums
class NodeType(str, Enum):
    """Scene node types with drawing semantics."""

    GROUP = "group"
    TEXT = "text"
    ITEXT = "i-text"
    IMAGE = "image"


class OriginX(str, Enum):
    """Horizontal anchor within a node's box."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class OriginY(str, Enum):
    """Vertical anchor within a node's box."""

    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


def _default_if_none(value: Any, default: Any) -> Any:
    return default if value is None else value


# Scene Models
class BaseNode(BaseModel):
    """Fields shared by every scene node."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")

    left: float = Field(0.0, description="Horizontal position of the anchor")
    top: float = Field(0.0, description="Vertical position of the anchor")
    width: float = Field(0.0, description="Box width used for origin resolution")
    height: float = Field(0.0, description="Box height used for origin resolution")
    origin_x: OriginX = Field(OriginX.LEFT, alias="originX")
    origin_y: OriginY = Field(OriginY.TOP, alias="originY")
    scale_x: float = Field(1.0, alias="scaleX")
    scale_y: float = Field(1.0, alias="scaleY")
    angle: float = Field(0.0, description="Clockwise rotation in degrees")

    @field_validator("left", "top", "width", "height", "angle", mode="before")
    @classmethod
    def default_numbers(cls, v: Any) -> Any:
        """Treat null coordinates as zero."""
        return _default_if_none(v, 0.0)

    @field_validator("scale_x", "scale_y", mode="before")
    @classmethod
    def default_scale(cls, v: Any) -> Any:
        """Null or zero scale falls back to 1."""
        return v or 1.0

    @field_validator("origin_x", mode="before")
    @classmethod
    def coerce_origin_x(cls, v: Any) -> OriginX:
        """Unrecognized horizontal origins behave as left."""
        try:
            return OriginX(v)
        except ValueError:
            return OriginX.LEFT

    @field_validator("origin_y", mode="before")
    @classmethod
    def coerce_origin_y(cls, v: Any) -> OriginY:
        """Unrecognized vertical origins behave as top."""
        try:
            return OriginY(v)
        except ValueError:
            return OriginY.TOP

    @property
    def box_width(self) -> float:
        return self.width

    @property
    def box_height(self) -> float:
        return self.height


class IntrinsicBoxNode(BaseNode):
    """Node whose box falls back on its content size when width/height are unset.

    ``width``/``height`` stay ``None`` when unset (or zero) so the renderer can
    use the measured text or the loaded image instead.
    """

    width: Optional[float] = Field(None, description="Box width")
    height: Optional[float] = Field(None, description="Box height")

    @field_validator("width", "height", mode="before")
    @classmethod
    def default_numbers(cls, v: Any) -> Any:
        return v or None

    @field_validator("left", "top", "angle", mode="before")
    @classmethod
    def default_position(cls, v: Any) -> Any:
        return _default_if_none(v, 0.0)

    @property
    def box_width(self) -> float:
        return self.width or 0.0

    @property
    def box_height(self) -> float:
        return self.height or 0.0


class TextNode(IntrinsicBoxNode):
    """Single-line text node (``text`` or ``i-text``)."""

    type: Literal["text", "i-text"] = NodeType.TEXT.value
    text: str = Field("", description="Text content")
    font_size: float = Field(16.0, alias="fontSize")
    font_family: str = Field("Arial", alias="fontFamily")
    font_weight: Union[str, int] = Field("normal", alias="fontWeight")
    fill: str = Field("#000000", description="Text colour")

    @field_validator("text", mode="before")
    @classmethod
    def default_text(cls, v: Any) -> Any:
        return _default_if_none(v, "")

    @field_validator("font_size", mode="before")
    @classmethod
    def default_font_size(cls, v: Any) -> Any:
        return v or 16.0

    @field_validator("font_family", mode="before")
    @classmethod
    def default_font_family(cls, v: Any) -> Any:
        return v or "Arial"

    @field_validator("font_weight", mode="before")
    @classmethod
    def default_font_weight(cls, v: Any) -> Any:
        return v or "normal"

    @field_validator("fill", mode="before")
    @classmethod
    def default_fill(cls, v: Any) -> Any:
        return v or "#000000"


class ImageNode(IntrinsicBoxNode):
    """Raster image node drawn at its box size, or its intrinsic size when unset."""

    type: Literal["image"] = NodeType.IMAGE.value
    src: Optional[str] = Field(None, description="Image resource locator")


class UnknownNode(BaseModel):
    """Node of an unsupported type; its raw fields are kept as extras, unvalidated."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def stringify_type(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)


class GroupNode(BaseNode):
    """Container whose children are positioned relative to its resolved top-left."""

    type: Literal["group"] = NodeType.GROUP.value
    objects: List["SceneNode"] = Field(default_factory=list, description="Child nodes")

    @field_validator("objects", mode="before")
    @classmethod
    def default_objects(cls, v: Any) -> Any:
        return _default_if_none(v, [])


def node_tag(value: Any) -> str:
    """Map a raw node (mapping or model) onto its variant tag."""
    if isinstance(value, dict):
        node_type = value.get("type")
    else:
        node_type = getattr(value, "type", None)

    if node_type == NodeType.GROUP.value:
        return "group"
    if node_type in (NodeType.TEXT.value, NodeType.ITEXT.value):
        return "text"
    if node_type == NodeType.IMAGE.value:
        return "image"
    return "unknown"


SceneNode = Annotated[
    Union[
        Annotated[GroupNode, Tag("group")],
        Annotated[TextNode, Tag("text")],
        Annotated[ImageNode, Tag("image")],
        Annotated[UnknownNode, Tag("unknown")],
    ],
    Discriminator(node_tag),
]

GroupNode.model_rebuild()


class SceneDocument(BaseModel):
    """Complete scene document: canvas properties plus ordered nodes."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")

    width: float = Field(800, gt=0, description="Canvas width in pixels")
    height: float = Field(700, gt=0, description="Canvas height in pixels")
    background_color: str = Field("white", alias="backgroundColor")
    objects: List[SceneNode] = Field(..., description="Nodes in paint order")

    @field_validator("width", mode="before")
    @classmethod
    def default_width(cls, v: Any) -> Any:
        return v or 800

    @field_validator("height", mode="before")
    @classmethod
    def default_height(cls, v: Any) -> Any:
        return v or 700

    @field_validator("background_color", mode="before")
    @classmethod
    def default_background(cls, v: Any) -> Any:
        return v or "white"

    def iter_nodes(self):
        """Yield every node depth-first in paint order."""
        stack = list(reversed(self.objects))
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, GroupNode):
                stack.extend(reversed(node.objects))


# Parsing Results
class ParseResult(BaseModel):
    """Result of scene parsing operation."""

    success: bool = Field(..., description="Whether parsing succeeded")
    document: Optional[SceneDocument] = Field(None, description="Parsed document")
    errors: List[str] = Field(default_factory=list, description="Parsing errors")
    warnings: List[str] = Field(default_factory=list, description="Parsing warnings")
    processing_time: Optional[float] = Field(None, description="Parsing time in seconds")


# Rendering Models
class RenderOptions(BaseModel):
    """Options for rendering a scene to PNG."""

    device_scale_factor: float = Field(1.0, gt=0, le=3.0, description="Device pixel ratio")
    optimize_png: bool = Field(True, description="Optimize PNG file size")
    background_color: Optional[str] = Field(None, description="Background color override")


class PNGResult(BaseModel):
    """Result of PNG generation."""

    png_data: bytes = Field(..., description="PNG binary data", exclude=True)
    base64_data: str = Field(..., description="Base64 encoded PNG data")
    width: int = Field(..., description="Image width")
    height: int = Field(..., description="Image height")
    file_size: int = Field(..., description="File size in bytes")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Generation metadata")


# API Response Models
class RenderResponse(BaseModel):
    """Response model for a persisted render."""

    success: bool = Field(..., description="Whether rendering succeeded")
    message: str = Field(..., description="Human readable status")
    filename: str = Field(..., description="Stored file name")
    filepath: str = Field(..., description="Stored file path")
    width: int = Field(..., description="Image width")
    height: int = Field(..., description="Image height")
    file_size: int = Field(..., description="File size in bytes")
    method: str = Field("pillow", description="Rendering method")
    processing_time: float = Field(..., description="Total processing time")


class SceneValidationResponse(BaseModel):
    """Response model for scene validation."""

    valid: bool = Field(..., description="Whether the scene is valid")
    errors: List[str] = Field(default_factory=list, description="Validation errors")
    warnings: List[str] = Field(default_factory=list, description="Validation warnings")


class HealthStatus(BaseModel):
    """Health check status."""

    status: Literal["OK", "degraded"] = Field(..., description="Overall status")
    method: str = Field("pillow", description="Rendering method")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp"
    )
    version: str = Field(..., description="Application version")
    storage: bool = Field(..., description="Output directory is writable")


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Any] = Field(None, description="Additional error details")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Error timestamp"
    )
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
