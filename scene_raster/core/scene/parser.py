"""
Scene Parser
============

Parses scene documents from JSON, YAML or already-decoded mappings into
``SceneDocument`` models. Structural validation runs before conversion so that
invalid input never reaches the renderer.
"""

from typing import Dict, List, Any, Mapping, Optional
import json
import yaml  # type: ignore[import-untyped]
import time
from abc import ABC, abstractmethod
from cerberus import Validator  # type: ignore[import-untyped]
from pydantic import ValidationError

from scene_raster.config.logging import get_logger
from scene_raster.config.settings import get_settings
from scene_raster.models.schemas import NodeType, ParseResult, SceneDocument

logger = get_logger(__name__)

INVALID_OBJECTS_MESSAGE = "Invalid canvas data. Expected JSON with 'objects' array."
KNOWN_NODE_TYPES = frozenset(t.value for t in NodeType)


class SceneParseError(Exception):
    """Exception raised when scene parsing fails."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class SceneValidator:
    """Structural scene validation using Cerberus schemas."""

    def __init__(self) -> None:
        self.logger: Any = logger.bind(component="validator")
        self._setup_schemas()

    def _setup_schemas(self) -> None:
        """Setup validation schemas."""
        settings = get_settings()

        number = {"type": "number", "nullable": True}

        self.node_schema: Dict[str, Any] = {
            "left": number,
            "top": number,
            "width": {**number, "max": settings.max_width},
            "height": {**number, "max": settings.max_height},
            "scaleX": number,
            "scaleY": number,
            "angle": number,
            "originX": {"type": "string", "nullable": True},
            "originY": {"type": "string", "nullable": True},
            "text": {"type": "string", "nullable": True},
            "fontSize": {**number, "max": settings.max_font_size},
            "fontFamily": {"type": "string", "nullable": True},
            "fontWeight": {"type": ["string", "integer"], "nullable": True},
            "fill": {"type": "string", "nullable": True},
            "src": {"type": "string", "nullable": True},
            "objects": {"type": "list", "nullable": True, "schema": {"type": "dict"}},
        }

        self.document_schema: Dict[str, Any] = {
            "width": {"type": "number", "nullable": True, "min": 0, "max": settings.max_width},
            "height": {"type": "number", "nullable": True, "min": 0, "max": settings.max_height},
            "backgroundColor": {"type": "string", "nullable": True},
            "objects": {
                "type": "list",
                "required": True,
                "schema": {"type": "dict"},
            },
        }

    def validate_document(self, data: Mapping[str, Any]) -> tuple[bool, List[str], List[str]]:
        """
        Validate scene document structure.

        Args:
            data: Document data to validate

        Returns:
            Tuple of (is_valid, errors, warnings)
        """
        if not isinstance(data, Mapping):
            return False, [f"Scene must be an object, got {type(data).__name__}"], []

        validator = Validator(self.document_schema)  # type: ignore[misc]
        validator.allow_unknown = True

        is_valid = validator.validate(dict(data))
        errors: List[str] = []
        warnings: List[str] = []

        if not is_valid:
            errors.extend(self._format_validation_errors(validator.errors))

        if is_valid:
            # Node fields depend on the node type, so nodes are checked one by one
            for i, node in enumerate(data["objects"]):
                node_errors, node_warnings = self._validate_node(node, f"objects[{i}]")
                errors.extend(node_errors)
                warnings.extend(node_warnings)

        width = data.get("width") or 0
        height = data.get("height") or 0
        if isinstance(width, (int, float)) and isinstance(height, (int, float)):
            if width > 1920 or height > 1080:
                warnings.append(f"Large canvas size ({width}x{height}) may impact performance")

        return is_valid and not errors, errors, warnings

    def _format_validation_errors(self, errors: Any, path: str = "") -> List[str]:
        """Format Cerberus validation errors into readable messages."""
        formatted_errors: List[str] = []

        for field, error_info in errors.items():
            current_path = f"{path}.{field}" if path else str(field)

            if isinstance(error_info, list):
                for error in error_info:
                    if isinstance(error, dict):
                        formatted_errors.extend(self._format_validation_errors(error, current_path))
                    else:
                        formatted_errors.append(f"{current_path}: {error}")
            elif isinstance(error_info, dict):
                formatted_errors.extend(self._format_validation_errors(error_info, current_path))

        return formatted_errors

    def _validate_node(self, node: Mapping[str, Any], path: str) -> tuple[List[str], List[str]]:
        """Validate a node and its descendants."""
        errors: List[str] = []
        warnings: List[str] = []

        node_type = node.get("type")
        if not isinstance(node_type, str) or node_type not in KNOWN_NODE_TYPES:
            # Unsupported nodes are skipped, so their fields are never checked
            warnings.append(f"{path}: Unsupported node type '{node_type}' will be skipped")
            return errors, warnings

        validator = Validator(self.node_schema)  # type: ignore[misc]
        validator.allow_unknown = True
        if not validator.validate(dict(node)):
            errors.extend(self._format_validation_errors(validator.errors, path))
            return errors, warnings

        if node_type == NodeType.IMAGE.value and not node.get("src"):
            warnings.append(f"{path}: Image node has no 'src' and will be skipped")

        for i, child in enumerate(node.get("objects") or []):
            child_errors, child_warnings = self._validate_node(child, f"{path}.objects[{i}]")
            errors.extend(child_errors)
            warnings.extend(child_warnings)

        return errors, warnings


def build_document(data: Mapping[str, Any]) -> SceneDocument:
    """Convert validated scene data into a ``SceneDocument``.

    Missing (or zero) canvas properties take the configured defaults.
    """
    settings = get_settings()
    values = dict(data)
    values["width"] = values.get("width") or settings.default_width
    values["height"] = values.get("height") or settings.default_height
    values["backgroundColor"] = values.get("backgroundColor") or settings.default_background

    try:
        return SceneDocument.model_validate(values)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise SceneParseError("Scene conversion failed", errors) from e


class BaseSceneParser(ABC):
    """Abstract base class for scene parsers."""

    def __init__(self) -> None:
        self.validator = SceneValidator()

    @abstractmethod
    def load(self, content: str) -> Any:
        """Decode raw content into Python data."""
        pass

    def parse(self, content: str) -> ParseResult:
        """
        Parse scene content into a structured SceneDocument.

        Args:
            content: Raw scene content as string

        Returns:
            ParseResult containing parsed document or errors
        """
        start_time = time.time()

        try:
            raw_data = self.load(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            error_msg = f"Invalid syntax: {e}"
            self.logger.error("Scene decoding failed", error=error_msg)
            return ParseResult(
                success=False,
                errors=[error_msg],
                processing_time=time.time() - start_time,
            )

        result = parse_scene_data(raw_data, self.validator)
        result.processing_time = time.time() - start_time
        return result

    def validate_syntax(self, content: str) -> bool:
        """Validate syntax without full parsing."""
        try:
            self.load(content)
            return True
        except (json.JSONDecodeError, yaml.YAMLError):
            return False


class JSONSceneParser(BaseSceneParser):
    """JSON scene parser implementation."""

    def __init__(self) -> None:
        super().__init__()
        self.logger: Any = logger.bind(parser="json")

    def load(self, content: str) -> Any:
        return json.loads(content)


class YAMLSceneParser(BaseSceneParser):
    """YAML scene parser implementation."""

    def __init__(self) -> None:
        super().__init__()
        self.logger: Any = logger.bind(parser="yaml")

    def load(self, content: str) -> Any:
        return yaml.safe_load(content)


class SceneParserFactory:
    """Factory for creating scene parsers based on content type."""

    _parsers = {
        "json": JSONSceneParser,
        "yaml": YAMLSceneParser,
    }

    @classmethod
    def create_parser(cls, parser_type: str) -> BaseSceneParser:
        """
        Create a scene parser instance.

        Raises:
            ValueError: If parser type is not supported
        """
        if parser_type not in cls._parsers:
            raise ValueError(f"Unsupported parser type: {parser_type}")

        return cls._parsers[parser_type]()

    @classmethod
    def detect_parser_type(cls, content: str) -> str:
        """Detect parser type from content."""
        content = content.strip()
        if content.startswith(("{", "[")):
            return "json"
        return "yaml"


def parse_scene_data(
    data: Any, validator: Optional[SceneValidator] = None
) -> ParseResult:
    """
    Validate and convert already-decoded scene data.

    Args:
        data: Decoded scene (e.g. a JSON request body)
        validator: Optional validator instance to reuse

    Returns:
        ParseResult containing parsed document or errors
    """
    start_time = time.time()
    validator = validator or SceneValidator()

    if not isinstance(data, Mapping) or not isinstance(data.get("objects"), list):
        return ParseResult(
            success=False,
            errors=[INVALID_OBJECTS_MESSAGE],
            processing_time=time.time() - start_time,
        )

    is_valid, errors, warnings = validator.validate_document(data)
    if not is_valid:
        logger.info("Scene validation failed", error_count=len(errors))
        return ParseResult(
            success=False,
            errors=errors,
            warnings=warnings,
            processing_time=time.time() - start_time,
        )

    try:
        document = build_document(data)
    except SceneParseError as e:
        return ParseResult(
            success=False,
            errors=e.errors,
            warnings=warnings,
            processing_time=time.time() - start_time,
        )

    return ParseResult(
        success=True,
        document=document,
        warnings=warnings,
        processing_time=time.time() - start_time,
    )


def parse_scene(content: str, parser_type: Optional[str] = None) -> ParseResult:
    """
    Parse scene content using the appropriate parser.

    Args:
        content: Raw scene content
        parser_type: Optional parser type override ("json", "yaml")

    Returns:
        ParseResult containing parsed document or errors
    """
    if not content or not content.strip():
        return ParseResult(
            success=False, errors=["Empty scene content provided"], processing_time=0.0
        )

    if not parser_type:
        parser_type = SceneParserFactory.detect_parser_type(content)

    try:
        parser = SceneParserFactory.create_parser(parser_type)
    except ValueError as e:
        return ParseResult(success=False, errors=[str(e)], processing_time=0.0)
    return parser.parse(content)


def load_scene(data: Any) -> SceneDocument:
    """
    Parse decoded scene data or raise.

    Raises:
        SceneParseError: If the scene is invalid
    """
    result = parse_scene_data(data)
    if not result.success or result.document is None:
        raise SceneParseError("; ".join(result.errors), result.errors)
    return result.document
