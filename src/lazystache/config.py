"""Rendering configuration and its YAML loader."""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class ContentType(str, Enum):
    """Output format, which decides how unsafe text is escaped."""

    HTML = "html"
    TEXT = "text"


class MissingPolicy(str, Enum):
    """What happens when a tag refers to a name no scope defines."""

    EMPTY = "empty"  # render nothing
    FAIL = "fail"  # raise UnresolvedIdentifierError


class RenderConfig(BaseModel):
    """Settings shared by the template engine and the rendering engine.

    Attributes:
        content_type: ``html`` escapes unsafe text with HTML entities, ``text``
            inserts it unchanged.
        missing: Policy for unresolved identifiers.
        standard_library: Register the built-in filters (``uppercase``,
            ``each``, ``HTML.escape``...) in the root context.
        cache_size: Number of compiled templates kept by the template engine.
        template_name: Name reported in error locations.

    Example:
        RenderConfig(content_type="text", missing="fail")
    """

    content_type: ContentType = ContentType.HTML
    missing: MissingPolicy = MissingPolicy.EMPTY
    standard_library: bool = True
    cache_size: int = Field(default=128, ge=0)
    template_name: Optional[str] = None


def load_render_config(file_path: Union[str, Path]) -> RenderConfig:
    """Load and validate a rendering configuration from a YAML file.

    Args:
        file_path: Path to a ``.yaml`` or ``.yml`` file

    Returns:
        Validated RenderConfig

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not valid YAML or does not match the schema
    """
    path = Path(file_path)

    if path.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError(
            f"Invalid file extension: {path.suffix}. "
            f"Suggestion: Use .yaml or .yml extension for configuration files."
        )

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(
            f"Configuration in {path} must be a mapping, got {type(data).__name__}"
        )

    try:
        config = RenderConfig(**data)
    except ValidationError as e:
        raise ValueError(f"Configuration validation failed for {path}:\n{e}") from e

    logger.debug(f"Loaded render config from {path}: {config}")
    return config
