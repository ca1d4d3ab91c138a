"""lazystache - Mustache-style rendering with lazy, composable filters."""

from .config import ContentType, MissingPolicy, RenderConfig, load_render_config
from .context import Context, Scope
from .engine import RenderingEngine, Tag, TagState
from .errors import (
    FilterInvocationError,
    RenderingError,
    TemplateError,
    TemplateSyntaxError,
    TypeMismatchError,
    UnresolvedIdentifierError,
)
from .evaluator import ExpressionEvaluator
from .filters import (
    Filter,
    GenericFilter,
    StringFilter,
    VariadicFilter,
    filter_with,
    string_filter,
    variadic_filter,
)
from .library import standard_library
from .parser import TemplateParser, parse_expression, parse_template
from .renderable import (
    DeferredRenderable,
    EagerRenderable,
    Renderable,
    Rendering,
    render_value,
    renderable,
)
from .renderer import BatchRenderer, RenderResult
from .template import Template, TemplateEngine
from .validator import TemplateValidator, ValidationLevel, ValidationResult
from .values import MISSING

__version__ = "0.1.0"

__all__ = [
    # Rendering core
    "RenderingEngine",
    "Tag",
    "TagState",
    "ExpressionEvaluator",
    "Context",
    "Scope",
    "MISSING",
    # Renderables
    "Renderable",
    "Rendering",
    "EagerRenderable",
    "DeferredRenderable",
    "renderable",
    "render_value",
    # Filters
    "Filter",
    "GenericFilter",
    "StringFilter",
    "VariadicFilter",
    "filter_with",
    "string_filter",
    "variadic_filter",
    "standard_library",
    # Templates
    "Template",
    "TemplateEngine",
    "TemplateParser",
    "parse_template",
    "parse_expression",
    "BatchRenderer",
    "RenderResult",
    "TemplateValidator",
    "ValidationLevel",
    "ValidationResult",
    # Configuration
    "RenderConfig",
    "ContentType",
    "MissingPolicy",
    "load_render_config",
    # Errors
    "TemplateError",
    "TemplateSyntaxError",
    "UnresolvedIdentifierError",
    "FilterInvocationError",
    "RenderingError",
    "TypeMismatchError",
]
