"""Template engine facade: compilation cache, filters and rendering."""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from .config import MissingPolicy, RenderConfig
from .context import Context
from .engine import RenderingEngine
from .errors import TemplateError, TemplateSyntaxError
from .filters import as_filter
from .library import register_standard_filters
from .nodes import FilterCall, Identifier, Node, iter_expressions, iter_tags
from .parser import TemplateParser
from .values import MISSING

logger = logging.getLogger(__name__)


class Template:
    """A compiled template bound to the engine that compiled it."""

    def __init__(self, source: str, nodes: Tuple[Node, ...], engine: "TemplateEngine") -> None:
        self.source = source
        self.nodes = nodes
        self.engine = engine

    def render(self, data: Any = None, strict: Optional[bool] = None, **kwargs: Any) -> str:
        """Render with ``data`` (and keyword values layered on top of it).

        Args:
            data: Mapping or object holding template values
            strict: Override the configured missing policy for this call
            **kwargs: Extra values, shadowing those of ``data``

        Returns:
            Rendered template string
        """
        context = self.engine.root_context()
        if data is not None:
            context = context.push(data)
        if kwargs:
            context = context.push(kwargs)
        return self.engine.renderer_for(strict).render(self.nodes, context)

    def __repr__(self) -> str:
        preview = self.source if len(self.source) <= 40 else self.source[:37] + "..."
        return f"Template({preview!r})"


class TemplateEngine:
    """Compiles and renders Mustache templates with filters."""

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Initialize the template engine.

        Args:
            config: Rendering configuration (defaults if None)
            filters: Filters available to every template, by name. Plain
                callables are wrapped as generic filters.
        """
        self.config = config or RenderConfig()
        self.parser = TemplateParser(self.config.template_name)
        self.cache_size = self.config.cache_size

        self.filters: Dict[str, Any] = {}
        if self.config.standard_library:
            register_standard_filters(self.filters)
        for name, filter_ in (filters or {}).items():
            self.register_filter(name, filter_)

        self._renderers = {
            policy: RenderingEngine(self.config.model_copy(update={"missing": policy}))
            for policy in MissingPolicy
        }

        # Cache for compiled templates, shared by rendering threads
        self._template_cache: Dict[str, Template] = {}
        self._cache_lock = threading.Lock()

    def register_filter(self, name: str, filter_: Any) -> None:
        """Make a filter available to every template under ``name``.

        Mappings of filters are kept as namespaces, called as ``name.key(x)``.
        """
        if isinstance(filter_, Mapping):
            self.filters[name] = {key: as_filter(value) for key, value in filter_.items()}
        else:
            self.filters[name] = as_filter(filter_)

    def root_context(self, filters: Optional[Mapping[str, Any]] = None) -> Context:
        """Create the root context holding the engine filters and ``filters``."""
        context = Context.root(filters=self.filters)
        if filters:
            context = context.with_filters(filters)
        return context

    def renderer_for(self, strict: Optional[bool] = None) -> RenderingEngine:
        """Return the rendering engine for the configured or overridden policy."""
        if strict is None:
            return self._renderers[self.config.missing]
        return self._renderers[MissingPolicy.FAIL if strict else MissingPolicy.EMPTY]

    def compile_template(self, template_string: str) -> Template:
        """Compile a template string with caching.

        Args:
            template_string: The template string to compile

        Returns:
            Compiled Template

        Raises:
            TemplateSyntaxError: If template syntax is invalid
        """
        with self._cache_lock:
            cached = self._template_cache.get(template_string)
        if cached is not None:
            return cached

        nodes = self.parser.parse(template_string)
        template = Template(template_string, nodes, self)

        if self.cache_size > 0:
            with self._cache_lock:
                if template_string in self._template_cache:
                    return self._template_cache[template_string]
                if len(self._template_cache) >= self.cache_size:
                    # Remove oldest entry (simple FIFO)
                    oldest_key = next(iter(self._template_cache))
                    del self._template_cache[oldest_key]
                self._template_cache[template_string] = template

        logger.debug(f"Compiled template with {len(nodes)} top-level nodes")
        return template

    def render(
        self, template_string: str, data: Any = None, strict: Optional[bool] = None
    ) -> str:
        """Render a template with the given data.

        Args:
            template_string: The template string
            data: Mapping or object of template values
            strict: Raise on unresolved identifiers (None keeps the config policy)

        Returns:
            Rendered template string

        Raises:
            TemplateSyntaxError: If template syntax is invalid
            UnresolvedIdentifierError: If strict and a name is undefined
            FilterInvocationError: If a filter fails
        """
        return self.compile_template(template_string).render(data, strict=strict)

    def extract_variables(self, template_string: str) -> Set[str]:
        """Extract the top-level names a template reads, filters excluded.

        Args:
            template_string: The template string to analyze

        Returns:
            Set of variable names used in template
        """
        variables, _ = self._extract_names(self.parser.parse(template_string))
        return variables

    def extract_filters(self, template_string: str) -> Set[str]:
        """Extract the names of the filters a template calls, dotted if scoped."""
        _, filters = self._extract_names(self.parser.parse(template_string))
        return filters

    @staticmethod
    def _extract_names(nodes: Tuple[Node, ...]) -> Tuple[Set[str], Set[str]]:
        variables: Set[str] = set()
        filters: Set[str] = set()
        for tag in iter_tags(nodes):
            filter_expressions = set()
            for expression in iter_expressions(tag.expression):
                if isinstance(expression, FilterCall):
                    filters.add(str(expression.filter))
                    filter_expressions.update(iter_expressions(expression.filter))
            for expression in iter_expressions(tag.expression):
                if isinstance(expression, Identifier) and expression not in filter_expressions:
                    variables.add(expression.name)
        return variables, filters

    def validate_template(self, template_string: str) -> List[str]:
        """Validate template syntax and filter references.

        Args:
            template_string: The template to validate

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not template_string or not template_string.strip():
            errors.append("Template cannot be empty")
            return errors

        try:
            template = self.compile_template(template_string)
        except TemplateSyntaxError as e:
            errors.append(f"Syntax error: {e}")
            return errors

        for name in self.unknown_filters(template.nodes):
            errors.append(f"Unknown filter '{name}'")

        return errors

    def unknown_filters(self, nodes: Tuple[Node, ...]) -> List[str]:
        """Return the called filter names that the root context does not define."""
        _, filters = self._extract_names(nodes)
        context = self.root_context()
        return [
            name
            for name in sorted(filters)
            if self._lookup_dotted(context, name) is MISSING
        ]

    @staticmethod
    def _lookup_dotted(context: Context, dotted_name: str) -> Any:
        head, *rest = dotted_name.split(".")
        value = context.lookup(head)
        for key in rest:
            if not isinstance(value, Mapping) or key not in value:
                return MISSING
            value = value[key]
        return value

    def render_batch(
        self,
        template_string: str,
        contexts: List[Any],
        strict: Optional[bool] = None,
    ) -> List[str]:
        """Render a template with multiple data contexts.

        Args:
            template_string: The template string
            contexts: List of data mappings
            strict: Raise error on undefined variables

        Returns:
            List of rendered strings; failures are reported as ``ERROR: ...``
        """
        template = self.compile_template(template_string)
        results = []

        for data in contexts:
            try:
                results.append(template.render(data, strict=strict))
            except TemplateError as e:
                # Store error message in result
                results.append(f"ERROR: {str(e)}")

        return results
