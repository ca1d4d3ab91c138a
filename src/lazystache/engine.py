"""Rendering engine: turns a template tree and a context into text."""

import logging
from enum import Enum
from typing import Any, Iterable, List, Optional

from .config import MissingPolicy, RenderConfig
from .context import Context
from .errors import TemplateError, UnresolvedIdentifierError
from .escaping import Escaper, get_escaper
from .evaluator import ExpressionEvaluator
from .nodes import (
    Expression,
    Node,
    SectionNode,
    SourceLocation,
    TagKind,
    TagNode,
    TextNode,
    VariableNode,
)
from .renderable import Renderable, Rendering, render_value
from .values import MISSING, is_sequence, is_truthy

logger = logging.getLogger(__name__)


class TagState(Enum):
    """Progress of a single tag occurrence through the engine."""

    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    RENDERING = "rendering"
    RENDERED = "rendered"
    FAILED = "failed"


class Tag:
    """A tag occurrence, as seen by renderable objects.

    A new Tag is created each time the engine meets a tag node, so nothing
    is cached between occurrences.
    """

    def __init__(self, node: TagNode, engine: "RenderingEngine") -> None:
        self.node = node
        self.engine = engine
        self.state = TagState.UNRESOLVED

    @property
    def kind(self) -> TagKind:
        return self.node.kind

    @property
    def location(self) -> SourceLocation:
        return self.node.location

    @property
    def expression(self) -> Expression:
        return self.node.expression

    @property
    def escaped(self) -> bool:
        # Section content is escaped tag by tag, so sections count as escaped
        return getattr(self.node, "escaped", True)

    @property
    def inner_source(self) -> str:
        """Template source between the opening and closing section tags."""
        return getattr(self.node, "inner_source", "")

    def render_content(self, context: Context) -> Rendering:
        """Render the content of a section in ``context``.

        The result is already escaped, hence safe. Variable tags have no
        content and render an empty string.
        """
        if not isinstance(self.node, SectionNode):
            return Rendering("", True)
        return Rendering(self.engine.render_nodes(self.node.children, context), True)

    def render_value(self, value: Any, context: Context) -> Rendering:
        """Render ``value`` the way this tag would, before escaping.

        Variable tags use the default resolution. Sections render their content
        for ``value``: pushed, iterated or skipped depending on its truthiness.
        Section content is escaped tag by tag, so that rendering is safe.
        """
        if isinstance(self.node, SectionNode):
            return Rendering(self.engine.render_section(self, value, context), True)
        return render_value(value, self, context)

    def escape(self, text: str) -> str:
        """Escape ``text`` the way this tag would, or leave it alone if unescaped."""
        if not self.escaped:
            return text
        return self.engine.escape(text)

    def __repr__(self) -> str:
        return f"Tag({self.kind.value} {self.expression} at {self.location})"


class RenderingEngine:
    """Renders template trees.

    The engine keeps no state between calls: the same engine, template tree and
    filters may serve concurrent renders on several threads.
    """

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        escaper: Optional[Escaper] = None,
    ) -> None:
        """Initialize the rendering engine.

        Args:
            config: Rendering configuration (defaults if None)
            escaper: Escaper overriding the one of ``config.content_type``
        """
        self.config = config or RenderConfig()
        self.evaluator = ExpressionEvaluator(self.config.missing)
        self.escape: Escaper = escaper or get_escaper(self.config.content_type)

    def render(self, nodes: Iterable[Node], context: Context) -> str:
        """Render a template tree.

        Args:
            nodes: Template tree from the parser
            context: Root context

        Returns:
            The rendered text

        Raises:
            TemplateError: On the first failure. No partial output is returned.
        """
        return self.render_nodes(nodes, context)

    def render_nodes(self, nodes: Iterable[Node], context: Context) -> str:
        buffer: List[str] = []
        for node in nodes:
            if isinstance(node, TextNode):
                buffer.append(node.text)
            elif isinstance(node, VariableNode):
                buffer.append(self._render_tag(node, context))
            elif isinstance(node, SectionNode):
                buffer.append(self._render_tag(node, context))
            else:
                raise TypeError(f"Unknown template node: {node!r}")
        return "".join(buffer)

    def _render_tag(self, node: TagNode, context: Context) -> str:
        tag = Tag(node, self)
        try:
            value = self._resolve(tag, context)
            tag.state = TagState.RENDERING
            if isinstance(node, SectionNode):
                text = self.render_section(tag, value, context)
            else:
                text = self._render_variable(tag, value, context)
        except TemplateError as e:
            tag.state = TagState.FAILED
            if e.location is None:
                e.location = node.location
            logger.debug(f"Failed to render {tag}: {e.message}")
            raise
        tag.state = TagState.RENDERED
        return text

    def _resolve(self, tag: Tag, context: Context) -> Any:
        tag.state = TagState.RESOLVING
        value = self.evaluator.evaluate(tag.expression, context)
        if value is MISSING and self.config.missing is MissingPolicy.FAIL:
            raise UnresolvedIdentifierError(str(tag.expression))
        tag.state = TagState.RESOLVED
        return value

    def _insert(self, rendering: Rendering, tag: Tag) -> str:
        # The only place where unsafe text is escaped
        if rendering.safe or not tag.escaped:
            return rendering.text
        return self.escape(rendering.text)

    def _render_variable(self, tag: Tag, value: Any, context: Context) -> str:
        # Items are inserted one by one so that safe items stay unescaped
        if is_sequence(value) and not isinstance(value, Renderable):
            return "".join(self._render_variable(tag, item, context) for item in value)
        return self._insert(render_value(value, tag, context), tag)

    def render_section(self, tag: Tag, value: Any, context: Context) -> str:
        """Render the content of a section tag for ``value``, escaped."""
        node: SectionNode = tag.node

        if node.inverted:
            if is_truthy(value):
                return ""
            return self.render_nodes(node.children, context)

        if is_sequence(value):
            return "".join(self._render_section_item(tag, item, context) for item in value)

        if isinstance(value, Renderable) or is_truthy(value):
            return self._render_section_item(tag, value, context)

        return ""

    def _render_section_item(self, tag: Tag, value: Any, context: Context) -> str:
        # Renderables render the section themselves, usually via tag.render_content
        if isinstance(value, Renderable):
            return self._insert(render_value(value, tag, context), tag)
        return self.render_nodes(tag.node.children, context.push(value))
