"""Template tree and expression nodes produced by the parser."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class SourceLocation:
    """Position of a tag in its template source."""

    line: int
    column: int = 1
    template_name: Optional[str] = None

    def __str__(self) -> str:
        if self.template_name:
            return f"{self.template_name} line {self.line}"
        return f"line {self.line}"


class TagKind(Enum):
    """Kinds of template placeholders."""

    VARIABLE = "variable"
    SECTION = "section"
    INVERTED_SECTION = "inverted_section"


# Expressions


@dataclass(frozen=True)
class Identifier:
    """A bare name such as ``name``, looked up through the context."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ImplicitIterator:
    """The ``.`` expression: the innermost pushed value."""

    def __str__(self) -> str:
        return "."


@dataclass(frozen=True)
class ScopedExpression:
    """A key applied to the value of another expression: ``base.key``."""

    base: "Expression"
    key: str

    def __str__(self) -> str:
        if isinstance(self.base, ImplicitIterator):
            return f".{self.key}"
        return f"{self.base}.{self.key}"


@dataclass(frozen=True)
class FilterCall:
    """A filter applied to one or more argument expressions: ``f(a, b)``."""

    filter: "Expression"
    arguments: Tuple["Expression", ...]

    def __str__(self) -> str:
        args = ", ".join(str(argument) for argument in self.arguments)
        return f"{self.filter}({args})"


Expression = Union[Identifier, ImplicitIterator, ScopedExpression, FilterCall]


# Template tree


@dataclass(frozen=True)
class TextNode:
    """Literal template text, inserted verbatim."""

    text: str


@dataclass(frozen=True)
class VariableNode:
    """A ``{{expression}}`` tag; ``escaped`` is False for ``{{{…}}}`` and ``{{&…}}``."""

    expression: Expression
    escaped: bool = True
    location: SourceLocation = field(default_factory=lambda: SourceLocation(1))

    @property
    def kind(self) -> TagKind:
        return TagKind.VARIABLE


@dataclass(frozen=True)
class SectionNode:
    """A ``{{#expression}}…{{/expression}}`` block, or ``{{^…}}`` when inverted."""

    expression: Expression
    children: Tuple["Node", ...] = ()
    inverted: bool = False
    location: SourceLocation = field(default_factory=lambda: SourceLocation(1))
    inner_source: str = ""

    @property
    def kind(self) -> TagKind:
        return TagKind.INVERTED_SECTION if self.inverted else TagKind.SECTION


Node = Union[TextNode, VariableNode, SectionNode]
TagNode = Union[VariableNode, SectionNode]


def iter_expressions(expression: Expression):
    """Yield ``expression`` and every sub-expression, depth first."""
    yield expression
    if isinstance(expression, ScopedExpression):
        yield from iter_expressions(expression.base)
    elif isinstance(expression, FilterCall):
        yield from iter_expressions(expression.filter)
        for argument in expression.arguments:
            yield from iter_expressions(argument)


def iter_tags(nodes: Tuple[Node, ...]):
    """Yield every tag node of a template tree in source order."""
    for node in nodes:
        if isinstance(node, VariableNode):
            yield node
        elif isinstance(node, SectionNode):
            yield node
            yield from iter_tags(node.children)
