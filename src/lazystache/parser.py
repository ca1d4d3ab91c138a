"""Parser for Mustache template source with filter expressions."""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import TemplateSyntaxError
from .nodes import (
    Expression,
    FilterCall,
    Identifier,
    ImplicitIterator,
    Node,
    ScopedExpression,
    SectionNode,
    SourceLocation,
    TextNode,
    VariableNode,
)

# {{{name}}} must be tried before {{name}}
TAG_PATTERN = re.compile(r"\{\{\{(.*?)\}\}\}|\{\{(.*?)\}\}", re.DOTALL)

_EXPRESSION_TOKEN = re.compile(r"\s*(?:([().,])|([^\s().,{}]+))")

# Tags that vanish with their line when they stand alone on it
_STANDALONE_SIGILS = frozenset("#^/!")


class _ExpressionParser:
    """Recursive descent parser for tag expressions.

    Grammar::

        expression := primary ( "." NAME | "(" expression ( "," expression )* ")" )*
        primary    := NAME | "." | "." NAME
    """

    def __init__(self, source: str, location: SourceLocation) -> None:
        self.source = source
        self.location = location
        self.tokens = self._tokenize(source)
        self.position = 0

    def _tokenize(self, source: str) -> List[Tuple[str, str]]:
        tokens = []
        position = 0
        stripped = source.rstrip()
        while position < len(stripped):
            match = _EXPRESSION_TOKEN.match(stripped, position)
            if match is None:
                self._fail(f"Unexpected character at offset {position}")
            punctuation, name = match.groups()
            tokens.append(("punct", punctuation) if punctuation else ("name", name))
            position = match.end()
        return tokens

    def _fail(self, message: str) -> None:
        raise TemplateSyntaxError(
            f"Invalid expression '{self.source.strip()}': {message}", self.location
        )

    def _peek(self) -> Optional[Tuple[str, str]]:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def _next(self) -> Tuple[str, str]:
        token = self._peek()
        if token is None:
            self._fail("unexpected end of expression")
        self.position += 1
        return token

    def _expect_name(self) -> str:
        kind, text = self._next()
        if kind != "name":
            self._fail(f"expected a name, got '{text}'")
        return text

    def parse(self) -> Expression:
        if not self.tokens:
            self._fail("empty expression")
        expression = self._parse_expression()
        if self._peek() is not None:
            self._fail(f"unexpected '{self._peek()[1]}'")
        return expression

    def _parse_expression(self) -> Expression:
        expression = self._parse_primary()
        while True:
            token = self._peek()
            if token == ("punct", "."):
                self.position += 1
                expression = ScopedExpression(expression, self._expect_name())
            elif token == ("punct", "("):
                self.position += 1
                expression = FilterCall(expression, self._parse_arguments())
            else:
                return expression

    def _parse_primary(self) -> Expression:
        kind, text = self._next()
        if kind == "name":
            return Identifier(text)
        if text != ".":
            self._fail(f"unexpected '{text}'")
        token = self._peek()
        if token is not None and token[0] == "name":
            self.position += 1
            return ScopedExpression(ImplicitIterator(), token[1])
        return ImplicitIterator()

    def _parse_arguments(self) -> Tuple[Expression, ...]:
        if self._peek() == ("punct", ")"):
            self._fail("filters need at least one argument")
        arguments = [self._parse_expression()]
        while True:
            kind, text = self._next()
            if text == ")":
                return tuple(arguments)
            if text != ",":
                self._fail(f"expected ',' or ')', got '{text}'")
            arguments.append(self._parse_expression())


def parse_expression(source: str, location: Optional[SourceLocation] = None) -> Expression:
    """Parse the inside of a tag, such as ``uppercase(user.name)``."""
    return _ExpressionParser(source, location or SourceLocation(1)).parse()


@dataclass
class _OpenSection:
    expression: Expression
    inverted: bool
    location: SourceLocation
    content_start: int
    children: List[Node] = field(default_factory=list)


class TemplateParser:
    """Builds a template tree from Mustache source.

    Supported tags: ``{{name}}``, ``{{{name}}}``, ``{{&name}}``, sections
    ``{{#name}}…{{/name}}``, inverted sections ``{{^name}}…{{/name}}`` and
    comments ``{{! … }}``. Partials and delimiter changes are left to the
    surrounding loader and rejected here.
    """

    def __init__(self, template_name: Optional[str] = None) -> None:
        self.template_name = template_name

    def parse(self, source: str) -> Tuple[Node, ...]:
        root: List[Node] = []
        stack: List[_OpenSection] = []
        position = 0

        def children() -> List[Node]:
            return stack[-1].children if stack else root

        for match in TAG_PATTERN.finditer(source):
            start, end = match.span()
            if start < position:
                continue
            triple = match.group(1) is not None
            content = (match.group(1) if triple else match.group(2)).strip()
            location = self._location(source, start)
            sigil = "" if triple else content[:1]

            text_end, next_position = start, end
            if sigil in _STANDALONE_SIGILS:
                bounds = self._standalone_bounds(source, start, end)
                if bounds is not None:
                    text_end, next_position = bounds

            if text_end > position:
                children().append(TextNode(source[position:text_end]))
            position = next_position

            if triple:
                children().append(self._variable(content, False, location))
            elif sigil == "&":
                children().append(self._variable(content[1:], False, location))
            elif sigil == "!":
                continue
            elif sigil in ("#", "^"):
                stack.append(
                    _OpenSection(
                        expression=self._expression(content[1:], location),
                        inverted=sigil == "^",
                        location=location,
                        content_start=position,
                    )
                )
            elif sigil == "/":
                if not stack:
                    raise TemplateSyntaxError(
                        f"Unexpected closing tag '{content[1:].strip()}'", location
                    )
                section = stack.pop()
                closing = content[1:].strip()
                if closing and self._expression(closing, location) != section.expression:
                    raise TemplateSyntaxError(
                        f"Closing tag '{closing}' does not match "
                        f"'{section.expression}' opened at {section.location}",
                        location,
                    )
                children().append(
                    SectionNode(
                        expression=section.expression,
                        children=tuple(section.children),
                        inverted=section.inverted,
                        location=section.location,
                        inner_source=source[section.content_start : text_end],
                    )
                )
            elif sigil == ">":
                raise TemplateSyntaxError("Partials are not supported", location)
            elif sigil == "=":
                raise TemplateSyntaxError("Delimiter changes are not supported", location)
            elif not content:
                raise TemplateSyntaxError("Empty tag", location)
            else:
                children().append(self._variable(content, True, location))

        if stack:
            section = stack[-1]
            raise TemplateSyntaxError(
                f"Unclosed section '{section.expression}'", section.location
            )

        remainder = source[position:]
        if "{{" in remainder:
            offset = position + remainder.index("{{")
            raise TemplateSyntaxError("Unclosed tag", self._location(source, offset))
        if remainder:
            root.append(TextNode(remainder))

        return tuple(root)

    def _location(self, source: str, offset: int) -> SourceLocation:
        line_start = source.rfind("\n", 0, offset) + 1
        return SourceLocation(
            line=source.count("\n", 0, offset) + 1,
            column=offset - line_start + 1,
            template_name=self.template_name,
        )

    def _expression(self, content: str, location: SourceLocation) -> Expression:
        return parse_expression(content, location)

    def _variable(self, content: str, escaped: bool, location: SourceLocation) -> VariableNode:
        return VariableNode(self._expression(content, location), escaped, location)

    @staticmethod
    def _standalone_bounds(source: str, start: int, end: int) -> Optional[Tuple[int, int]]:
        """Return the span to drop when a tag is alone on its line."""
        line_start = source.rfind("\n", 0, start) + 1
        line_end = source.find("\n", end)
        if line_end == -1:
            line_end = len(source)
        if source[line_start:start].strip(" \t") or source[end:line_end].strip(" \t\r"):
            return None
        next_line = line_end + 1 if line_end < len(source) else line_end
        return line_start, next_line


def parse_template(source: str, template_name: Optional[str] = None) -> Tuple[Node, ...]:
    """Parse Mustache source into a template tree."""
    return TemplateParser(template_name).parse(source)
