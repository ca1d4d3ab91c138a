"""Exception hierarchy for lazystache rendering."""

from typing import Optional

from .nodes import SourceLocation


class TemplateError(Exception):
    """Base class for every failure raised while parsing or rendering.

    The location is filled in by the rendering engine when the error reaches
    the tag that was being rendered, so code deep in the pipeline may raise
    without knowing where it is.
    """

    def __init__(self, message: str, location: Optional[SourceLocation] = None) -> None:
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self) -> str:
        if self.location is None:
            return self.message
        return f"{self.message} ({self.location})"


class TemplateSyntaxError(TemplateError):
    """Raised when template source cannot be parsed."""

    pass


class UnresolvedIdentifierError(TemplateError):
    """Raised when a name is not found in any scope of the context."""

    def __init__(self, name: str, location: Optional[SourceLocation] = None) -> None:
        super().__init__(f"Unresolved identifier '{name}'", location)
        self.name = name


class FilterInvocationError(TemplateError):
    """Raised when a filter body fails, including arity mismatches."""

    pass


class RenderingError(TemplateError):
    """Raised when a renderable object fails to render itself."""

    pass


class TypeMismatchError(RenderingError):
    """Raised when a value is used as something it is not, e.g. called as a filter."""

    pass
