"""Filter adapters turning plain functions into template filters.

A filter is invoked by a tag such as ``{{ uppercase(name) }}`` or
``{{ add(a, b) }}``. Three adapters cover the usual shapes of filter
functions:

* ``filter_with`` passes the argument values through untouched;
* ``string_filter`` hands the function the rendering of its arguments;
* ``variadic_filter`` hands the function the list of all arguments.

Adapters never check arity; a filter called with the wrong number of
arguments fails inside its own body, and that failure surfaces as a
``FilterInvocationError``.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, List, Sequence

from .errors import FilterInvocationError, TemplateError
from .renderable import DeferredRenderable, Rendering, render_value

if TYPE_CHECKING:
    from .context import Context
    from .engine import Tag


class Filter(ABC):
    """A value that can be called from a template with ``name(arguments)``."""

    @abstractmethod
    def apply(self, arguments: Sequence[Any]) -> Any:
        """Transform the call-site arguments, given in source order."""


def _describe(block: Callable[..., Any]) -> str:
    return getattr(block, "__name__", None) or repr(block)


def _invoke(block: Callable[..., Any], *args: Any) -> Any:
    try:
        return block(*args)
    except TemplateError:
        raise
    except Exception as e:
        raise FilterInvocationError(
            f"Filter '{_describe(block)}' failed: {type(e).__name__}: {e}"
        ) from e


class GenericFilter(Filter):
    """Calls its function with the raw argument values."""

    def __init__(self, block: Callable[..., Any]) -> None:
        self.block = block

    def apply(self, arguments: Sequence[Any]) -> Any:
        return _invoke(self.block, *arguments)

    def __repr__(self) -> str:
        return f"GenericFilter({_describe(self.block)})"


class StringFilter(Filter):
    """Calls its function with the pre-escape rendering of each argument.

    Nothing is rendered when the filter is applied: the result is a deferred
    renderable that renders the arguments for the tag being rendered,
    transforms the text and renders the transformed value once the engine
    inserts it. In a section tag an argument renders as the section would
    for it, so ``{{#uppercase(user)}}Hi {{name}}{{/uppercase(user)}}``
    transforms the rendered section content.

    A plain string returned by the function keeps the safety of the text it
    was given: transformed section content or markup is not escaped again,
    transformed raw values are escaped once by the tag.
    """

    def __init__(self, block: Callable[..., Any]) -> None:
        self.block = block

    def apply(self, arguments: Sequence[Any]) -> Any:
        arguments = tuple(arguments)

        def render_transformed(tag: "Tag", context: "Context") -> Rendering:
            renderings = [tag.render_value(argument, context) for argument in arguments]
            result = _invoke(self.block, *(rendering.text for rendering in renderings))
            if isinstance(result, str) and not hasattr(result, "__html__"):
                return Rendering(result, all(rendering.safe for rendering in renderings))
            return render_value(result, tag, context)

        return DeferredRenderable(render_transformed)

    def __repr__(self) -> str:
        return f"StringFilter({_describe(self.block)})"


class VariadicFilter(Filter):
    """Calls its function once with the list of all argument values."""

    def __init__(self, block: Callable[[List[Any]], Any]) -> None:
        self.block = block

    def apply(self, arguments: Sequence[Any]) -> Any:
        return _invoke(self.block, list(arguments))

    def __repr__(self) -> str:
        return f"VariadicFilter({_describe(self.block)})"


def filter_with(block: Callable[..., Any]) -> Filter:
    """Return a generic filter that calls ``block`` with the argument value.

    Should the filter process strings, prefer ``string_filter``, which renders
    the argument instead of calling ``str()`` on it.
    """
    return GenericFilter(block)


def string_filter(block: Callable[..., Any]) -> Filter:
    """Return a filter that calls ``block`` with the rendering of its argument.

    For ``{{ f(x) }}`` with ``x`` a number, ``block`` receives the rendered
    number. The string is taken before HTML escaping, and the value returned
    by ``block`` is rendered and escaped like any other value.
    """
    return StringFilter(block)


def variadic_filter(block: Callable[[List[Any]], Any]) -> Filter:
    """Return a filter that calls ``block`` with the list of its arguments.

    ``{{ f(a) }}``, ``{{ f(a,b) }}`` and ``{{ f(a,b,c) }}`` provide lists of
    1, 2 and 3 values. Checking the number of arguments is up to ``block``.
    """
    return VariadicFilter(block)


def as_filter(value: Any) -> Filter:
    """Return ``value`` if it is a filter, or wrap a plain callable generically."""
    if isinstance(value, Filter):
        return value
    if callable(value):
        return filter_with(value)
    raise TypeError(f"Cannot use {type(value).__name__} as a filter")
