"""The rendering protocol shared by values, filters and the engine."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, NamedTuple

from .errors import RenderingError, TemplateError, TypeMismatchError
from .values import MISSING, is_sequence

if TYPE_CHECKING:
    from .context import Context
    from .engine import Tag


class Rendering(NamedTuple):
    """Text produced by a renderable, and whether it is already safe to insert."""

    text: str
    safe: bool = False


class Renderable(ABC):
    """A value that knows how to render itself for a tag."""

    @abstractmethod
    def render(self, tag: "Tag", context: "Context") -> Rendering:
        """Render for ``tag`` in ``context``.

        Args:
            tag: The tag being rendered. Sections expose their content through
                ``tag.render_content``.
            context: The context at the tag.

        Returns:
            The rendered text and its safety flag. Unsafe text is escaped by
            the engine, safe text is inserted as is.
        """


class EagerRenderable(Renderable):
    """A renderable wrapping text that is already known."""

    def __init__(self, text: str, safe: bool = False) -> None:
        self.text = text
        self.safe = safe

    def render(self, tag: "Tag", context: "Context") -> Rendering:
        return Rendering(self.text, self.safe)

    def __repr__(self) -> str:
        return f"EagerRenderable({self.text!r}, safe={self.safe})"


class DeferredRenderable(Renderable):
    """A renderable whose block only runs when the engine renders it.

    The block receives ``(tag, context)`` and returns a ``Rendering``, a
    ``(text, safe)`` pair, or any other value, which is then rendered with
    the default resolution.
    """

    def __init__(self, block: Callable[["Tag", "Context"], Any]) -> None:
        self.block = block

    def render(self, tag: "Tag", context: "Context") -> Rendering:
        result = self.block(tag, context)
        if isinstance(result, Rendering) or _is_text_pair(result):
            return Rendering(*result)
        return render_value(result, tag, context)


def renderable(block: Callable[["Tag", "Context"], Any]) -> DeferredRenderable:
    """Build a deferred renderable from a function; usable as a decorator."""
    return DeferredRenderable(block)


def _is_text_pair(value: Any) -> bool:
    return (
        isinstance(value, tuple)
        and len(value) == 2
        and isinstance(value[0], str)
        and isinstance(value[1], bool)
    )


def _as_rendering(source: Renderable, result: Any) -> Rendering:
    """Check what ``Renderable.render`` returned; bare strings are unsafe text."""
    if isinstance(result, Rendering):
        return result
    if _is_text_pair(result):
        return Rendering(*result)
    if hasattr(result, "__html__"):
        return Rendering(str(result.__html__()), True)
    if isinstance(result, str):
        return Rendering(result, False)
    raise TypeMismatchError(
        f"{type(source).__name__}.render returned {type(result).__name__}, "
        f"expected a Rendering"
    )


def render_value(value: Any, tag: "Tag", context: "Context") -> Rendering:
    """Render any value without applying the escaping policy.

    This is the default resolution of variable tags, and the text string
    filters receive. Nothing is escaped here: a sequence mixing safe and unsafe
    items renders as unsafe text, and the engine escapes sequences item by item
    when it inserts them.
    """
    if isinstance(value, Renderable):
        try:
            result = value.render(tag, context)
        except TemplateError:
            raise
        except Exception as e:
            raise RenderingError(
                f"{type(value).__name__} failed to render: {e}"
            ) from e
        return _as_rendering(value, result)

    if value is MISSING or value is None:
        return Rendering("", False)

    if hasattr(value, "__html__"):
        return Rendering(str(value.__html__()), True)

    if isinstance(value, str):
        return Rendering(value, False)

    # Mappings are scopes for sections, they have no text of their own
    if isinstance(value, Mapping):
        return Rendering("", False)

    if is_sequence(value):
        renderings = [render_value(item, tag, context) for item in value]
        safe = all(r.safe for r in renderings)
        return Rendering("".join(r.text for r in renderings), safe)

    return Rendering(str(value), False)
