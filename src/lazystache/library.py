"""Built-in filters available in every template."""

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Dict, List
from urllib.parse import quote

from markupsafe import escape

from .filters import Filter, filter_with, string_filter
from .nodes import TagKind
from .renderable import Renderable, Rendering, render_value
from .values import MISSING, is_sequence

if TYPE_CHECKING:
    from .context import Context
    from .engine import Tag


def capitalized(text: str) -> str:
    """Capitalize the first letter of each word."""
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" "))


def is_empty(value: Any) -> bool:
    """True for missing, null, empty string and empty collections."""
    if value is None or value is MISSING:
        return True
    if isinstance(value, (str, Mapping)) or is_sequence(value):
        try:
            return len(value) == 0
        except TypeError:
            return False
    return False


def is_blank(value: Any) -> bool:
    """Like ``is_empty``, and also true for whitespace-only strings."""
    if isinstance(value, str):
        return not value.strip()
    return is_empty(value)


def javascript_escape(text: str) -> str:
    """Escape text for a JavaScript string literal, quotes excluded."""
    escaped = json.dumps(text)[1:-1]
    for char, replacement in (
        ("'", "\\u0027"),
        ("<", "\\u003C"),
        (">", "\\u003E"),
        ("&", "\\u0026"),
    ):
        escaped = escaped.replace(char, replacement)
    return escaped


def url_escape(text: str) -> str:
    """Percent-encode text for use in a URL component."""
    return quote(text, safe="")


class EachItem(Renderable):
    """One item of the ``each`` filter, exposing its position.

    In a section, the positional keys (``@index``, ``@indexPlusOne``,
    ``@first``, ``@last``, ``@indexIsEven`` and ``@key`` for mappings) are
    pushed on the context, then the item itself, so that ``.`` is the item.
    In a variable tag the item renders as itself.
    """

    def __init__(self, value: Any, position: Dict[str, Any]) -> None:
        self.value = value
        self.position = position

    def render(self, tag: "Tag", context: "Context") -> Rendering:
        if tag.kind is TagKind.VARIABLE:
            return render_value(self.value, tag, context)
        return tag.render_content(context.push(self.position).push(self.value))


def each(value: Any) -> List[EachItem]:
    """Wrap the items of a sequence or mapping so sections see their position."""
    if value is None or value is MISSING:
        return []
    if isinstance(value, Mapping):
        pairs = list(value.items())
        items = [item for _, item in pairs]
        keys = [key for key, _ in pairs]
    elif is_sequence(value):
        items = list(value)
        keys = [None] * len(items)
    else:
        raise TypeError(f"each expects a sequence or a mapping, got {type(value).__name__}")

    wrapped = []
    for index, (key, item) in enumerate(zip(keys, items)):
        position = {
            "@index": index,
            "@indexPlusOne": index + 1,
            "@indexIsEven": index % 2 == 0,
            "@first": index == 0,
            "@last": index == len(items) - 1,
        }
        if key is not None:
            position["@key"] = key
        wrapped.append(EachItem(item, position))
    return wrapped


def standard_library() -> Dict[str, Any]:
    """Return the built-in filters, keyed by the name templates use."""
    return {
        "uppercase": string_filter(str.upper),
        "lowercase": string_filter(str.lower),
        "capitalized": string_filter(capitalized),
        "isEmpty": filter_with(is_empty),
        "isBlank": filter_with(is_blank),
        "each": filter_with(each),
        "HTML": {"escape": string_filter(escape)},
        "URL": {"escape": string_filter(url_escape)},
        "javascript": {"escape": string_filter(javascript_escape)},
    }


def register_standard_filters(filters: Dict[str, Any]) -> None:
    """Add the built-in filters to a filter mapping, keeping existing entries."""
    for name, filter_ in standard_library().items():
        filters.setdefault(name, filter_)


def describe_filters(filters: Dict[str, Any], prefix: str = "") -> List[str]:
    """List the dotted names of the filters in a (possibly nested) mapping."""
    names = []
    for name, value in sorted(filters.items()):
        if isinstance(value, Filter):
            names.append(f"{prefix}{name}")
        elif isinstance(value, Mapping):
            names.extend(describe_filters(dict(value), f"{prefix}{name}."))
    return names
