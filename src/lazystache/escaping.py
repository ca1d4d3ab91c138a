"""Escapers applied to unsafe text before it reaches the output."""

from typing import Callable, Dict, Union

from markupsafe import escape

from .config import ContentType

Escaper = Callable[[str], str]


def html_escape(text: str) -> str:
    """Replace ``& < > " '`` with HTML-safe sequences."""
    return str(escape(text))


def text_escape(text: str) -> str:
    """Plain text needs no escaping."""
    return text


ESCAPERS: Dict[ContentType, Escaper] = {
    ContentType.HTML: html_escape,
    ContentType.TEXT: text_escape,
}


def get_escaper(content_type: Union[ContentType, str]) -> Escaper:
    """Return the escaper for a content type name or enum member."""
    return ESCAPERS[ContentType(content_type)]
