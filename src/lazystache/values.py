"""Helpers that interpret host values the way templates see them."""

from collections.abc import Iterable, Mapping
from typing import Any


class _Missing:
    """Marker for a lookup that found nothing, as opposed to a ``None`` value."""

    _instance = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

_SEQUENCE_KEYS = {"first", "last", "count"}


def is_sequence(value: Any) -> bool:
    """Return True for values a section iterates over."""
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        return False
    return isinstance(value, Iterable)


def is_truthy(value: Any) -> bool:
    """Decide whether a section renders for ``value``.

    Mappings are always truthy, even when empty. Sequences are truthy when they
    have at least one item. Everything else follows Python truthiness, which
    makes ``MISSING``, ``None``, ``False``, ``0`` and ``""`` falsy.
    """
    if isinstance(value, Mapping):
        return True
    if is_sequence(value) and not hasattr(value, "__len__"):
        return True
    return bool(value)


def lookup_key(value: Any, key: str) -> Any:
    """Look up ``key`` on a single value, returning ``MISSING`` when absent."""
    if value is None or value is MISSING:
        return MISSING

    if isinstance(value, Mapping):
        if key in value:
            return value[key]
        return MISSING

    if isinstance(value, (str, bytes, bytearray, int, float, bool)):
        return MISSING

    if is_sequence(value) and hasattr(value, "__getitem__"):
        if key.lstrip("-").isdigit():
            try:
                return value[int(key)]
            except IndexError:
                return MISSING
        if key in _SEQUENCE_KEYS:
            items = list(value)
            if key == "count":
                return len(items)
            if not items:
                return None
            return items[0] if key == "first" else items[-1]
        if isinstance(value, (list, tuple, range)):
            return MISSING

    if key.startswith("_"):
        return MISSING
    return getattr(value, key, MISSING)
