"""Immutable, scope-stacked lookup structure used during rendering."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from .values import MISSING, lookup_key

_NO_FILTERS: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True)
class Scope:
    """One level of the context: a pushed value plus named filters.

    Values and filters share a single namespace. Inside one scope the value is
    consulted first, then the filters.
    """

    value: Any = MISSING
    filters: Mapping[str, Any] = field(default_factory=lambda: _NO_FILTERS)

    def lookup(self, name: str) -> Any:
        found = lookup_key(self.value, name)
        if found is MISSING:
            return self.filters.get(name, MISSING)
        return found


class Context:
    """A persistent stack of scopes.

    Pushing never modifies a context; it returns a new one sharing the
    existing scopes, so contexts can be handed to other threads freely.
    """

    __slots__ = ("_scope", "_parent", "_depth")

    def __init__(self, scope: Optional[Scope] = None, parent: Optional["Context"] = None) -> None:
        self._scope = scope
        self._parent = parent
        self._depth = (parent.depth if parent is not None else 0) + (scope is not None)

    @classmethod
    def root(
        cls, data: Any = MISSING, filters: Optional[Mapping[str, Any]] = None
    ) -> "Context":
        """Create a context holding optional filters, with ``data`` pushed on top."""
        context = cls()
        if filters:
            context = context.with_filters(filters)
        if data is not MISSING and data is not None:
            context = context.push(data)
        return context

    def push(self, value: Any, filters: Optional[Mapping[str, Any]] = None) -> "Context":
        """Return a new context with ``value`` (and optional filters) innermost."""
        frozen = MappingProxyType(dict(filters)) if filters else _NO_FILTERS
        return Context(Scope(value, frozen), self)

    def with_filters(self, filters: Mapping[str, Any]) -> "Context":
        """Return a new context with a filter-only scope innermost."""
        return self.push(MISSING, filters)

    def pop(self) -> "Context":
        """Return the enclosing context. The root context pops to itself."""
        if self._parent is None:
            return self
        return self._parent

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def top(self) -> Any:
        """The innermost pushed value, used by the ``.`` expression."""
        for scope in self:
            if scope.value is not MISSING:
                return scope.value
        return MISSING

    def __iter__(self) -> Iterator[Scope]:
        context: Optional[Context] = self
        while context is not None:
            if context._scope is not None:
                yield context._scope
            context = context._parent

    def lookup(self, name: str) -> Any:
        """Return the value bound to ``name`` in the nearest scope, or ``MISSING``."""
        for scope in self:
            found = scope.lookup(name)
            if found is not MISSING:
                return found
        return MISSING

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not MISSING

    def __repr__(self) -> str:
        return f"Context(depth={self._depth})"
