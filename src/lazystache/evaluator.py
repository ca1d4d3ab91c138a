"""Resolution of expression nodes against a context."""

from typing import Any, List

from .config import MissingPolicy
from .context import Context
from .errors import (
    FilterInvocationError,
    TemplateError,
    TypeMismatchError,
    UnresolvedIdentifierError,
)
from .filters import Filter
from .nodes import Expression, FilterCall, Identifier, ImplicitIterator, ScopedExpression
from .values import MISSING, lookup_key


class ExpressionEvaluator:
    """Evaluates expressions into values, renderables included.

    ``evaluate`` returns ``MISSING`` for names that no scope defines, leaving
    the decision to render nothing or fail to the caller. Arguments of filter
    calls are the exception: they are resolved here, so the missing policy
    applies to them directly.
    """

    def __init__(self, missing: MissingPolicy = MissingPolicy.EMPTY) -> None:
        self.missing = MissingPolicy(missing)

    def evaluate(self, expression: Expression, context: Context) -> Any:
        if isinstance(expression, Identifier):
            return context.lookup(expression.name)

        if isinstance(expression, ImplicitIterator):
            return context.top

        if isinstance(expression, ScopedExpression):
            base = self.evaluate(expression.base, context)
            return lookup_key(base, expression.key)

        if isinstance(expression, FilterCall):
            return self._call_filter(expression, context)

        raise TypeError(f"Unknown expression node: {expression!r}")

    def _call_filter(self, call: FilterCall, context: Context) -> Any:
        filter_ = self.evaluate(call.filter, context)
        if filter_ is MISSING:
            raise UnresolvedIdentifierError(str(call.filter))
        if not isinstance(filter_, Filter):
            raise TypeMismatchError(
                f"'{call.filter}' is not a filter (got {type(filter_).__name__})"
            )

        arguments = self._resolve_arguments(call, context)

        try:
            return filter_.apply(arguments)
        except TemplateError:
            raise
        except Exception as e:
            raise FilterInvocationError(
                f"Filter '{call.filter}' failed: {type(e).__name__}: {e}"
            ) from e

    def _resolve_arguments(self, call: FilterCall, context: Context) -> List[Any]:
        # Source order; renderables stay unrendered
        arguments = []
        for argument in call.arguments:
            value = self.evaluate(argument, context)
            if value is MISSING:
                if self.missing is MissingPolicy.FAIL:
                    raise UnresolvedIdentifierError(str(argument))
                value = None
            arguments.append(value)
        return arguments
