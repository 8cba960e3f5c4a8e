"""Route handler union and route table entries.

A route handler is either a literal value sent as-is, or a function
called with ``(input, request)``. The distinction is made once, at
registration, so dispatch never inspects handler types at request time.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from redact._internal.invoke import positional_arity


@dataclass(frozen=True, slots=True)
class LiteralResponse:
    """A handler that always responds with the same value."""

    value: Any


@dataclass(frozen=True, slots=True)
class FunctionHandler:
    """A handler function ``(input, request) -> value | awaitable``.

    ``arity`` is the number of positional parameters the function takes,
    so ``def index(): ...`` and ``def show(body): ...`` are both valid.
    """

    func: Callable[..., Any]
    arity: int | None = None

    @property
    def name(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))


RouteHandler: TypeAlias = LiteralResponse | FunctionHandler


def as_handler(value: Any) -> RouteHandler:
    """Wrap a raw handler value in the matching union member."""
    if isinstance(value, LiteralResponse | FunctionHandler):
        return value
    if callable(value):
        return FunctionHandler(func=value, arity=positional_arity(value))
    return LiteralResponse(value=value)


@dataclass(frozen=True, slots=True)
class DynamicRoute:
    """A compiled parameterized route."""

    path: str
    pattern: re.Pattern[str]
    param_names: tuple[str, ...]
    handler: RouteHandler


@dataclass(frozen=True, slots=True)
class RouteInfo:
    """A registered route, flattened for introspection."""

    method: str
    path: str
    handler: RouteHandler
    dynamic: bool = False


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route lookup."""

    handler: RouteHandler
    params: dict[str, str] = field(default_factory=dict)
