"""Invoke helpers — call sync or async callables uniformly.

Handlers, middleware, and socket callbacks can be ``def`` or ``async def``.
Any code that calls user-provided code must handle both cases. This module
keeps the sync/async check and the arity check in exactly one place.

Usage::

    from redact._internal.invoke import invoke

    result = await invoke(handler, body, request)
"""

import inspect
from collections.abc import Callable
from typing import Any


async def invoke(func: Callable[..., Any], *args: Any) -> Any:
    """Call *func* and await the result if it's awaitable."""
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def positional_arity(func: Callable[..., Any]) -> int | None:
    """Return how many positional arguments *func* accepts.

    ``None`` means unbounded (``*args``) or not introspectable, in which
    case callers pass every argument they have.
    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return None

    count = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return count


def trim_args(arity: int | None, *args: Any) -> tuple[Any, ...]:
    """Drop trailing arguments a callable doesn't declare."""
    if arity is None:
        return args
    return args[:arity]
