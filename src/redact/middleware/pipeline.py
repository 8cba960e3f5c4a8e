"""First-responder-wins middleware pipeline.

Middleware run one at a time, in registration order, against a single
shared request. The first one to return something other than ``None``
ends the chain; its value becomes the response. A middleware that raises
also ends the chain, with a 500.
"""

import logging
from dataclasses import dataclass
from typing import Any, TypeAlias

from redact._internal.invoke import invoke
from redact.http.request import Request
from redact.middleware.protocol import Middleware

logger = logging.getLogger("redact.server")

MIDDLEWARE_ERROR: dict[str, str] = {"error": "Middleware Error"}


@dataclass(frozen=True, slots=True)
class Continue:
    """Every middleware passed; dispatch carries on to routing."""


@dataclass(frozen=True, slots=True)
class Respond:
    """A middleware answered (or failed); send ``value`` and stop.

    ``status`` of ``None`` lets the value pick its own (200 by default).
    """

    value: Any
    status: int | None = None


PipelineResult: TypeAlias = Continue | Respond

CONTINUE = Continue()


class MiddlewarePipeline:
    """An ordered, immutable chain of middleware."""

    __slots__ = ("_middleware",)

    def __init__(self, middleware: tuple[Middleware, ...] = ()) -> None:
        self._middleware = middleware

    def __len__(self) -> int:
        return len(self._middleware)

    async def run(self, request: Request) -> PipelineResult:
        """Run the chain against *request*."""
        for mw in self._middleware:
            try:
                result = await invoke(mw, request)
            except Exception:
                logger.exception(
                    "Middleware %s failed on %s %s",
                    getattr(mw, "__qualname__", type(mw).__qualname__),
                    request.method,
                    request.path,
                )
                return Respond(dict(MIDDLEWARE_ERROR), status=500)
            if result is not None:
                return Respond(result)
        return CONTINUE
