"""ASGI request handler — the dispatch core.

Takes one HTTP request through its whole lifecycle::

    received -> middleware -> [body] -> route lookup -> handler -> responded

Any stage may end the request early: a middleware answers, the body is
too large (no response at all), no route matches (404), or the handler
fails (500). Every failure is recovered here; none reaches the server.
"""

import logging
from typing import Any

from redact._internal.asgi import Receive, Scope, Send
from redact._internal.invoke import invoke, trim_args
from redact.config import AppConfig
from redact.errors import ClientDisconnected, HTTPError, NotFound, PayloadTooLarge
from redact.http.body import read_json_body
from redact.http.request import Request
from redact.middleware.pipeline import MiddlewarePipeline, Respond
from redact.routing.route import FunctionHandler, LiteralResponse, RouteHandler
from redact.routing.router import RouteTable
from redact.server.sender import ResponseWriter

logger = logging.getLogger("redact.server")

NOT_FOUND_BODY: dict[str, str] = {"error": "Not Found"}


def internal_error(exc: BaseException, *, debug: bool = False) -> dict[str, str]:
    """The JSON body for a failed handler. Never includes a traceback."""
    body = {"error": "Internal Server Error", "details": str(exc) or type(exc).__name__}
    if debug:
        body["type"] = type(exc).__qualname__
    return body


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    routes: RouteTable,
    pipeline: MiddlewarePipeline,
    config: AppConfig,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    request = Request.from_asgi(scope)
    writer = ResponseWriter(send)

    outcome = await pipeline.run(request)
    if isinstance(outcome, Respond):
        await _respond(writer, request, outcome.value, outcome.status, debug=config.debug)
        return

    if request.method in config.body_methods:
        try:
            request.body = await read_json_body(
                receive,
                limit=config.max_body_size,
                policy=config.json_body_policy,
                content_length=request.content_length,
            )
        except PayloadTooLarge as exc:
            # Nothing is sent; the server drops the connection.
            logger.warning("Dropping %s %s: %s", request.method, request.path, exc)
            return
        except ClientDisconnected:
            logger.info("Client went away during %s %s", request.method, request.path)
            return
        except HTTPError as exc:
            await writer.send({"error": exc.detail}, exc.status)
            return

    try:
        match = routes.resolve(request.method, request.path)
    except NotFound as exc:
        logger.debug("404 %s", exc.detail)
        await writer.send(dict(NOT_FOUND_BODY), 404)
        return

    request.params = match.params
    await _run_handler(match.handler, request, writer, debug=config.debug)


async def _run_handler(
    handler: RouteHandler,
    request: Request,
    writer: ResponseWriter,
    *,
    debug: bool,
) -> None:
    """Call the matched handler and send whatever it produces."""
    match handler:
        case LiteralResponse(value=value):
            await _respond(writer, request, value, debug=debug)
        case FunctionHandler(func=func, arity=arity):
            try:
                result = await invoke(func, *trim_args(arity, request.body, request))
            except HTTPError as exc:
                logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
                await writer.send({"error": exc.detail or str(exc.status)}, exc.status)
                return
            except Exception as exc:
                logger.exception("500 %s %s", request.method, request.path)
                await writer.send(internal_error(exc, debug=debug), 500)
                return
            await _respond(writer, request, result, debug=debug)


async def _respond(
    writer: ResponseWriter,
    request: Request,
    value: Any,
    status: int | None = None,
    *,
    debug: bool,
) -> None:
    """Send *value*, falling back to a 500 if it can't be serialized."""
    try:
        await writer.send(value, status)
    except (TypeError, ValueError) as exc:
        logger.exception("Unserializable response for %s %s", request.method, request.path)
        await writer.send(internal_error(exc, debug=debug), 500)
