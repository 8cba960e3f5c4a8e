"""Listener — binds a TCP socket and hands each connection to ``HTTPConnection``."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from redact._internal.asgi import ASGIApp
from redact._internal.invoke import invoke, positional_arity, trim_args
from redact.config import AppConfig
from redact.server.connection import HTTPConnection

logger = logging.getLogger("redact.server")


def bound_address(server: asyncio.Server) -> tuple[str, int]:
    """The (host, port) the server actually listens on. Useful with port 0."""
    name = server.sockets[0].getsockname()
    return (str(name[0]), int(name[1]))


async def serve(
    app: ASGIApp,
    config: AppConfig,
    *,
    host: str,
    port: int,
    on_ready: Callable[..., Any] | None = None,
) -> asyncio.Server:
    """Start listening and return the running ``asyncio.Server``.

    *on_ready* runs once the socket is bound. It may take no arguments
    or the bound ``(host, port)`` address.
    """

    async def on_connection(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        await HTTPConnection(app, reader, writer, config).run()

    server = await asyncio.start_server(
        on_connection,
        host,
        port,
        backlog=config.backlog,
        limit=config.max_header_size,
    )
    address = bound_address(server)
    logger.info("Listening on http://%s:%d", *address)

    if on_ready is not None:
        await invoke(on_ready, *trim_args(positional_arity(on_ready), address))
    return server
