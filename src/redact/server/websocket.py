"""ASGI websocket handler — the upgrade half of the dispatch core.

Upgrade requests skip middleware and routing entirely. The path is
looked up in the socket router; an unknown path is refused before the
handshake completes (the connection server then destroys the socket
without any HTTP response).
"""

import logging
from typing import Any

from redact._internal.asgi import Receive, Scope, Send
from redact._internal.invoke import invoke
from redact.http.request import Request
from redact.realtime.sockets import (
    ConnectionSet,
    SocketCallback,
    SocketConnection,
    SocketRouter,
    decode_message,
)

logger = logging.getLogger("redact.sockets")

# Policy Violation: used when refusing an unregistered path
REFUSED_CLOSE_CODE = 1008


async def handle_websocket(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    sockets: SocketRouter,
    connections: ConnectionSet,
) -> None:
    """Run one socket session from handshake to close."""
    request = Request.from_asgi(scope)

    message = await receive()
    if message["type"] != "websocket.connect":
        return

    route = sockets.resolve(request.path)
    if route is None:
        logger.info("Refusing socket upgrade for unregistered path %r", request.path)
        await send({"type": "websocket.close", "code": REFUSED_CLOSE_CODE})
        return

    await send({"type": "websocket.accept"})
    connection = SocketConnection(send, request)
    connections.add(connection)
    logger.debug("Socket %d opened on %s (%d live)", connection.id, request.path, len(connections))

    try:
        await _callback(route.open, connection)
        while True:
            message = await receive()
            if message["type"] == "websocket.disconnect":
                connection._disconnected(message.get("code"))
                break
            if message["type"] == "websocket.receive":
                await _callback(route.message, connection, decode_message(message))
    finally:
        connections.discard(connection)
        connection._disconnected(None)
        await _callback(route.close, connection)
        logger.debug("Socket %d closed (%d live)", connection.id, len(connections))


async def _callback(callback: SocketCallback | None, *args: Any) -> None:
    """Run a socket callback; failures are logged and never end the session."""
    if callback is None:
        return
    try:
        await invoke(callback, *args)
    except Exception:
        logger.exception(
            "Socket callback %s failed",
            getattr(callback, "__qualname__", repr(callback)),
        )
