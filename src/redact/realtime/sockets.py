"""Socket routes, live connections, and broadcast.

A socket route binds an exact path to up to three callbacks::

    app.socket({
        "path": "/chat",
        "open": lambda conn: ...,
        "message": lambda conn, data: ...,
        "close": lambda conn: ...,
    })

Every accepted connection joins the app's ``ConnectionSet`` until it
closes. Iteration over the set always walks a snapshot, so callbacks may
add or drop connections while a broadcast is fanning out.
"""

from __future__ import annotations

import itertools
import json
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, TypeAlias

import anyio

from redact._internal.asgi import Send
from redact.http.request import Request
from redact.server.negotiation import dumps

logger = logging.getLogger("redact.sockets")

_ids = itertools.count(1)

SocketCallback: TypeAlias = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class SocketRoute:
    """Callbacks for one socket path. Any callback may be omitted."""

    path: str
    open: SocketCallback | None = None
    message: SocketCallback | None = None
    close: SocketCallback | None = None


class SocketRouter:
    """Exact-path registry of socket routes.

    Registering a path twice replaces the earlier route (last wins).
    """

    __slots__ = ("_routes",)

    def __init__(self) -> None:
        self._routes: dict[str, SocketRoute] = {}

    def register(self, route: SocketRoute) -> None:
        if route.path in self._routes:
            logger.warning("Socket route %r registered twice; replacing it", route.path)
        self._routes[route.path] = route

    def resolve(self, path: str) -> SocketRoute | None:
        return self._routes.get(path)

    @property
    def routes(self) -> list[SocketRoute]:
        return list(self._routes.values())

    def __contains__(self, path: object) -> bool:
        return path in self._routes

    def __len__(self) -> int:
        return len(self._routes)


class SocketConnection:
    """Handle to one upgraded connection, passed to every socket callback.

    ``send`` accepts ``str`` (text frame), ``bytes`` (binary frame), or any
    JSON-serializable value (sent as a JSON text frame).
    """

    __slots__ = ("_send", "close_code", "closed", "id", "request", "state")

    def __init__(self, send: Send, request: Request) -> None:
        self._send = send
        self.request = request
        self.id: int = next(_ids)
        self.state: dict[str, Any] = {}
        self.closed = False
        self.close_code: int | None = None

    @property
    def path(self) -> str:
        return self.request.path

    def __repr__(self) -> str:
        return f"SocketConnection(id={self.id}, path={self.path!r}, closed={self.closed})"

    async def send(self, value: Any) -> bool:
        """Send one message. Returns False if the connection is already closed."""
        if self.closed:
            return False
        match value:
            case str():
                message = {"type": "websocket.send", "text": value}
            case bytes() | bytearray():
                message = {"type": "websocket.send", "bytes": bytes(value)}
            case _:
                message = {"type": "websocket.send", "text": dumps(value)}
        await self._send(message)
        return True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Start the closing handshake. Further sends are ignored."""
        if self.closed:
            return
        self.closed = True
        self.close_code = code
        await self._send({"type": "websocket.close", "code": code, "reason": reason})

    def _disconnected(self, code: int | None) -> None:
        self.closed = True
        if self.close_code is None:
            self.close_code = code


class ConnectionSet:
    """Live socket connections for one app, in connection order."""

    __slots__ = ("_connections",)

    def __init__(self) -> None:
        # dict as an insertion-ordered set
        self._connections: dict[SocketConnection, None] = {}

    def add(self, connection: SocketConnection) -> None:
        self._connections[connection] = None

    def discard(self, connection: SocketConnection) -> None:
        self._connections.pop(connection, None)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[SocketConnection]:
        return iter(tuple(self._connections))

    async def broadcast(self, value: Any, *, exclude: SocketConnection | None = None) -> int:
        """Send *value* to every live connection except *exclude*.

        Sends run concurrently. A failed send is logged and does not stop
        delivery to the others. Returns the number of connections targeted.
        """
        targets = [conn for conn in self if conn is not exclude and not conn.closed]
        async with anyio.create_task_group() as tg:
            for conn in targets:
                tg.start_soon(_deliver, conn, value)
        return len(targets)


async def _deliver(connection: SocketConnection, value: Any) -> None:
    try:
        await connection.send(value)
    except Exception:
        logger.exception("Broadcast to %r failed", connection)


def decode_message(message: dict[str, Any]) -> Any:
    """Turn a ``websocket.receive`` message into handler data.

    JSON payloads are parsed; anything else is passed through as the raw
    ``str`` (text frames) or ``bytes`` (binary frames).
    """
    text = message.get("text")
    if text is not None:
        try:
            return json.loads(text)
        except ValueError:
            return text
    raw = message.get("bytes") or b""
    try:
        return json.loads(raw)
    except ValueError:
        return raw
