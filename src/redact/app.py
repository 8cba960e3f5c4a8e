"""Redact application class.

Mutable during setup (routes, middleware, socket routes).
Frozen at runtime when ``app.listen()``, ``app.start()`` or ``__call__()``
is first invoked.
"""

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from redact._internal import capabilities
from redact._internal.asgi import Receive, Scope, Send
from redact.config import AppConfig
from redact.errors import ConfigurationError, SocketsUnavailable
from redact.middleware.pipeline import MiddlewarePipeline
from redact.middleware.protocol import Middleware
from redact.realtime.sockets import ConnectionSet, SocketConnection, SocketRoute, SocketRouter
from redact.routing.router import METHODS, RouteTable
from redact.server.handler import handle_request
from redact.server.websocket import handle_websocket

logger = logging.getLogger("redact.server")

_SOCKET_KEYS = frozenset({"path", "open", "message", "close"})


class App:
    """The redact application.

    Usage::

        app = App()
        app.use(RequestLogger())
        app.routes(
            {"path": "/", "GET": "Welcome"},
            {"path": "/users/:id", "GET": lambda body, req: {"id": req.params["id"]}},
        )
        app.listen(3000, lambda: print("ready"))

    Thread safety:
        Setup is single-threaded (registration at import time). The freeze
        transition uses a Lock + double-check so exactly one caller builds
        the middleware pipeline.
    """

    __slots__ = (
        "_connections",
        "_freeze_lock",
        "_frozen",
        "_middleware_list",
        "_pipeline",
        "_routes",
        "_sockets",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._routes: RouteTable = RouteTable()
        self._sockets: SocketRouter = SocketRouter()
        self._connections: ConnectionSet = ConnectionSet()
        self._middleware_list: list[Middleware] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Set during _freeze()
        self._pipeline: MiddlewarePipeline = MiddlewarePipeline()

    # -- Middleware --

    def use(self, middleware: Middleware) -> Middleware:
        """Append a middleware. Runs in registration order.

        Returns the middleware, so it also works as a decorator::

            @app.use
            def auth(request):
                if "authorization" not in request.headers:
                    return ({"error": "Unauthorized"}, 401)
        """
        self._check_not_frozen()
        if not callable(middleware):
            msg = f"Middleware must be callable, got {type(middleware).__name__}"
            raise ConfigurationError(msg)
        self._middleware_list.append(middleware)
        return middleware

    # -- Route registration --

    def routes(self, *definitions: Mapping[str, Any]) -> None:
        """Register routes from ``{"path": ..., "GET": ..., ...}`` mappings.

        A definition without a ``path`` is skipped. Method keys whose value
        is ``None`` are skipped. Any other value is the handler: a callable
        ``(input, request)`` or a literal sent as-is.
        """
        self._check_not_frozen()
        for definition in definitions:
            path = definition.get("path")
            if not path:
                logger.warning("Skipping route definition without a path: %r", definition)
                continue
            unknown = set(definition) - {"path", *METHODS}
            if unknown:
                msg = (
                    f"Unknown keys {sorted(unknown)} in route definition for {path!r}. "
                    f"Expected 'path' and any of: {', '.join(METHODS)}"
                )
                raise ConfigurationError(msg)
            for method in METHODS:
                handler = definition.get(method)
                if handler is not None:
                    self._routes.register(method, path, handler)

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a route handler via decorator.

        Args:
            path: URL path. Segments of the form ``:name`` capture a parameter.
            methods: HTTP methods. Defaults to ``["GET"]``.
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            for method in methods or ["GET"]:
                self._routes.register(method, path, func)
            return func

        return decorator

    @property
    def route_table(self) -> RouteTable:
        return self._routes

    # -- Socket routes --

    def socket(self, definition: Mapping[str, Any] | None = None, /, **callbacks: Any) -> None:
        """Register a socket route.

        Accepts a mapping or keywords (or both; keywords win)::

            app.socket({"path": "/chat", "message": on_message})
            app.socket(path="/chat", open=on_open, close=on_close)

        Raises ``SocketsUnavailable`` when websocket support is not installed.
        Registering the same path again replaces the earlier route.
        """
        self._check_not_frozen()
        if not capabilities.SOCKETS_AVAILABLE:
            raise SocketsUnavailable()

        merged = {**(definition or {}), **callbacks}
        unknown = set(merged) - _SOCKET_KEYS
        if unknown:
            msg = f"Unknown keys {sorted(unknown)} in socket definition"
            raise ConfigurationError(msg)
        path = merged.get("path")
        if not path:
            msg = "Socket definition requires a 'path'"
            raise ConfigurationError(msg)
        for key in ("open", "message", "close"):
            value = merged.get(key)
            if value is not None and not callable(value):
                msg = f"Socket callback {key!r} for {path!r} must be callable"
                raise ConfigurationError(msg)

        self._sockets.register(
            SocketRoute(
                path=path,
                open=merged.get("open"),
                message=merged.get("message"),
                close=merged.get("close"),
            )
        )

    @property
    def socket_routes(self) -> SocketRouter:
        return self._sockets

    @property
    def clients(self) -> ConnectionSet:
        """Live socket connections, in connection order."""
        return self._connections

    async def broadcast(self, value: Any, *, exclude: SocketConnection | None = None) -> int:
        """Send *value* to every live socket connection. See ``ConnectionSet.broadcast``."""
        return await self._connections.broadcast(value, exclude=exclude)

    # -- Server --

    async def start(
        self,
        port: int | None = None,
        on_ready: Callable[..., Any] | None = None,
        *,
        host: str | None = None,
    ) -> asyncio.Server:
        """Bind and start serving in the running event loop.

        Returns the ``asyncio.Server``; close it to stop. Pass ``port=0``
        to bind an ephemeral port.
        """
        from redact.server.serve import serve

        self._ensure_frozen()
        return await serve(
            self,
            self.config,
            host=host or self.config.host,
            port=self.config.port if port is None else port,
            on_ready=on_ready,
        )

    def listen(
        self,
        port: int | None = None,
        on_ready: Callable[..., Any] | None = None,
        *,
        host: str | None = None,
    ) -> None:
        """Start the server and block until interrupted.

        Args:
            port: Override the configured port.
            on_ready: Called once the socket is bound, with no arguments
                or with the bound ``(host, port)``.
            host: Override the configured bind host.
        """

        async def main() -> None:
            server = await self.start(port, on_ready, host=host)
            async with server:
                await server.serve_forever()

        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(main())
        logger.info("Server stopped")

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan directly, then delegates HTTP scopes to the request
        handler and websocket scopes to the socket handler.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()

        if scope["type"] == "websocket":
            await handle_websocket(
                scope,
                receive,
                send,
                sockets=self._sockets,
                connections=self._connections,
            )
            return

        await handle_request(
            scope,
            receive,
            send,
            routes=self._routes,
            pipeline=self._pipeline,
            config=self.config,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Freeze at startup and acknowledge lifespan events."""
        self._ensure_frozen()
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        self._pipeline = MiddlewarePipeline(tuple(self._middleware_list))
        self._frozen = True
        logger.debug(
            "App frozen: %d routes, %d socket routes, %d middleware",
            len(self._routes),
            len(self._sockets),
            len(self._pipeline),
        )

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and sockets before calling app.listen()."
            )
            raise RuntimeError(msg)
