"""Redact — a minimal HTTP app server with routing, middleware, and sockets.

Basic usage::

    from redact import App

    app = App()

    app.routes(
        {"path": "/", "GET": "Welcome"},
        {"path": "/users/:id", "GET": lambda body, req: {"id": req.params["id"]}},
    )

    app.listen(3000)

Socket routes (``pip install redact[sockets]``)::

    app.socket({
        "path": "/chat",
        "message": lambda conn, data: app.broadcast(data, exclude=conn),
    })
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BadRequest",
    "ConfigurationError",
    "HTTPError",
    "Middleware",
    "NotFound",
    "PayloadTooLarge",
    "RedactError",
    "Request",
    "RequestLogger",
    "Response",
    "SocketConnection",
    "SocketsUnavailable",
    "create_app",
]


def create_app(**config: object) -> object:
    """Create an ``App``; keyword arguments become ``AppConfig`` fields."""
    from redact.app import App
    from redact.config import AppConfig

    return App(AppConfig(**config))  # type: ignore[arg-type]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import redact`` fast while providing a clean top-level API.
    """
    if name == "App":
        from redact.app import App

        return App

    if name == "AppConfig":
        from redact.config import AppConfig

        return AppConfig

    if name == "Request":
        from redact.http.request import Request

        return Request

    if name == "Response":
        from redact.http.response import Response

        return Response

    if name in ("Middleware", "RequestLogger"):
        from redact import middleware as _mw

        return getattr(_mw, name)

    if name == "SocketConnection":
        from redact.realtime.sockets import SocketConnection

        return SocketConnection

    if name in (
        "BadRequest",
        "ConfigurationError",
        "HTTPError",
        "NotFound",
        "PayloadTooLarge",
        "RedactError",
        "SocketsUnavailable",
    ):
        from redact import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
