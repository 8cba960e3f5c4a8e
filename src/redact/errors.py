"""Redact exception hierarchy.

Shared across the router, body reader, dispatcher, and connection server
so every module raises and catches the same types.
"""

from dataclasses import dataclass


class RedactError(Exception):
    """Base for all redact-specific errors."""


class ConfigurationError(RedactError):
    """Raised when app configuration or route registration is invalid."""


class SocketsUnavailable(ConfigurationError):  # noqa: N818
    """Raised when a socket route is registered without WebSocket support.

    Socket support requires the optional ``websockets`` package
    (``pip install redact[sockets]``). HTTP dispatch is unaffected.
    """

    def __init__(self) -> None:
        super().__init__(
            "WebSocket support is not installed. "
            "Install it with: pip install redact[sockets]"
        )


@dataclass(frozen=True, slots=True)
class HTTPError(RedactError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, the body reader, or handlers. The dispatcher
    catches these and responds with ``{"error": detail}`` at ``status``.
    """

    status: int
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class BadRequest(HTTPError):  # noqa: N818
    """400 — the request body could not be parsed (strict body policy)."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class PayloadTooLarge(RedactError):  # noqa: N818
    """The request body exceeded the configured size cap.

    Never surfaced as an HTTP response: the dispatcher sends nothing and
    the connection server aborts the transport.
    """

    def __init__(self, limit: int, received: int) -> None:
        self.limit = limit
        self.received = received
        super().__init__(f"Request body exceeded {limit} bytes ({received} received)")


class ClientDisconnected(RedactError):
    """The client went away before the request body was fully received."""
