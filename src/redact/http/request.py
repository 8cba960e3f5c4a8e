"""Per-request context.

The request is mutable. Middleware attach derived fields
(``request.user = ...``) and every later middleware and the handler see
them; one instance lives for the whole request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from redact._internal.asgi import Scope
from redact.http.headers import Headers
from redact.http.query import parse_query, parse_target


@dataclass(eq=False)
class Request:
    """The request context handed to middleware and handlers.

    ``params`` stays empty until a dynamic route matches. ``body`` stays
    an empty dict unless a POST/PUT body parsed to something else.
    """

    method: str
    url: str
    path: str
    query: dict[str, str]
    headers: Headers
    params: dict[str, str] = field(default_factory=dict)
    body: Any = field(default_factory=dict)
    href: str = ""
    http_version: str = "1.1"
    client: tuple[str, int] | None = None
    server: tuple[str, int] | None = None
    state: dict[str, Any] = field(default_factory=dict)

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @classmethod
    def from_asgi(cls, scope: Scope) -> Request:
        """Create a Request from an ASGI ``http`` or ``websocket`` scope."""
        headers = Headers(tuple((bytes(n), bytes(v)) for n, v in scope.get("headers", ())))
        raw_path = scope.get("raw_path") or scope["path"].encode("utf-8")
        target = raw_path.decode("latin-1")
        query_string = scope.get("query_string", b"").decode("latin-1")
        if query_string:
            target = f"{target}?{query_string}"

        parsed = parse_target(target, headers.get("host"))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope.get("method", "GET").upper(),
            url=target,
            path=parsed.path,
            query=parse_query(parsed.query_string),
            headers=headers,
            href=parsed.href,
            http_version=scope.get("http_version", "1.1"),
            client=tuple(client) if client else None,
            server=tuple(server) if server else None,
        )
