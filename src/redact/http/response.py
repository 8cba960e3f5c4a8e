"""The response value handed to the transport.

Handlers usually return plain values and let negotiation build the
``Response``. Returning one directly sets headers or an explicit status.
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass, replace
from typing import Any

JSON = "application/json"
TEXT = "text/plain"


@dataclass(frozen=True, slots=True)
class Response:
    """Status, content type, extra headers and a text or bytes body.

    Frozen; ``with_status`` and ``with_header`` return modified copies::

        Response("created").with_status(201).with_header("Location", "/users/7")
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = TEXT
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        return replace(self, headers=(*self.headers, (name, value)))

    def header(self, name: str, default: str | None = None) -> str | None:
        """First value of the extra header *name*, compared case-insensitively."""
        wanted = name.lower()
        return next((v for n, v in self.headers if n.lower() == wanted), default)

    @property
    def body_bytes(self) -> bytes:
        """Body as sent on the wire (UTF-8 for text bodies)."""
        match self.body:
            case bytes():
                return self.body
            case _:
                return self.body.encode("utf-8")

    @property
    def text(self) -> str:
        match self.body:
            case bytes():
                return self.body.decode("utf-8")
            case _:
                return self.body

    def json(self) -> Any:
        """Decode a JSON body."""
        return json_module.loads(self.body_bytes)
