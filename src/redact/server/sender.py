"""ASGI response sending — translates Response objects to ASGI messages.

``ResponseWriter`` guards the one-response-per-request rule: once a
response has started, every later send is a no-op.
"""

import logging
from typing import Any

from redact._internal.asgi import Send
from redact.http.response import Response
from redact.server.negotiation import negotiate

logger = logging.getLogger("redact.server")


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(response: Response, send: Send) -> None:
    """Translate a Response into ASGI send() calls."""
    raw_headers: list[tuple[bytes, bytes]] = [
        (b"content-type", response.content_type.encode("latin-1")),
    ]
    for name, value in response.headers:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    body = response.body_bytes if _body_allowed(response.status) else b""

    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )


class ResponseWriter:
    """Sends at most one response for a request.

    Usage::

        writer = ResponseWriter(send)
        await writer.send({"ok": True})
        await writer.send("ignored")  # already responded
    """

    __slots__ = ("_send", "_status", "started")

    def __init__(self, send: Send) -> None:
        self._send = send
        self._status: int | None = None
        self.started = False

    @property
    def status(self) -> int | None:
        """Status of the response that was sent, if any."""
        return self._status

    async def send(self, value: Any, status: int | None = None) -> bool:
        """Negotiate *value* and send it. Returns False if already responded.

        Raises ``TypeError`` (before anything is written) when *value*
        cannot be serialized.
        """
        if self.started:
            logger.debug("Response already sent; dropping %s", type(value).__name__)
            return False
        response = negotiate(value, status)
        self.started = True
        self._status = response.status
        await send_response(response, self._send)
        return True
