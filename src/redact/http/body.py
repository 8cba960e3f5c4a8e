"""Bounded JSON body ingestion.

Reads the request body from the ASGI ``receive`` callable under a hard
size cap. Crossing the cap raises ``PayloadTooLarge`` immediately, before
the rest of the body is read; the dispatcher turns that into a dropped
connection rather than a response.
"""

import json
import logging
from typing import Any

from redact._internal.asgi import Receive
from redact.config import BodyPolicy
from redact.errors import BadRequest, ClientDisconnected, PayloadTooLarge

logger = logging.getLogger("redact.server")


async def read_body(
    receive: Receive,
    *,
    limit: int,
    content_length: int | None = None,
) -> bytes:
    """Accumulate the raw body, failing as soon as it exceeds *limit* bytes."""
    if content_length is not None and content_length > limit:
        raise PayloadTooLarge(limit, content_length)

    chunks: list[bytes] = []
    received = 0
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            raise ClientDisconnected("Client disconnected before the body was complete")

        chunk = message.get("body", b"")
        if chunk:
            received += len(chunk)
            if received > limit:
                raise PayloadTooLarge(limit, received)
            chunks.append(chunk)
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def parse_json_body(raw: bytes, *, policy: BodyPolicy = "lenient") -> Any:
    """Parse *raw* as JSON. An empty body is ``{}``.

    Under the ``lenient`` policy a malformed body is also ``{}``; under
    ``strict`` it raises ``BadRequest``.
    """
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        if policy == "strict":
            raise BadRequest(f"Malformed JSON body: {exc}") from exc
        logger.debug("Ignoring malformed JSON body (%d bytes): %s", len(raw), exc)
        return {}


async def read_json_body(
    receive: Receive,
    *,
    limit: int,
    policy: BodyPolicy = "lenient",
    content_length: int | None = None,
) -> Any:
    """Read and parse a JSON request body under a size cap."""
    raw = await read_body(receive, limit=limit, content_length=content_length)
    return parse_json_body(raw, policy=policy)
