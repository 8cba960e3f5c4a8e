"""Content negotiation — maps return values to Response objects.

Inspects the value returned by a handler or middleware and produces the
Response to send. isinstance-based dispatch, no magic, fully predictable.
The content type is always exactly ``application/json`` or ``text/plain``.
"""

import json as json_module
from typing import Any

from redact.http.response import JSON, TEXT, Response


def dumps(value: Any) -> str:
    """Serialize *value* as compact JSON (no pretty-printing)."""
    return json_module.dumps(value, separators=(",", ":"), ensure_ascii=False)


def negotiate(value: Any, status: int | None = None) -> Response:
    """Convert a handler's return value to a Response.

    Dispatch order:

    1. ``Response``            -> pass through (status override applied)
    2. ``(value, int)``        -> negotiate value, override status
    3. ``str``                 -> text/plain
    4. ``bytes``               -> text/plain, sent as-is
    5. ``None``                -> text/plain, empty body
    6. ``bool``                -> text/plain, ``true`` / ``false``
    7. ``int`` / ``float``     -> text/plain
    8. anything else           -> application/json (dict, list, tuple, ...)

    Raises ``TypeError`` when a structured value is not JSON-serializable.
    """
    match value:
        case Response():
            return value if status is None else value.with_status(status)
        case tuple([inner, int() as code]) if not isinstance(code, bool):
            return negotiate(inner, status if status is not None else code)

    code = 200 if status is None else status

    match value:
        case str():
            return Response(body=value, status=code, content_type=TEXT)
        case bytes() | bytearray():
            return Response(body=bytes(value), status=code, content_type=TEXT)
        case None:
            return Response(body="", status=code, content_type=TEXT)
        case bool():
            return Response(body="true" if value else "false", status=code, content_type=TEXT)
        case int() | float():
            return Response(body=str(value), status=code, content_type=TEXT)
        case _:
            return Response(body=dumps(value), status=code, content_type=JSON)
