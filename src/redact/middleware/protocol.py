"""Middleware protocol.

A middleware is any callable matching::

    def my_mw(request: Request) -> Any | None: ...
    async def my_mw(request: Request) -> Any | None: ...

Returning ``None`` lets the request continue. Returning anything else
stops the chain and sends that value as the response. No base class
required; the pipeline checks the shape, not the lineage.
"""

from collections.abc import Awaitable
from typing import Any, Protocol

from redact.http.request import Request


class Middleware(Protocol):
    """Protocol for redact middleware.

    Accepts both functions and callable objects::

        # Function middleware
        def block_admin(request: Request):
            if request.path.startswith("/admin"):
                return {"error": "Unauthorized Access"}

        # Class middleware
        class AttachUser:
            async def __call__(self, request: Request):
                request.user = await load_user(request.headers.get("authorization"))
    """

    def __call__(self, request: Request) -> Any | Awaitable[Any]: ...
