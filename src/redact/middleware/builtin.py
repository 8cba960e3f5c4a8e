"""Built-in middleware: request logging.

Logs one line per request before routing, then lets it continue.
"""

import logging

from redact.http.request import Request


class RequestLogger:
    """Log ``METHOD url`` for every request on the ``redact.access`` logger.

    Usage::

        app.use(RequestLogger())
    """

    __slots__ = ("level", "logger")

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self.logger = logger or logging.getLogger("redact.access")
        self.level = level

    def __call__(self, request: Request) -> None:
        self.logger.log(self.level, "%s request to %s", request.method, request.url)
