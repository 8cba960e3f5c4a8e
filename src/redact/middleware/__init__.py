"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    def mw(request: Request) -> Any | None

Built-in middleware:
    RequestLogger -- Log every request before routing
"""

from redact.middleware.builtin import RequestLogger
from redact.middleware.pipeline import Continue, MiddlewarePipeline, Respond
from redact.middleware.protocol import Middleware

__all__ = [
    "Continue",
    "Middleware",
    "MiddlewarePipeline",
    "RequestLogger",
    "Respond",
]
