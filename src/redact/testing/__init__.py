"""Test utilities for redact applications.

    from redact.testing import TestClient
"""

from redact.testing.client import TestClient, WebSocketTestSession

__all__ = [
    "TestClient",
    "WebSocketTestSession",
]
