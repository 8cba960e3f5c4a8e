"""Optional capability flags, resolved once at import time.

WebSocket support depends on the optional ``websockets`` package. The
flag is checked when a socket route is registered and when the connection
server meets an upgrade request; nothing imports ``websockets`` lazily
and recovers from the failure at runtime.
"""

from importlib.util import find_spec

SOCKETS_AVAILABLE: bool = find_spec("websockets") is not None
"""True when the ``websockets`` package is installed."""
