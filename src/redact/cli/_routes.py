"""``redact routes`` — list registered routes.

Resolves an import string to a redact App and prints every HTTP route
with method, path, and handler, followed by the socket routes.
"""

import argparse
import sys

from redact.cli._resolve import resolve_app
from redact.routing.route import FunctionHandler, LiteralResponse, RouteHandler


def _describe(handler: RouteHandler) -> str:
    match handler:
        case FunctionHandler():
            return handler.name
        case LiteralResponse(value=value):
            text = repr(value)
            return f"<literal {text if len(text) <= 40 else text[:37] + '...'}>"
    return repr(handler)


def run_routes(args: argparse.Namespace) -> None:
    """Print a METHOD / PATH / HANDLER table for ``args.app``."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    rows = [
        (route.method, route.path, _describe(route.handler)) for route in app.route_table.routes
    ]
    rows.extend(("SOCKET", route.path, "") for route in app.socket_routes.routes)

    if not rows:
        print("No routes registered.")
        return

    max_methods = max(max(len(r[0]) for r in rows), 6)  # "METHOD" header
    max_path = max(max(len(r[1]) for r in rows), 4)  # "PATH" header

    fmt = f"{{:<{max_methods}}}  {{:<{max_path}}}  {{}}"
    print(fmt.format("METHOD", "PATH", "HANDLER"))
    sep_len = max_methods + max_path + 4 + max((len(r[2]) for r in rows), default=0)
    print("-" * min(sep_len, 80))
    for method, path, handler_name in rows:
        print(fmt.format(method, path, handler_name).rstrip())
