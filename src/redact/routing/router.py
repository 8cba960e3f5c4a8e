"""Route table with exact-match static routes and ordered dynamic routes.

Static paths live in a dict per method, so the common case is a single
lookup regardless of how many parameterized routes exist. Dynamic paths
are tried in registration order and the first match wins; there is no
specificity ranking. A static path always beats a dynamic pattern that
would match the same concrete path.
"""

from typing import Any

from redact.errors import NotFound
from redact.routing.path import compile_path, extract_param_names, is_dynamic, match_path
from redact.routing.route import DynamicRoute, RouteHandler, RouteInfo, RouteMatch, as_handler

METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE")


class RouteTable:
    """Per-method static and dynamic route storage.

    Usage::

        table = RouteTable()
        table.register("GET", "/", "Welcome")
        table.register("GET", "/users/:id", show_user)
        match = table.resolve("GET", "/users/42")
        match.params  # {"id": "42"}
    """

    __slots__ = ("_dynamic", "_static")

    def __init__(self) -> None:
        self._static: dict[str, dict[str, RouteHandler]] = {}
        self._dynamic: dict[str, list[DynamicRoute]] = {}

    def register(self, method: str, path: str, handler: Any) -> None:
        """Register *handler* for (*method*, *path*).

        Re-registering a static (method, path) pair replaces the earlier
        handler. Dynamic routes are appended and never replaced.
        """
        method = method.upper()
        wrapped = as_handler(handler)

        if is_dynamic(path):
            self._dynamic.setdefault(method, []).append(
                DynamicRoute(
                    path=path,
                    pattern=compile_path(path),
                    param_names=extract_param_names(path),
                    handler=wrapped,
                )
            )
        else:
            self._static.setdefault(method, {})[path] = wrapped

    def resolve(self, method: str, path: str) -> RouteMatch:
        """Find the handler for *method* and *path*.

        Raises ``NotFound`` if no route matches.
        """
        method = method.upper()

        handler = self._static.get(method, {}).get(path)
        if handler is not None:
            return RouteMatch(handler=handler)

        for route in self._dynamic.get(method, ()):
            params = match_path(route.pattern, route.param_names, path)
            if params is not None:
                return RouteMatch(handler=route.handler, params=params)

        raise NotFound(f"No route matches {method} {path!r}")

    @property
    def routes(self) -> list[RouteInfo]:
        """Return all registered routes, static before dynamic per method."""
        result: list[RouteInfo] = []
        for method in sorted(self._static.keys() | self._dynamic.keys()):
            for path, handler in self._static.get(method, {}).items():
                result.append(RouteInfo(method=method, path=path, handler=handler))
            for route in self._dynamic.get(method, ()):
                result.append(
                    RouteInfo(method=method, path=route.path, handler=route.handler, dynamic=True)
                )
        return result

    def __len__(self) -> int:
        return sum(len(v) for v in self._static.values()) + sum(
            len(v) for v in self._dynamic.values()
        )
