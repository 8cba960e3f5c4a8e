"""Tests for redact.routing.router — static table plus ordered dynamic routes."""

import pytest

from redact.errors import NotFound
from redact.routing.route import FunctionHandler, LiteralResponse, as_handler
from redact.routing.router import RouteTable


def _show(body, request):
    return {"id": request.params["id"]}


class TestAsHandler:
    def test_callable_becomes_function_handler(self) -> None:
        handler = as_handler(_show)
        assert isinstance(handler, FunctionHandler)
        assert handler.arity == 2
        assert handler.name == "_show"

    def test_zero_arg_callable(self) -> None:
        handler = as_handler(lambda: "ok")
        assert isinstance(handler, FunctionHandler)
        assert handler.arity == 0

    def test_literal_values(self) -> None:
        for value in ("Welcome", {"ok": True}, [1, 2], 3, None):
            handler = as_handler(value)
            assert isinstance(handler, LiteralResponse)
            assert handler.value == value

    def test_already_wrapped_passes_through(self) -> None:
        literal = LiteralResponse("x")
        assert as_handler(literal) is literal


class TestRegisterAndResolve:
    def test_static(self) -> None:
        table = RouteTable()
        table.register("GET", "/", "Welcome")
        match = table.resolve("GET", "/")
        assert match.handler == LiteralResponse("Welcome")
        assert match.params == {}

    def test_dynamic_params(self) -> None:
        table = RouteTable()
        table.register("GET", "/users/:id", _show)
        match = table.resolve("GET", "/users/42")
        assert match.params == {"id": "42"}

    def test_method_is_case_insensitive(self) -> None:
        table = RouteTable()
        table.register("get", "/", "ok")
        assert table.resolve("GET", "/").handler == LiteralResponse("ok")

    def test_methods_are_independent(self) -> None:
        table = RouteTable()
        table.register("GET", "/items", "list")
        with pytest.raises(NotFound):
            table.resolve("POST", "/items")

    def test_unknown_path_raises_not_found(self) -> None:
        table = RouteTable()
        table.register("GET", "/", "ok")
        with pytest.raises(NotFound) as exc_info:
            table.resolve("GET", "/missing")
        assert exc_info.value.status == 404

    def test_static_beats_dynamic(self) -> None:
        table = RouteTable()
        table.register("GET", "/users/:id", _show)
        table.register("GET", "/users/me", "me")
        match = table.resolve("GET", "/users/me")
        assert match.handler == LiteralResponse("me")
        assert match.params == {}

    def test_first_dynamic_match_wins(self) -> None:
        table = RouteTable()
        table.register("GET", "/things/:a", "first")
        table.register("GET", "/things/:b", "second")
        match = table.resolve("GET", "/things/1")
        assert match.handler == LiteralResponse("first")
        assert match.params == {"a": "1"}

    def test_static_reregistration_replaces(self) -> None:
        table = RouteTable()
        table.register("GET", "/", "old")
        table.register("GET", "/", "new")
        assert table.resolve("GET", "/").handler == LiteralResponse("new")
        assert len(table) == 1

    def test_query_string_is_not_part_of_the_path(self) -> None:
        table = RouteTable()
        table.register("GET", "/search", "ok")
        with pytest.raises(NotFound):
            table.resolve("GET", "/search?q=js")

    def test_param_with_suffix_is_routed_dynamically(self) -> None:
        table = RouteTable()
        table.register("GET", "/files/:name.json", "file")
        match = table.resolve("GET", "/files/report.json")
        assert match.params == {"name": "report"}
        assert table.routes[0].dynamic is True


class TestIntrospection:
    def test_routes_listing(self) -> None:
        table = RouteTable()
        table.register("GET", "/", "home")
        table.register("GET", "/users/:id", _show)
        table.register("POST", "/users", _show)
        listing = [(r.method, r.path, r.dynamic) for r in table.routes]
        assert listing == [
            ("GET", "/", False),
            ("GET", "/users/:id", True),
            ("POST", "/users", False),
        ]
        assert len(table) == 3
