"""Tests for redact.server.negotiation — return value to Response mapping."""

import pytest

from redact.http.response import JSON, TEXT, Response
from redact.server.negotiation import dumps, negotiate


class TestNegotiate:
    def test_string_is_text(self) -> None:
        response = negotiate("Welcome")
        assert response.status == 200
        assert response.content_type == TEXT
        assert response.text == "Welcome"

    def test_dict_is_compact_json(self) -> None:
        response = negotiate({"id": "42", "tags": ["a", "b"]})
        assert response.content_type == JSON
        assert response.text == '{"id":"42","tags":["a","b"]}'

    def test_list_is_json(self) -> None:
        assert negotiate([1, 2]).text == "[1,2]"

    def test_non_ascii_is_not_escaped(self) -> None:
        assert negotiate({"name": "Zoë"}).text == '{"name":"Zoë"}'

    def test_none_is_empty_text(self) -> None:
        response = negotiate(None)
        assert response.content_type == TEXT
        assert response.text == ""

    def test_bool_is_text(self) -> None:
        assert negotiate(True).text == "true"
        assert negotiate(False).text == "false"

    def test_number_is_text(self) -> None:
        assert negotiate(42).text == "42"
        assert negotiate(1.5).text == "1.5"

    def test_bytes_sent_as_is(self) -> None:
        response = negotiate(b"\x00raw")
        assert response.body_bytes == b"\x00raw"
        assert response.content_type == TEXT

    def test_tuple_sets_status(self) -> None:
        response = negotiate(({"error": "nope"}, 403))
        assert response.status == 403
        assert response.json() == {"error": "nope"}

    def test_explicit_status_overrides_tuple(self) -> None:
        assert negotiate(("x", 201), 500).status == 500

    def test_plain_tuple_is_json(self) -> None:
        response = negotiate(("a", "b"))
        assert response.content_type == JSON
        assert response.text == '["a","b"]'

    def test_bool_second_element_is_not_a_status(self) -> None:
        response = negotiate(("a", True))
        assert response.status == 200
        assert response.text == '["a",true]'

    def test_response_passes_through(self) -> None:
        original = Response("hi", status=202)
        assert negotiate(original) is original
        assert negotiate(original, 418).status == 418

    def test_unserializable_raises_type_error(self) -> None:
        with pytest.raises(TypeError):
            negotiate({"when": object()})


class TestDumps:
    def test_no_whitespace(self) -> None:
        assert dumps({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'
