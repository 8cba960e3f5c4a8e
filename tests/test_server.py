"""End-to-end tests over real sockets: redact.server.connection and serve."""

import asyncio
import contextlib
import json
from collections.abc import AsyncIterator

import pytest
from websockets.asyncio.client import connect
from websockets.exceptions import InvalidHandshake

from redact.app import App
from redact.config import AppConfig
from redact.server.serve import bound_address


def _build_app(**config) -> App:
    app = App(AppConfig(**config))
    app.routes(
        {"path": "/", "GET": "Welcome"},
        {"path": "/users/:id", "GET": lambda body, req: {"id": req.params["id"]}},
        {"path": "/upload", "POST": lambda body, req: {"ok": True}},
        {"path": "/echo", "POST": lambda body: body},
    )
    app.socket({"path": "/echo", "message": lambda conn, data: conn.send(data)})
    return app


@contextlib.asynccontextmanager
async def _running(app: App) -> AsyncIterator[int]:
    server = await app.start(0, host="127.0.0.1")
    try:
        yield bound_address(server)[1]
    finally:
        server.close()
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(server.wait_closed(), timeout=5)


async def _read_response(reader: asyncio.StreamReader) -> tuple[int, dict[str, str], bytes]:
    head = await reader.readuntil(b"\r\n\r\n")
    status_line, *lines = head.decode("latin-1").split("\r\n")
    headers: dict[str, str] = {}
    for line in lines:
        if line:
            name, _, value = line.partition(":")
            headers[name.strip().lower()] = value.strip()
    body = await reader.readexactly(int(headers.get("content-length", "0")))
    return int(status_line.split(" ")[1]), headers, body


async def _drained(reader: asyncio.StreamReader) -> bytes:
    """Everything the server sends before the connection ends."""
    try:
        return await asyncio.wait_for(reader.read(), timeout=5)
    except (ConnectionResetError, BrokenPipeError):
        return b""


async def _wait_for_clients(app: App, count: int) -> None:
    for _ in range(100):
        if len(app.clients) == count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"expected {count} socket clients, have {len(app.clients)}")


class TestHTTP:
    async def test_get_text_and_json(self) -> None:
        async with _running(_build_app()) as port:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")
            status, headers, body = await _read_response(reader)
            assert (status, headers["content-type"], body) == (200, "text/plain", b"Welcome")

            # Same connection (keep-alive)
            writer.write(b"GET /users/42 HTTP/1.1\r\nHost: localhost\r\n\r\n")
            status, headers, body = await _read_response(reader)
            assert status == 200
            assert headers["content-type"] == "application/json"
            assert body == b'{"id":"42"}'

            writer.close()
            await writer.wait_closed()

    async def test_not_found_and_connection_close(self) -> None:
        async with _running(_build_app()) as port:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"GET /missing HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n")
            status, headers, body = await _read_response(reader)
            assert status == 404
            assert json.loads(body) == {"error": "Not Found"}
            assert headers["connection"] == "close"
            assert await reader.read() == b""
            writer.close()

    async def test_post_json_body(self) -> None:
        async with _running(_build_app()) as port:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            payload = b'{"name":"ada"}'
            writer.write(
                b"POST /echo HTTP/1.1\r\nHost: localhost\r\nContent-Type: application/json\r\n"
                + f"Content-Length: {len(payload)}\r\n\r\n".encode()
                + payload
            )
            status, _, body = await _read_response(reader)
            assert status == 200
            assert json.loads(body) == {"name": "ada"}
            writer.close()

    async def test_body_at_limit_is_answered(self) -> None:
        async with _running(_build_app()) as port:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(
                b"POST /upload HTTP/1.1\r\nHost: localhost\r\nContent-Length: 1000000\r\n\r\n"
            )
            writer.write(b"x" * 1_000_000)
            await writer.drain()
            status, _, body = await _read_response(reader)
            assert status == 200
            assert json.loads(body) == {"ok": True}
            writer.close()

    async def test_declared_body_over_limit_is_aborted(self) -> None:
        async with _running(_build_app()) as port:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(
                b"POST /upload HTTP/1.1\r\nHost: localhost\r\nContent-Length: 1000001\r\n\r\n"
            )
            with contextlib.suppress(ConnectionResetError, BrokenPipeError):
                writer.write(b"x" * 1000)
                await writer.drain()
            assert b"HTTP/1.1" not in await _drained(reader)
            writer.close()

    async def test_streamed_body_over_limit_is_aborted(self) -> None:
        async with _running(_build_app(max_body_size=10)) as port:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(
                b"POST /upload HTTP/1.1\r\nHost: localhost\r\nTransfer-Encoding: chunked\r\n\r\n"
                b"b\r\n12345678901\r\n0\r\n\r\n"
            )
            with contextlib.suppress(ConnectionResetError, BrokenPipeError):
                await writer.drain()
            assert b"HTTP/1.1" not in await _drained(reader)
            writer.close()

    async def test_encoded_slash_and_bad_host_still_route(self) -> None:
        async with _running(_build_app()) as port:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"GET /users/a%2Fb HTTP/1.1\r\nHost: [\r\n\r\n")
            status, _, body = await _read_response(reader)
            assert status == 200
            assert json.loads(body) == {"id": "a%2Fb"}
            writer.close()

    async def test_malformed_request_is_400(self) -> None:
        async with _running(_build_app()) as port:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"NOT A REQUEST\r\n\r\n")
            status, headers, _ = await _read_response(reader)
            assert status == 400
            assert headers["connection"] == "close"
            writer.close()

    async def test_oversized_head_is_431(self) -> None:
        async with _running(_build_app(max_header_size=1024)) as port:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"GET / HTTP/1.1\r\nX-Filler: " + b"a" * 4096)
            status, _, _ = await _read_response(reader)
            assert status == 431
            writer.close()

    async def test_on_ready_gets_bound_address(self) -> None:
        app = _build_app()
        seen: list[tuple[str, int]] = []
        server = await app.start(0, seen.append, host="127.0.0.1")
        try:
            assert seen == [bound_address(server)]
        finally:
            server.close()
            await server.wait_closed()


class TestWebSocket:
    async def test_echo(self) -> None:
        async with _running(_build_app()) as port:
            async with connect(f"ws://127.0.0.1:{port}/echo") as ws:
                await ws.send('{"hello":"world"}')
                assert json.loads(await ws.recv()) == {"hello": "world"}
                await ws.send("plain text")
                assert await ws.recv() == "plain text"

    async def test_unknown_path_is_destroyed(self) -> None:
        async with _running(_build_app()) as port:
            with pytest.raises((InvalidHandshake, OSError, EOFError)):
                async with connect(f"ws://127.0.0.1:{port}/nowhere", open_timeout=5):
                    pass

    async def test_http_still_served_alongside_sockets(self) -> None:
        app = _build_app()
        async with _running(app) as port:
            async with connect(f"ws://127.0.0.1:{port}/echo") as ws:
                await _wait_for_clients(app, 1)
                reader, writer = await asyncio.open_connection("127.0.0.1", port)
                writer.write(b"GET / HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n")
                status, _, body = await _read_response(reader)
                assert (status, body) == (200, b"Welcome")
                writer.close()
                await ws.send("ping")
                assert await ws.recv() == "ping"

    async def test_broadcast_over_the_wire(self) -> None:
        app = App()
        app.socket(path="/room", message=lambda conn, data: app.broadcast(data, exclude=conn))
        async with _running(app) as port:
            async with (
                connect(f"ws://127.0.0.1:{port}/room") as alice,
                connect(f"ws://127.0.0.1:{port}/room") as bob,
            ):
                await _wait_for_clients(app, 2)
                await alice.send('{"from":"alice"}')
                assert json.loads(await asyncio.wait_for(bob.recv(), 5)) == {"from": "alice"}
