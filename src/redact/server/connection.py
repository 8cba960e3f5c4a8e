"""Raw connection handling — HTTP/1.1 over asyncio streams.

Each accepted TCP connection gets one ``HTTPConnection``. Requests are
parsed incrementally with ``httptools`` and handed to the ASGI app one at
a time (keep-alive, no concurrent pipelining). The body is read from the
socket only when the app asks for it, so an oversized upload is cut off
after at most one extra read.

Transport rules the app cannot express through ASGI:

- The app returns without starting a response -> the socket is aborted
  (RST, no HTTP response frame). The dispatcher does this on purpose for
  bodies over the size cap.
- A websocket upgrade the app closes before accepting -> the socket is
  aborted, again with no HTTP response.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from http import HTTPStatus
from typing import Any
from urllib.parse import unquote

import httptools

from redact._internal import capabilities
from redact._internal.asgi import ASGIApp, Message
from redact.config import AppConfig

logger = logging.getLogger("redact.connection")

READ_SIZE = 65_536

_DISCONNECT: Message = {"type": "http.disconnect"}


class RequestCycle:
    """One request/response exchange on a connection."""

    __slots__ = (
        "body",
        "body_done",
        "chunked",
        "headers",
        "http_version",
        "keep_alive",
        "message_complete",
        "method",
        "response_complete",
        "response_started",
        "status",
        "upgrade",
        "url",
    )

    def __init__(
        self,
        *,
        method: str,
        url: bytes,
        headers: list[tuple[bytes, bytes]],
        http_version: str,
        keep_alive: bool,
        upgrade: bytes | None,
    ) -> None:
        self.method = method
        self.url = url
        self.headers = headers
        self.http_version = http_version
        self.keep_alive = keep_alive
        self.upgrade = upgrade
        self.body: deque[bytes] = deque()
        self.message_complete = False
        self.body_done = False
        self.response_started = False
        self.response_complete = False
        self.chunked = False
        self.status: int | None = None

    @property
    def is_websocket(self) -> bool:
        return self.upgrade is not None and self.upgrade.lower() == b"websocket"


def _status_line(status: int) -> bytes:
    try:
        reason = HTTPStatus(status).phrase
    except ValueError:
        reason = ""
    return f"HTTP/1.1 {status} {reason}\r\n".encode("latin-1")


class HTTPConnection:
    """Drives one TCP connection: parse, dispatch, respond, repeat.

    Also the ``httptools`` parser callback target; the ``on_*`` methods
    are called synchronously from ``parser.feed_data()``.
    """

    def __init__(
        self,
        app: ASGIApp,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        config: AppConfig,
    ) -> None:
        self.app = app
        self.reader = reader
        self.writer = writer
        self.config = config
        self.parser = httptools.HttpRequestParser(self)
        self.client: tuple[str, int] | None = _address(writer.get_extra_info("peername"))
        self.server: tuple[str, int] | None = _address(writer.get_extra_info("sockname"))

        self._cycles: deque[RequestCycle] = deque()
        self._current: RequestCycle | None = None
        self._url = b""
        self._headers: list[tuple[bytes, bytes]] = []
        self._upgrade_tail = b""
        self._eof = False
        self._aborted = False

    # -- httptools callbacks --

    def on_message_begin(self) -> None:
        self._url = b""
        self._headers = []
        self._current = None

    def on_url(self, url: bytes) -> None:
        self._url += url

    def on_header(self, name: bytes, value: bytes) -> None:
        self._headers.append((name.lower(), value))

    def on_headers_complete(self) -> None:
        upgrade = None
        if self.parser.should_upgrade():
            upgrade = dict(self._headers).get(b"upgrade", b"")
        cycle = RequestCycle(
            method=self.parser.get_method().decode("ascii"),
            url=self._url,
            headers=self._headers,
            http_version=self.parser.get_http_version(),
            keep_alive=self.parser.should_keep_alive(),
            upgrade=upgrade,
        )
        self._current = cycle
        self._cycles.append(cycle)

    def on_body(self, body: bytes) -> None:
        if self._current is not None:
            self._current.body.append(bytes(body))

    def on_message_complete(self) -> None:
        if self._current is not None:
            self._current.message_complete = True

    # -- Connection loop --

    async def run(self) -> None:
        """Serve requests until the client leaves or keep-alive ends."""
        try:
            while True:
                cycle = await self._next_cycle()
                if cycle is None:
                    break
                if cycle.is_websocket:
                    await self._run_websocket(cycle)
                    break
                if not await self._run_http(cycle):
                    break
        except ConnectionError as exc:
            logger.debug("Connection from %s lost: %s", self.client, exc)
        finally:
            if not self._aborted:
                self.writer.close()
                with contextlib.suppress(ConnectionError):
                    await self.writer.wait_closed()

    def abort(self) -> None:
        """Drop the connection immediately, without a response."""
        self._aborted = True
        self.writer.transport.abort()

    def _feed(self, data: bytes) -> bool:
        """Feed bytes to the parser. Returns False on malformed input."""
        try:
            self.parser.feed_data(data)
        except httptools.HttpParserUpgrade as exc:
            offset = exc.args[0] if exc.args else len(data)
            self._upgrade_tail = data[offset:]
            if self._current is not None:
                # The parser stops at an upgrade; there is no body to wait for.
                self._current.message_complete = True
        except httptools.HttpParserError as exc:
            logger.warning("Malformed request from %s: %s", self.client, exc)
            return False
        return True

    async def _read(self) -> bytes:
        if self._eof:
            return b""
        data = await self.reader.read(READ_SIZE)
        if not data:
            self._eof = True
        return data

    async def _next_cycle(self) -> RequestCycle | None:
        """Read until a full request head is parsed."""
        head_bytes = 0
        while not self._cycles:
            data = await self._read()
            if not data:
                return None
            head_bytes += len(data)
            if not self._feed(data):
                await self._reject(400)
                return None
            if not self._cycles and head_bytes > self.config.max_header_size:
                logger.warning("Request head from %s exceeds %d bytes", self.client, head_bytes)
                await self._reject(431)
                return None
        return self._cycles.popleft()

    async def _reject(self, status: int) -> None:
        """Answer a request the app never sees, then close."""
        body = HTTPStatus(status).phrase.encode("latin-1")
        self.writer.write(
            _status_line(status)
            + b"content-type: text/plain\r\n"
            + f"content-length: {len(body)}\r\n".encode("latin-1")
            + b"connection: close\r\n\r\n"
            + body
        )
        with contextlib.suppress(ConnectionError):
            await self.writer.drain()

    # -- HTTP --

    def _scope(self, cycle: RequestCycle, scope_type: str) -> dict[str, Any]:
        target = cycle.url.partition(b"#")[0]
        raw_path, _, query_string = target.partition(b"?")
        scope: dict[str, Any] = {
            "type": scope_type,
            "asgi": {"version": "3.0", "spec_version": "2.3"},
            "http_version": cycle.http_version,
            "scheme": "ws" if scope_type == "websocket" else "http",
            "path": unquote(raw_path.decode("latin-1")),
            "raw_path": raw_path,
            "query_string": query_string,
            "root_path": "",
            "headers": cycle.headers,
            "client": self.client,
            "server": self.server,
        }
        if scope_type == "http":
            scope["method"] = cycle.method
        else:
            scope["subprotocols"] = []
        return scope

    async def _run_http(self, cycle: RequestCycle) -> bool:
        """Dispatch one HTTP request. Returns True to keep the connection open."""
        if cycle.upgrade is not None:
            # Non-websocket upgrades are served as plain requests, then closed.
            cycle.keep_alive = False

        async def receive() -> Message:
            return await self._receive_body(cycle)

        async def send(message: Message) -> None:
            await self._send_http(cycle, message)

        try:
            await self.app(self._scope(cycle, "http"), receive, send)
        except Exception:
            logger.exception("Unhandled error serving %s %s", cycle.method, cycle.url)
            if not cycle.response_started:
                await self._reject(500)
            return False

        if not cycle.response_started or not cycle.response_complete:
            logger.debug("No complete response for %s %s; aborting", cycle.method, cycle.url)
            self.abort()
            return False

        return (
            self.config.keep_alive
            and cycle.keep_alive
            and cycle.message_complete
            and not cycle.body
        )

    async def _receive_body(self, cycle: RequestCycle) -> Message:
        if cycle.body_done:
            return _DISCONNECT
        while not cycle.body and not cycle.message_complete:
            data = await self._read()
            if not data or not self._feed(data):
                return _DISCONNECT
        if cycle.body:
            chunk = cycle.body.popleft()
            more = bool(cycle.body) or not cycle.message_complete
        else:
            chunk, more = b"", False
        cycle.body_done = not more
        return {"type": "http.request", "body": chunk, "more_body": more}

    async def _send_http(self, cycle: RequestCycle, message: Message) -> None:
        message_type = message["type"]

        if message_type == "http.response.start":
            if cycle.response_started:
                msg = "Response already started"
                raise RuntimeError(msg)
            cycle.response_started = True
            cycle.status = message["status"]
            headers = list(message.get("headers", ()))
            names = {bytes(name).lower() for name, _ in headers}
            if b"content-length" not in names:
                cycle.chunked = True
                headers.append((b"transfer-encoding", b"chunked"))
            if not (self.config.keep_alive and cycle.keep_alive):
                headers.append((b"connection", b"close"))
            head = [_status_line(cycle.status)]
            head.extend(bytes(name) + b": " + bytes(value) + b"\r\n" for name, value in headers)
            head.append(b"\r\n")
            self.writer.write(b"".join(head))

        elif message_type == "http.response.body":
            if not cycle.response_started:
                msg = "Response body sent before response start"
                raise RuntimeError(msg)
            if cycle.response_complete:
                return
            body = message.get("body", b"")
            more = message.get("more_body", False)
            if cycle.chunked:
                if body:
                    self.writer.write(f"{len(body):x}\r\n".encode("latin-1") + body + b"\r\n")
                if not more:
                    self.writer.write(b"0\r\n\r\n")
            elif body:
                self.writer.write(body)
            if not more:
                cycle.response_complete = True
            await self.writer.drain()

    # -- WebSocket --

    async def _run_websocket(self, cycle: RequestCycle) -> None:
        if not capabilities.SOCKETS_AVAILABLE:
            logger.warning(
                "Refusing websocket upgrade for %r: websocket support is not installed",
                cycle.url,
            )
            self.abort()
            return

        from redact.server.ws_session import WebSocketSession

        session = WebSocketSession(
            self.reader,
            self.writer,
            head=_handshake_head(cycle),
            tail=self._upgrade_tail,
            max_size=self.config.websocket_max_message_size,
        )
        if session.handshake is None:
            logger.warning("Invalid websocket handshake from %s", self.client)
            self.abort()
            return

        try:
            await self.app(self._scope(cycle, "websocket"), session.receive, session.send)
        except Exception:
            logger.exception("Unhandled error in websocket session for %r", cycle.url)

        if not session.accepted:
            self.abort()


def _handshake_head(cycle: RequestCycle) -> bytes:
    """Rebuild the upgrade request head for the websocket handshake parser."""
    lines = [b"GET " + cycle.url + b" HTTP/1.1\r\n"]
    lines.extend(name + b": " + value + b"\r\n" for name, value in cycle.headers)
    lines.append(b"\r\n")
    return b"".join(lines)


def _address(info: Any) -> tuple[str, int] | None:
    if isinstance(info, tuple) and len(info) >= 2:
        return (str(info[0]), int(info[1]))
    return None
