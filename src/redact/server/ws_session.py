"""WebSocket framing for one upgraded connection.

Bridges the ``websockets`` sans-I/O ``ServerProtocol`` to ASGI
``receive``/``send``. Imported only when websocket support is installed.
"""

import asyncio
import contextlib
import logging
from collections import deque

from websockets.frames import Frame, Opcode
from websockets.protocol import State
from websockets.server import ServerProtocol

from redact._internal.asgi import Message

logger = logging.getLogger("redact.connection")

READ_SIZE = 65_536

# Abnormal closure: the peer vanished without a close frame
ABNORMAL_CLOSE_CODE = 1006
# No status code was present in the close frame
NO_STATUS_CODE = 1005


class WebSocketSession:
    """ASGI websocket channel over an already-parsed upgrade request."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        head: bytes,
        tail: bytes,
        max_size: int,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.protocol = ServerProtocol(max_size=max_size)
        self.protocol.receive_data(head)
        events = self.protocol.events_received()
        self.handshake = events[0] if events else None
        self.accepted = False

        self._tail = tail
        self._connect_sent = False
        self._disconnected = False
        self._pending: deque[Message] = deque()
        self._fragments: list[bytes] = []
        self._fragment_opcode: Opcode | None = None

    # -- ASGI channel --

    async def receive(self) -> Message:
        if not self._connect_sent:
            self._connect_sent = True
            return {"type": "websocket.connect"}

        while not self._pending:
            if self._disconnected:
                return {"type": "websocket.disconnect", "code": ABNORMAL_CLOSE_CODE}
            if self._tail:
                data, self._tail = self._tail, b""
            else:
                try:
                    data = await self.reader.read(READ_SIZE)
                except ConnectionError:
                    data = b""
            if data:
                self.protocol.receive_data(data)
            else:
                self.protocol.receive_eof()
            self._process_events()
            await self._flush()
            if not data and not self._disconnected:
                self._signal_disconnect(ABNORMAL_CLOSE_CODE)

        return self._pending.popleft()

    async def send(self, message: Message) -> None:
        match message["type"]:
            case "websocket.accept":
                response = self.protocol.accept(self.handshake)
                self.protocol.send_response(response)
                await self._flush()
                if response.status_code == 101:
                    self.accepted = True
                else:
                    logger.info("Websocket handshake rejected with %d", response.status_code)
                    self._signal_disconnect(ABNORMAL_CLOSE_CODE)
            case "websocket.send":
                if self.protocol.state is not State.OPEN:
                    return
                text = message.get("text")
                if text is not None:
                    self.protocol.send_text(text.encode("utf-8"))
                else:
                    self.protocol.send_binary(message.get("bytes") or b"")
                await self._flush()
            case "websocket.close":
                if not self.accepted:
                    # Refused before the handshake; the connection layer aborts.
                    self._disconnected = True
                    return
                if self.protocol.state is State.OPEN:
                    self.protocol.send_close(message.get("code", 1000), message.get("reason") or "")
                    await self._flush()

    # -- Internals --

    def _process_events(self) -> None:
        for event in self.protocol.events_received():
            if not isinstance(event, Frame):
                continue
            match event.opcode:
                case Opcode.TEXT | Opcode.BINARY if event.fin:
                    self._pending.append(_message(event.opcode, event.data))
                case Opcode.TEXT | Opcode.BINARY:
                    self._fragment_opcode = event.opcode
                    self._fragments = [event.data]
                case Opcode.CONT if self._fragment_opcode is not None:
                    self._fragments.append(event.data)
                    if event.fin:
                        data = b"".join(self._fragments)
                        self._pending.append(_message(self._fragment_opcode, data))
                        self._fragments = []
                        self._fragment_opcode = None
                case Opcode.CLOSE:
                    rcvd = self.protocol.close_rcvd
                    self._signal_disconnect(rcvd.code if rcvd is not None else NO_STATUS_CODE)
        if self.protocol.state is State.CLOSED and not self._disconnected:
            self._signal_disconnect(ABNORMAL_CLOSE_CODE)

    def _signal_disconnect(self, code: int) -> None:
        if self._disconnected:
            return
        self._disconnected = True
        self._pending.append({"type": "websocket.disconnect", "code": code})

    async def _flush(self) -> None:
        for data in self.protocol.data_to_send():
            if data:
                self.writer.write(data)
            elif self.writer.can_write_eof():
                self.writer.write_eof()
        with contextlib.suppress(ConnectionError):
            await self.writer.drain()


def _message(opcode: Opcode, data: bytes) -> Message:
    if opcode is Opcode.TEXT:
        return {"type": "websocket.receive", "text": bytes(data).decode("utf-8")}
    return {"type": "websocket.receive", "bytes": bytes(data)}
