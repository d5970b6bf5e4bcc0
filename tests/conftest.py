"""Pytest configuration and fixtures for econ_client tests."""

from __future__ import annotations

import asyncio
import socket
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator

import pytest
import pytest_asyncio

BANNER = b"Enter password:\n"

Handler = Callable[
    ["StubConsole", asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]
]


class StubConsole:
    """In-process console server bound to an ephemeral localhost port."""

    def __init__(self, handler: Handler) -> None:
        self._handler = handler
        self._server: asyncio.Server | None = None
        self._writers: list[asyncio.StreamWriter] = []
        self.received: list[bytes] = []
        self.host = "127.0.0.1"
        self.port = 0

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, self.host, 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        for writer in self._writers:
            writer.close()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()

    async def _handle(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._writers.append(writer)
        try:
            await self._handler(self, reader, writer)
        except ConnectionError:
            pass
        finally:
            writer.close()


def handshake_handler(reply: bytes, *, echo: bool = False) -> Handler:
    """Build a handler that greets, reads the password and sends ``reply``.

    With ``echo`` every later line is answered with ``"> <line>"``; otherwise
    the handler waits for the client to close.
    """

    async def handle(
        stub: StubConsole,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        writer.write(BANNER)
        await writer.drain()

        stub.received.append(await reader.readline())
        writer.write(reply)
        await writer.drain()

        while line := await reader.readline():
            stub.received.append(line)
            if echo:
                writer.write(b"> " + line)
                await writer.drain()

    return handle


@pytest_asyncio.fixture
async def stub_console() -> AsyncIterator[Callable[[Handler], Awaitable[StubConsole]]]:
    """Factory fixture starting stub console servers, stopped on teardown."""
    stubs: list[StubConsole] = []

    async def start(handler: Handler) -> StubConsole:
        stub = StubConsole(handler)
        await stub.start()
        stubs.append(stub)
        return stub

    yield start

    for stub in stubs:
        await stub.stop()


@pytest.fixture
def socket_pair() -> Iterator[tuple[socket.socket, socket.socket]]:
    """Connected non-blocking (client, peer) sockets."""
    client, peer = socket.socketpair()
    client.setblocking(False)
    peer.setblocking(False)
    yield client, peer
    client.close()
    peer.close()


@pytest.fixture
def free_port() -> int:
    """A localhost port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def peer_send(peer: socket.socket, data: bytes) -> None:
    await asyncio.get_running_loop().sock_sendall(peer, data)


async def peer_recv_line(peer: socket.socket) -> bytes:
    """Read from the peer socket until a newline arrives."""
    loop = asyncio.get_running_loop()
    data = b""
    while not data.endswith(b"\n"):
        chunk = await loop.sock_recv(peer, 1024)
        if not chunk:
            break
        data += chunk
    return data


async def serve_handshake(peer: socket.socket, reply: bytes) -> bytes:
    """Play the server side of one handshake, returning the password line."""
    await peer_send(peer, BANNER)
    password = await peer_recv_line(peer)
    await peer_send(peer, reply)
    return password
