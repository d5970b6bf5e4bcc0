"""Raw external console transport: one TCP socket plus line framing."""

from __future__ import annotations

import asyncio
import logging
import socket

from .errors import EconIoError
from .framing import LineFramer
from .protocol import (
    DEFAULT_AUTH_MESSAGE,
    DEFAULT_BUFFER_SIZE,
    DEFAULT_CONNECT_TIMEOUT,
    encode_line,
    is_auth_success,
)
from .tcp import open_tcp_socket

_LOGGER = logging.getLogger(__name__)


def _format_peer(sock: socket.socket) -> str:
    try:
        peer = sock.getpeername()
    except OSError:
        return "unknown"
    if isinstance(peer, tuple):
        return f"{peer[0]}:{peer[1]}"
    return str(peer) or "local"


class EconTransport:
    """Owns one console connection, its fixed read buffer and line queue.

    Usage:
        transport = await EconTransport.connect("127.0.0.1", 8303)
        if await transport.auth("secret"):
            await transport.send("status")
            await transport.read()
            line = transport.pop_line()
        await transport.disconnect()

    Calls must be serialized by the caller; the transport has no internal
    locking and never reads in the background.
    """

    def __init__(
        self,
        sock: socket.socket,
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        auth_message: str = DEFAULT_AUTH_MESSAGE,
    ) -> None:
        """Wrap an already connected non-blocking socket.

        Args:
            sock: Connected socket, switched to non-blocking mode
            buffer_size: Read buffer capacity in bytes
            auth_message: Prefix of the server line that confirms auth
        """
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")

        self._sock = sock
        self._buffer = bytearray(buffer_size)
        self._view = memoryview(self._buffer)
        self._framer = LineFramer()
        self._authed = False
        self._auth_message = auth_message
        self._closed = False
        self._peer = _format_peer(sock)

    @classmethod
    async def connect(
        cls,
        host: str,
        port: int,
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        timeout: float = DEFAULT_CONNECT_TIMEOUT,
        auth_message: str = DEFAULT_AUTH_MESSAGE,
    ) -> EconTransport:
        """Connect to a console and return a fresh, unauthenticated transport.

        Raises:
            EconConnectTimeout: If the connection is not made within timeout
            EconConnectionError: If the connection fails
        """
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")

        _LOGGER.debug("[%s:%s] Connecting (timeout %.1fs)", host, port, timeout)
        sock = await open_tcp_socket(host, port, timeout=timeout)
        transport = cls(sock, buffer_size=buffer_size, auth_message=auth_message)
        _LOGGER.info("[%s] Connected", transport._peer)
        return transport

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def authenticated(self) -> bool:
        """Whether a handshake on this connection has succeeded."""
        return self._authed

    @property
    def auth_message(self) -> str:
        return self._auth_message

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)

    @property
    def pending_lines(self) -> int:
        """Number of received lines not yet popped."""
        return self._framer.pending

    @property
    def closed(self) -> bool:
        return self._closed

    def set_auth_message(self, auth_message: str) -> None:
        """Replace the success marker used by the next :meth:`auth` call."""
        self._auth_message = auth_message

    # -------------------------------------------------------------------------
    # IO
    # -------------------------------------------------------------------------

    async def disconnect(self) -> None:
        """Shut down both directions of the socket and release it.

        Raises:
            EconIoError: If the shutdown fails
        """
        _LOGGER.info("[%s] Disconnecting", self._peer)
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError as err:
            _LOGGER.warning("[%s] Socket shutdown failed: %s", self._peer, err)
            raise EconIoError(f"Socket shutdown failed: {err}") from err
        finally:
            self._sock.close()
            self._closed = True

    async def send(self, line: str) -> None:
        """Write one line followed by the line terminator.

        Raises:
            EconIoError: If the write fails
        """
        loop = asyncio.get_running_loop()
        try:
            await loop.sock_sendall(self._sock, encode_line(line))
        except OSError as err:
            _LOGGER.warning("[%s] Send failed: %s", self._peer, err)
            raise EconIoError(f"Send failed: {err}") from err

    async def read(self) -> int:
        """Receive once into the read buffer and frame the data.

        Suspends until some data or end of stream arrives. End of stream
        leaves the queue and the carry fragment untouched.

        Returns:
            Number of complete lines newly queued

        Raises:
            EconIoError: If the receive fails
        """
        loop = asyncio.get_running_loop()
        try:
            received = await loop.sock_recv_into(self._sock, self._buffer)
        except OSError as err:
            _LOGGER.warning("[%s] Read failed: %s", self._peer, err)
            raise EconIoError(f"Read failed: {err}") from err

        if received == 0:
            _LOGGER.debug("[%s] Read returned no data", self._peer)
            return 0

        lines = self._framer.feed(self._view[:received])
        _LOGGER.debug(
            "[%s] Read %d bytes, %d new lines", self._peer, received, lines
        )
        return lines

    def pop_line(self) -> str | None:
        """Remove and return the oldest queued line without doing IO."""
        return self._framer.pop_line()

    # -------------------------------------------------------------------------
    # Handshake
    # -------------------------------------------------------------------------

    async def auth(self, password: str) -> bool:
        """Run the password handshake.

        The server banner from the first read is discarded, the password is
        sent, and every line of the following read is checked against the
        success marker. A wrong password is not an error.

        Returns:
            Whether this connection is authenticated

        Raises:
            EconIoError: If a read or the send fails
        """
        await self.read()
        self._framer.clear_lines()

        await self.send(password)
        await self.read()

        while (line := self.pop_line()) is not None:
            if is_auth_success(line, self._auth_message):
                self._authed = True

        if self._authed:
            _LOGGER.info("[%s] Authenticated", self._peer)
        else:
            _LOGGER.warning("[%s] Authentication rejected", self._peer)
        return self._authed
