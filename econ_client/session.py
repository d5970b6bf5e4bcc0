"""High-level session for external console communication.

This module provides the caller-facing API. It handles:
- Connection lifecycle (one transport at a time)
- Authentication state
- Call-order checks (connected before IO, authenticated before commands)

Precondition violations raise :class:`EconStateError`; transport faults
surface unchanged as :class:`EconConnectionError` or :class:`EconIoError`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from .errors import EconIoError, EconStateError
from .protocol import (
    DEFAULT_AUTH_MESSAGE,
    DEFAULT_BUFFER_SIZE,
    DEFAULT_CONNECT_TIMEOUT,
)
from .transport import EconTransport

_LOGGER = logging.getLogger(__name__)


class EconSessionState(Enum):
    """Session lifecycle states."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"


_STATE_RANK = {
    EconSessionState.DISCONNECTED: 0,
    EconSessionState.CONNECTED: 1,
    EconSessionState.AUTHENTICATED: 2,
}


class EconSession:
    """Session manager for one external console connection.

    Usage:
        session = EconSession()
        await session.connect("127.0.0.1", 8303)
        if await session.try_auth("secret"):
            await session.send_line("status")
            line = await session.recv_line(fetch=True)
        await session.disconnect()
    """

    def __init__(
        self,
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        auth_message: str = DEFAULT_AUTH_MESSAGE,
    ) -> None:
        """Initialize session.

        Args:
            buffer_size: Read buffer size for each connection (bytes)
            connect_timeout: Connection timeout (seconds)
            auth_message: Prefix of the server line that confirms auth
        """
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")

        self._buffer_size = buffer_size
        self._connect_timeout = connect_timeout
        self._auth_message = auth_message

        self._transport: EconTransport | None = None
        self._state = EconSessionState.DISCONNECTED
        self._peer: str | None = None

        self._state_callback: Callable[[EconSessionState], None] | None = None

    # -------------------------------------------------------------------------
    # Public API: State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> EconSessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if a transport is open (authenticated or not)."""
        return self._state is not EconSessionState.DISCONNECTED

    @property
    def is_authenticated(self) -> bool:
        return self._state is EconSessionState.AUTHENTICATED

    def on_connection_state_changed(
        self, callback: Callable[[EconSessionState], None]
    ) -> None:
        """Register callback for state changes.

        Callback receives the new :class:`EconSessionState`.
        """
        self._state_callback = callback

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(self, host: str, port: int) -> None:
        """Open a new connection, replacing any previous one.

        Raises:
            EconConnectTimeout: If the connection timed out
            EconConnectionError: If the connection failed
        """
        if self._transport is not None:
            _LOGGER.debug("[%s] Replacing existing connection", self._peer)
            await self._drop_transport()

        self._transport = await EconTransport.connect(
            host,
            port,
            buffer_size=self._buffer_size,
            timeout=self._connect_timeout,
            auth_message=self._auth_message,
        )
        self._peer = f"{host}:{port}"
        self._set_state(EconSessionState.CONNECTED)

    async def disconnect(self) -> None:
        """Close the connection.

        The session is disconnected afterwards even if the shutdown failed.

        Raises:
            EconStateError: If not connected
            EconIoError: If the socket shutdown failed
        """
        transport = self._require(
            EconSessionState.CONNECTED, "you can't disconnect without being connected"
        )
        self._transport = None
        try:
            await transport.disconnect()
        finally:
            self._set_state(EconSessionState.DISCONNECTED)

    async def try_auth(self, password: str) -> bool:
        """Authenticate with the console password.

        Returns:
            False if the password was rejected

        Raises:
            EconStateError: If not connected
            EconIoError: If the handshake IO failed
        """
        transport = self._require(
            EconSessionState.CONNECTED,
            "you can't authenticate without being connected",
        )
        authed = await transport.auth(password)
        if authed:
            self._set_state(EconSessionState.AUTHENTICATED)
        return authed

    def set_auth_message(self, auth_message: str) -> None:
        """Change the auth success marker.

        Applies to the open connection, if any, and to later connections.
        """
        self._auth_message = auth_message
        if self._transport is not None:
            self._transport.set_auth_message(auth_message)

    # -------------------------------------------------------------------------
    # Public API: Lines
    # -------------------------------------------------------------------------

    async def send_line(self, line: str) -> None:
        """Send one command line.

        Raises:
            EconStateError: If not connected or not authenticated
            EconIoError: If the write failed
        """
        self._require(
            EconSessionState.CONNECTED, "you can't send commands without being connected"
        )
        transport = self._require(
            EconSessionState.AUTHENTICATED,
            "you can't send commands without being authed",
        )
        await transport.send(line)

    async def recv_line(self, fetch: bool = False) -> str | None:
        """Return the next received line.

        With ``fetch`` the session first reads once from the socket, which
        requires authentication. Without it only already queued lines are
        returned, which is allowed before authentication (e.g. to drain
        banner lines).

        Raises:
            EconStateError: If not connected, or fetching unauthenticated
            EconIoError: If the read failed
        """
        transport = self._require(
            EconSessionState.CONNECTED, "you can't fetch lines without being connected"
        )
        if fetch:
            self._require(
                EconSessionState.AUTHENTICATED,
                "you can't fetch lines without being authed",
            )
            await transport.read()
        return transport.pop_line()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _require(self, required: EconSessionState, message: str) -> EconTransport:
        """Return the transport if the session is at least in ``required``."""
        if self._transport is None or _STATE_RANK[self._state] < _STATE_RANK[required]:
            raise EconStateError(message, required=required, current=self._state)
        return self._transport

    async def _drop_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None and not transport.closed:
            try:
                await transport.disconnect()
            except EconIoError as err:
                _LOGGER.warning(
                    "[%s] Closing previous connection failed: %s", self._peer, err
                )
        self._set_state(EconSessionState.DISCONNECTED)

    def _set_state(self, state: EconSessionState) -> None:
        if state is self._state:
            return
        _LOGGER.debug(
            "[%s] State %s -> %s", self._peer, self._state.value, state.value
        )
        self._state = state
        if self._state_callback is not None:
            self._state_callback(state)
