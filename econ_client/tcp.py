"""TCP helpers for external console transport."""

from __future__ import annotations

import asyncio
import socket

from .errors import EconConnectionError, EconConnectTimeout


async def open_tcp_socket(
    host: str,
    port: int,
    *,
    timeout: float = 5.0,
) -> socket.socket:
    """Open a non-blocking TCP socket connected to the console endpoint.

    Every resolved address is tried in order until one accepts the
    connection. The whole attempt, name resolution included, is bounded by
    ``timeout``.

    Args:
        host: Target host
        port: Target port
        timeout: Connection timeout in seconds
    """
    try:
        return await asyncio.wait_for(_connect(host, port), timeout=timeout)
    except TimeoutError as err:
        raise EconConnectTimeout(
            f"Connection to {host}:{port} timed out after {timeout}s"
        ) from err
    except OSError as err:
        raise EconConnectionError(f"Connection to {host}:{port} failed: {err}") from err


async def _connect(host: str, port: int) -> socket.socket:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    if not infos:
        raise OSError(f"getaddrinfo returned no addresses for {host}")

    last_error: OSError | None = None
    for family, sock_type, proto, _, address in infos:
        sock = socket.socket(family, sock_type, proto)
        try:
            sock.setblocking(False)
            await loop.sock_connect(sock, address)
        except OSError as err:
            sock.close()
            last_error = err
            continue
        except BaseException:
            # Cancelled by the timeout; do not leak the half-open socket.
            sock.close()
            raise
        return sock

    assert last_error is not None
    raise last_error
