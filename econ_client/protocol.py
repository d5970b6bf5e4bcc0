"""Protocol helpers for the external console line protocol.

Notes:
- Lines are UTF-8 text terminated by a single ``\\n`` byte
- NUL characters are dropped on receipt
- The server greets with a banner, then expects the password as a line
"""

from __future__ import annotations

LINE_TERMINATOR = b"\n"

DEFAULT_BUFFER_SIZE = 2048
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_AUTH_MESSAGE = "Authentication successful"


def encode_line(line: str) -> bytes:
    """Encode a line for the wire, appending the terminator."""
    return line.encode("utf-8") + LINE_TERMINATOR


def is_auth_success(line: str, auth_message: str) -> bool:
    """Return True if a server line signals a successful authentication.

    Only a prefix match counts: with marker ``"OK"`` the line
    ``"OK: welcome"`` matches but ``"Welcome OK"`` does not.
    """
    return line.startswith(auth_message)
