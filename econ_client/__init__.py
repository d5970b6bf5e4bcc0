"""Async client for line-based external console (econ) servers."""

__version__ = "0.1.0"

from .errors import (
    EconClientError,
    EconConnectionError,
    EconConnectTimeout,
    EconIoError,
    EconStateError,
)
from .framing import LineFramer
from .protocol import (
    DEFAULT_AUTH_MESSAGE,
    DEFAULT_BUFFER_SIZE,
    DEFAULT_CONNECT_TIMEOUT,
    encode_line,
    is_auth_success,
)
from .session import EconSession, EconSessionState
from .tcp import open_tcp_socket
from .transport import EconTransport

__all__ = [
    "DEFAULT_AUTH_MESSAGE",
    "DEFAULT_BUFFER_SIZE",
    "DEFAULT_CONNECT_TIMEOUT",
    "EconClientError",
    "EconConnectTimeout",
    "EconConnectionError",
    "EconIoError",
    "EconSession",
    "EconSessionState",
    "EconStateError",
    "EconTransport",
    "LineFramer",
    "__version__",
    "encode_line",
    "is_auth_success",
    "open_tcp_socket",
]
