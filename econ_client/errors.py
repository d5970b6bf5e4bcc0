"""Client error types for external console interactions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .session import EconSessionState


class EconClientError(Exception):
    """Base error for external console client failures."""


class EconConnectionError(EconClientError):
    """TCP connection to the console failed."""


class EconConnectTimeout(EconConnectionError):
    """Timeout while connecting to the console."""


class EconIoError(EconClientError):
    """Socket read, write or shutdown failed on an open connection."""


class EconStateError(EconClientError):
    """Operation called in a session state that does not allow it."""

    def __init__(
        self,
        message: str,
        *,
        required: EconSessionState,
        current: EconSessionState,
    ) -> None:
        super().__init__(message)
        self.required = required
        self.current = current
