"""Error types shared by the core and adapters."""

from __future__ import annotations

from typing import Optional


class ItanaviError(Exception):
    """Base class for errors raised by the chat client."""


class ApiError(ItanaviError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, detail: Optional[str] = None) -> None:
        self.status = status
        self.detail = detail or f"HTTP {status}"
        super().__init__(f"{status}: {self.detail}")


class TransportError(ItanaviError):
    """The request or channel never reached the server."""


class ValidationError(ItanaviError):
    """Local input was rejected before any request was made."""
