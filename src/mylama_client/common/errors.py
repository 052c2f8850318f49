"""Exception types raised by the client."""
from __future__ import annotations

MAX_BODY_CHARS = 512


class MyLamaError(Exception):
    """Base class for every error raised by mylama_client."""


class ConfigError(MyLamaError):
    """Configuration file missing, unreadable or malformed."""


class InvalidArgument(MyLamaError, ValueError):
    """Caller passed an empty model or prompt."""


class TransportError(MyLamaError):
    """
    HTTP exchange failed.

    Attributes:
        status_code: HTTP status, or None when no response was received.
        body: Rendered (possibly truncated) response body, if any.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @classmethod
    def from_status(cls, status_code: int, body: str) -> "TransportError":
        rendered = truncate(body, MAX_BODY_CHARS)
        return cls(f"HTTP {status_code}: {rendered}", status_code=status_code, body=rendered)

    @classmethod
    def no_response(cls) -> "TransportError":
        return cls("No response received from server.")


class ProtocolError(MyLamaError):
    """Buffered response body had an unexpected shape."""


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "…"
