"""Exception hierarchy for jukebox.

All exceptions inherit from :class:`JukeboxError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`jukebox.exit_codes`.
Library callers catch the specific subclasses; the CLI entry point in
:func:`jukebox.app.main` catches ``JukeboxError`` and exits with the
matching code.

Subclass hierarchy::

    JukeboxError (exit 1)
    +-- TransportError      (exit 6)
    +-- DecodeError         (exit 7)
    +-- APIError            (exit 5)
    |   +-- RateLimited     (exit 8)
    +-- Cancelled           (exit 130)
    +-- ConfigError         (exit 2)
"""

from __future__ import annotations

from typing import Optional

from jukebox.exit_codes import (
    EXIT_API_ERROR,
    EXIT_CANCELLED,
    EXIT_CONNECTION_ERROR,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_RATE_LIMITED,
)


class JukeboxError(Exception):
    """Base exception for all jukebox errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class TransportError(JukeboxError):
    """Raised on network-level failures (connect, read, timeout).

    Never retried by the client; the underlying :mod:`httpx` exception is
    chained as ``__cause__``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class DecodeError(JukeboxError):
    """Raised when a response body cannot be decoded.

    Applies both to success payloads and to error envelopes. The raw body is
    kept for debugging.

    Args:
        message: Diagnostic message, usually embedding the body.
        body: The raw bytes that failed to decode.
        status: HTTP status of the response, when known.
    """

    exit_code = EXIT_DECODE_ERROR

    def __init__(self, message: str, body: bytes = b"", status: Optional[int] = None):
        super().__init__(message)
        self.body = body
        self.status = status


class APIError(JukeboxError):
    """A structured error returned by the API.

    The message is never empty; the error decoder synthesises one from the
    status code when the API does not supply it.

    Args:
        message: The API's (or synthesised) error message.
        status: The HTTP status code.
    """

    exit_code = EXIT_API_ERROR

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, status={self.status})"


class RateLimited(APIError):
    """A 429 response surfaced because automatic retry is disabled.

    ``retry_after`` is the wait, in seconds, the server asked for (or the
    default when it did not say).
    """

    exit_code = EXIT_RATE_LIMITED

    def __init__(self, message: str, status: int = 429, retry_after: float = 0.0):
        super().__init__(message, status)
        self.retry_after = retry_after


class Cancelled(JukeboxError):
    """Raised when a retry wait is cancelled or would overrun the caller's deadline."""

    exit_code = EXIT_CANCELLED


class ConfigError(JukeboxError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_INVALID_USAGE
