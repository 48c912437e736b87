"""Turning failed HTTP responses into typed errors.

The API reports failures as::

    {"error": {"message": "invalid id", "status": 400}}

but not every failure follows that shape: some have an empty body, some a
non-JSON body from an intermediary, and some a valid envelope with an empty
message (for example when a query string is too long). Each case is mapped
to an error whose message is never empty so the caller always has
something to show.
"""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from jukebox.client.retry import DEFAULT_RETRY_AFTER, retry_after
from jukebox.exceptions import APIError, DecodeError, RateLimited, TransportError
from jukebox.models import ErrorEnvelope


def reason_phrase(status: int) -> str:
    """Return the standard reason phrase for *status*, or ``"Unknown"``."""
    return httpx.codes.get_reason_phrase(status) or "Unknown"


def decode_error(
    response: httpx.Response,
    default_retry_after: float = DEFAULT_RETRY_AFTER,
) -> APIError | DecodeError:
    """Build the error for a failed *response*.

    Args:
        response: A response whose status the caller treats as a failure.
        default_retry_after: Wait reported on :class:`RateLimited` when the
            response has no usable ``Retry-After`` header.

    Returns:
        * :class:`RateLimited` for a 429, otherwise :class:`APIError`,
          carrying the API's message and status, or a synthesised message
          when the body is empty or the message is blank.
        * :class:`DecodeError` when the body is not a valid error envelope;
          its message embeds the body length and content.

    Raises:
        TransportError: If the body cannot be read.
    """
    status = response.status_code
    try:
        body = response.read()
    except httpx.HTTPError as exc:
        raise TransportError(f"Failed to read error response body: {exc}") from exc

    if not body:
        message = f"HTTP {status}: {reason_phrase(status)} (body empty)"
        return _api_error(message, status, response, default_retry_after)

    try:
        envelope = ErrorEnvelope.model_validate_json(body)
    except ValidationError:
        text = body.decode("utf-8", errors="replace")
        return DecodeError(
            f"Couldn't decode error: ({len(body)}) [{text}]", body=body, status=status
        )

    message = envelope.error.message
    if not message:
        # A useful status with no explanation, e.g. 414 for an overlong query string.
        message = f"Unexpected HTTP {status}: {reason_phrase(status)} (empty error)"
    error_status = envelope.error.status or status
    return _api_error(message, error_status, response, default_retry_after)


def _api_error(
    message: str,
    status: int,
    response: httpx.Response,
    default_retry_after: float,
) -> APIError:
    if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
        return RateLimited(
            message, status=status, retry_after=retry_after(response, default_retry_after)
        )
    return APIError(message, status)
