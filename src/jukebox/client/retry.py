"""Rate-limit aware retry decisions.

The API answers ``429 Too Many Requests`` when called too often and
``202 Accepted`` when a write has been queued but not applied yet. Both come
with an optional ``Retry-After`` header giving a wait in whole seconds. The
server sometimes omits it, in which case :data:`DEFAULT_RETRY_AFTER` is
used.

Retrying is opt-in and unbounded: the client keeps waiting and retrying
until the server returns something else. Callers bound the total wait with a
cancellation event or a deadline; either one ends the wait with
:class:`~jukebox.exceptions.Cancelled`.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Collection, Optional

import httpx

from jukebox.exceptions import Cancelled
from jukebox.output import get_output

DEFAULT_RETRY_AFTER = 5.0

GENERAL_RETRY_STATUSES = frozenset({202, 429})
"""Statuses retried when executing writes and other non-cached requests."""

CONDITIONAL_GET_RETRY_STATUSES = frozenset({429})
"""Statuses retried by the caching GET path."""


def should_retry(status: int, statuses: Collection[int] = GENERAL_RETRY_STATUSES) -> bool:
    """Return whether *status* asks the client to come back later."""
    return status in statuses


def retry_after(response: httpx.Response, default: float = DEFAULT_RETRY_AFTER) -> float:
    """Return the wait in seconds requested by *response*.

    The ``Retry-After`` header is read as an integer number of seconds. A
    missing or non-integer header yields *default*; negative values yield 0.
    """
    raw = response.headers.get("Retry-After", "").strip()
    if not raw:
        return default
    try:
        seconds = int(raw, 10)
    except ValueError:
        return default
    return float(max(seconds, 0))


class RetryController:
    """Decides whether to retry a response and performs the wait.

    Args:
        enabled: Whether retrying is on at all. When off,
            :meth:`should_retry` is always ``False`` and retry-eligible
            statuses are handled as ordinary responses by the caller.
        default_wait: Wait used when ``Retry-After`` is missing or invalid.
        clock: Monotonic clock used to check deadlines.
    """

    def __init__(
        self,
        enabled: bool = False,
        default_wait: float = DEFAULT_RETRY_AFTER,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.enabled = enabled
        self.default_wait = default_wait
        self._clock = clock

    def should_retry(self, response: httpx.Response, statuses: Collection[int]) -> bool:
        return self.enabled and should_retry(response.status_code, statuses)

    def delay_for(self, response: httpx.Response) -> float:
        return retry_after(response, self.default_wait)

    def deadline(self, timeout: Optional[float]) -> Optional[float]:
        """Turn a relative *timeout* into an absolute deadline on this controller's clock."""
        if timeout is None:
            return None
        return self._clock() + timeout

    def remaining(self, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        return max(deadline - self._clock(), 0.0)

    def wait(
        self,
        response: httpx.Response,
        cancel: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> float:
        """Block for the delay *response* asks for.

        Args:
            response: The retry-eligible response.
            cancel: Event that aborts the wait when set.
            deadline: Absolute time (see :meth:`deadline`) the caller must
                not wait past.

        Returns:
            The number of seconds waited.

        Raises:
            Cancelled: If *cancel* is or becomes set, or if waiting would
                run past *deadline*.
        """
        delay = self.delay_for(response)
        if cancel is not None and cancel.is_set():
            raise Cancelled("Request cancelled before retry")
        remaining = self.remaining(deadline)
        if remaining is not None and delay > remaining:
            raise Cancelled(
                f"Retry after {delay:g}s would exceed the deadline ({remaining:.1f}s left)"
            )

        get_output().debug(f"HTTP {response.status_code}, retrying in {delay:g}s")
        if cancel is not None:
            if cancel.wait(delay):
                raise Cancelled("Request cancelled while waiting to retry")
        else:
            time.sleep(delay)
        return delay
