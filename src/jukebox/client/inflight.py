"""Per-key coalescing of concurrent identical requests.

When several threads ask for the same URL at once and the cache cannot
answer, only the first one (the *leader*) performs the network call. The
others (*followers*) wait for the leader and receive the same result or the
same exception. A follower stops waiting as soon as its own cancel event is
set or its own timeout runs out.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Generic, Optional, TypeVar

from jukebox.exceptions import Cancelled

T = TypeVar("T")

POLL_INTERVAL = 0.05
"""Longest a follower blocks on the leader before re-checking its cancel event."""


class InFlightGroup(Generic[T]):
    """Tracks one in-flight call per key.

    Example::

        group: InFlightGroup[bytes] = InFlightGroup()
        body = group.do(url, lambda: fetch(url))
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: dict[str, Future[T]] = {}

    def do(
        self,
        key: str,
        fn: Callable[[], T],
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> T:
        """Run *fn* for *key* unless a call for *key* is already running.

        Args:
            key: Identity of the call, the full request URL.
            fn: The call to make when this thread is the leader.
            timeout: Longest a follower waits for the leader, in seconds.
            cancel: Event that makes a waiting follower give up.

        Raises:
            Cancelled: If a follower's *cancel* is set or its *timeout*
                elapses before the leader finishes.
        """
        with self._lock:
            future = self._calls.get(key)
            leader = future is None
            if future is None:
                future = Future()
                self._calls[key] = future

        if not leader:
            return self._follow(key, future, timeout, cancel)

        try:
            result = fn()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._calls.pop(key, None)

    def pending(self) -> int:
        """Number of keys with a call in flight."""
        with self._lock:
            return len(self._calls)

    def _follow(
        self,
        key: str,
        future: Future[T],
        timeout: Optional[float],
        cancel: Optional[threading.Event],
    ) -> T:
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if cancel is not None and cancel.is_set():
                raise Cancelled(f"Cancelled while waiting for in-flight request to {key}")
            wait = POLL_INTERVAL if cancel is not None else None
            if deadline is not None:
                remaining = max(deadline - time.monotonic(), 0.0)
                wait = remaining if wait is None else min(wait, remaining)
            try:
                return future.result(timeout=wait)
            except FutureTimeoutError:
                if deadline is not None and time.monotonic() >= deadline:
                    raise Cancelled(f"Timed out waiting for in-flight request to {key}") from None
