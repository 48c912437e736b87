"""Expiring key/value store for cached GET responses.

Uses :mod:`diskcache` for storage. ``diskcache`` wraps SQLite, so every
``get``/``set`` is a transaction: concurrent callers on any thread (or in
another process sharing the directory) never observe a partially written
entry, and the last writer for a key wins.

Expiry happens two ways:

* **Lazily** -- ``diskcache`` ignores rows whose expiry time has passed, so
  an expired entry reads as a miss.
* **Actively** -- a daemon thread calls :meth:`TTLCacheStore.sweep` every
  ``sweep_interval`` seconds to delete expired rows.

See Also:
    :mod:`jukebox.cache.policy` -- decides whether and for how long a
    response is stored.
"""

from __future__ import annotations

import shutil
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional

import diskcache

from jukebox.models import CacheConfig, CacheEntry
from jukebox.output import get_output

DEFAULT_TTL = 20 * 60.0
DEFAULT_SWEEP_INTERVAL = 3 * 60.0


class TTLCacheStore:
    """Thread-safe TTL cache keyed by request URL.

    Args:
        directory: Where ``diskcache`` keeps its database. ``None`` creates a
            private temporary directory that is removed on :meth:`close`.
        default_ttl: Lifetime in seconds for entries set without an
            explicit ``ttl``.
        sweep_interval: Seconds between background sweeps. ``0`` disables
            the sweeper thread; lazy expiry still applies.

    Example::

        with TTLCacheStore() as store:
            store.set(url, CacheEntry(key=url, body=b"{}"), ttl=60)
            entry, found = store.get(url)
    """

    def __init__(
        self,
        directory: str | Path | None = None,
        default_ttl: float = DEFAULT_TTL,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        self._owns_directory = directory is None
        if directory is None:
            directory = tempfile.mkdtemp(prefix="jukebox-cache-")
        self._directory = Path(directory)
        self._default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._cache = diskcache.Cache(str(self._directory))
        self._closed = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if sweep_interval > 0:
            self._sweeper = threading.Thread(
                target=self._sweep_loop, name="jukebox-cache-sweeper", daemon=True
            )
            self._sweeper.start()

    @classmethod
    def from_config(cls, config: CacheConfig) -> TTLCacheStore:
        """Build a store from a :class:`~jukebox.models.CacheConfig`."""
        return cls(
            directory=config.directory,
            default_ttl=config.default_ttl_seconds,
            sweep_interval=config.sweep_interval_seconds,
        )

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> TTLCacheStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def get(self, key: str) -> tuple[Optional[CacheEntry], bool]:
        """Look up *key*.

        Returns:
            ``(entry, True)`` on a hit, ``(None, False)`` on a miss or when
            the entry has expired.
        """
        entry = self._cache.get(key, default=None, retry=True)
        if entry is None:
            return None, False
        return entry, True

    def set(self, key: str, entry: CacheEntry, ttl: Optional[float] = None) -> None:
        """Store *entry* under *key*, replacing any previous entry.

        Args:
            key: The full request URL.
            entry: The entry to store.
            ttl: Lifetime in seconds; overrides the store default.
        """
        expire = self._default_ttl if ttl is None else ttl
        self._cache.set(key, entry, expire=expire, retry=True)

    def sweep(self) -> int:
        """Delete every expired entry now and return how many were removed."""
        removed = self._cache.expire(retry=True)
        if removed:
            get_output().debug(f"Cache sweep removed {removed} expired entries")
        return removed

    def clear(self) -> int:
        """Remove all entries and return how many were removed."""
        return self._cache.clear(retry=True)

    def stats(self) -> dict[str, Any]:
        """Return entry count, directory and the store-wide settings."""
        return {
            "size": len(self._cache),
            "directory": str(self._directory),
            "default_ttl_seconds": self._default_ttl,
            "sweep_interval_seconds": self._sweep_interval,
        }

    def close(self) -> None:
        """Stop the sweeper, close the database and drop a private directory."""
        if self._closed.is_set():
            return
        self._closed.set()
        if self._sweeper is not None and self._sweeper is not threading.current_thread():
            self._sweeper.join()
        self._cache.close()
        if self._owns_directory:
            shutil.rmtree(self._directory, ignore_errors=True)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return self.get(str(key))[1]

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _sweep_loop(self) -> None:
        while not self._closed.wait(self._sweep_interval):
            self.sweep()
