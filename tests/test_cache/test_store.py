"""Tests for the TTL cache store."""

from __future__ import annotations

import threading
import time
from pathlib import Path

from jukebox.cache.store import DEFAULT_SWEEP_INTERVAL, DEFAULT_TTL, TTLCacheStore
from jukebox.models import CacheConfig, CacheEntry

URL = "https://api.spotify.com/v1/albums/abc?market=US"


def _entry(key: str = URL, etag: str = '"v1"', body: bytes = b'{"id": "abc"}') -> CacheEntry:
    return CacheEntry(key=key, etag=etag, body=body, ttl=60)


class TestGetSet:
    def test_miss_returns_none_and_false(self, store: TTLCacheStore) -> None:
        entry, found = store.get(URL)
        assert entry is None
        assert found is False

    def test_hit_returns_entry(self, store: TTLCacheStore) -> None:
        store.set(URL, _entry(), ttl=60)
        entry, found = store.get(URL)
        assert found is True
        assert entry == _entry()
        assert entry.body == b'{"id": "abc"}'

    def test_set_overwrites_previous_entry(self, store: TTLCacheStore) -> None:
        store.set(URL, _entry(etag='"v1"'), ttl=60)
        store.set(URL, _entry(etag='"v2"', body=b"{}"), ttl=60)
        entry, _ = store.get(URL)
        assert entry.etag == '"v2"'
        assert entry.body == b"{}"
        assert len(store) == 1

    def test_keys_are_exact_urls(self, store: TTLCacheStore) -> None:
        store.set(URL, _entry(), ttl=60)
        assert store.get(URL + "&limit=5") == (None, False)
        assert store.get(URL.replace("market=US", "MARKET=US")) == (None, False)

    def test_contains(self, store: TTLCacheStore) -> None:
        store.set(URL, _entry(), ttl=60)
        assert URL in store
        assert "https://example.com/other" not in store


class TestExpiry:
    def test_expired_entry_is_a_miss(self, store: TTLCacheStore) -> None:
        store.set(URL, _entry(), ttl=0.2)
        assert store.get(URL)[1] is True
        time.sleep(0.4)
        assert store.get(URL) == (None, False)

    def test_default_ttl_applies_without_explicit_ttl(self, tmp_path: Path) -> None:
        with TTLCacheStore(directory=tmp_path, default_ttl=0.2, sweep_interval=0) as store:
            store.set(URL, _entry())
            assert store.get(URL)[1] is True
            time.sleep(0.4)
            assert store.get(URL)[1] is False

    def test_explicit_ttl_overrides_default(self, tmp_path: Path) -> None:
        with TTLCacheStore(directory=tmp_path, default_ttl=0.1, sweep_interval=0) as store:
            store.set(URL, _entry(), ttl=60)
            time.sleep(0.3)
            assert store.get(URL)[1] is True

    def test_sweep_removes_expired_entries(self, store: TTLCacheStore) -> None:
        store.set(URL, _entry(), ttl=0.1)
        store.set("https://example.com/keep", _entry(key="https://example.com/keep"), ttl=60)
        time.sleep(0.3)
        assert store.sweep() == 1
        assert len(store) == 1

    def test_background_sweeper_removes_expired_entries(self, tmp_path: Path) -> None:
        with TTLCacheStore(directory=tmp_path, sweep_interval=0.05) as store:
            store.set(URL, _entry(), ttl=0.05)
            deadline = time.monotonic() + 3
            while len(store) and time.monotonic() < deadline:
                time.sleep(0.05)
            assert len(store) == 0


class TestLifecycle:
    def test_defaults(self, store: TTLCacheStore) -> None:
        assert DEFAULT_TTL == 1200
        assert DEFAULT_SWEEP_INTERVAL == 180

    def test_private_directory_is_removed_on_close(self) -> None:
        store = TTLCacheStore(sweep_interval=0)
        directory = Path(store.stats()["directory"])
        store.set(URL, _entry(), ttl=60)
        assert directory.is_dir()
        store.close()
        assert not directory.exists()

    def test_explicit_directory_persists_between_stores(self, tmp_path: Path) -> None:
        with TTLCacheStore(directory=tmp_path, sweep_interval=0) as first:
            first.set(URL, _entry(), ttl=60)
        with TTLCacheStore(directory=tmp_path, sweep_interval=0) as second:
            assert second.get(URL)[1] is True

    def test_close_is_idempotent(self, tmp_path: Path) -> None:
        store = TTLCacheStore(directory=tmp_path, sweep_interval=0.05)
        store.close()
        store.close()

    def test_clear(self, store: TTLCacheStore) -> None:
        store.set(URL, _entry(), ttl=60)
        assert store.clear() == 1
        assert len(store) == 0

    def test_stats(self, tmp_path: Path) -> None:
        with TTLCacheStore(directory=tmp_path, default_ttl=30, sweep_interval=0) as store:
            store.set(URL, _entry(), ttl=60)
            stats = store.stats()
        assert stats == {
            "size": 1,
            "directory": str(tmp_path),
            "default_ttl_seconds": 30,
            "sweep_interval_seconds": 0,
        }

    def test_from_config(self, tmp_path: Path) -> None:
        config = CacheConfig(directory=str(tmp_path), default_ttl_seconds=42, sweep_interval_seconds=0)
        with TTLCacheStore.from_config(config) as store:
            stats = store.stats()
        assert stats["default_ttl_seconds"] == 42
        assert stats["directory"] == str(tmp_path)


class TestConcurrency:
    def test_concurrent_writers_leave_one_complete_entry(self, store: TTLCacheStore) -> None:
        errors: list[BaseException] = []

        def writer(n: int) -> None:
            try:
                for i in range(20):
                    body = f'{{"writer": {n}, "i": {i}}}'.encode()
                    store.set(URL, CacheEntry(key=URL, etag=f'"{n}-{i}"', body=body, ttl=60), ttl=60)
                    entry, found = store.get(URL)
                    assert found
                    # etag and body always come from the same write
                    w, j = entry.etag.strip('"').split("-")
                    assert entry.body == f'{{"writer": {w}, "i": {j}}}'.encode()
            except BaseException as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(store) == 1
