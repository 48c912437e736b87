"""Synchronous API client with response caching, revalidation and retry.

This module provides :class:`Client`, the blocking client every endpoint
wrapper calls into. It wraps :class:`httpx.Client` and layers on:

- **Conditional GET** -- :meth:`Client.get` serves fresh cache entries
  without touching the network, revalidates entries that carry an ``ETag``
  with ``If-None-Match``, and stores new ``200`` bodies according to
  :mod:`jukebox.cache.policy`.
- **Rate-limit retry** -- with ``auto_retry`` on, ``429`` (and ``202`` for
  :meth:`Client.execute`) responses are retried after ``Retry-After``
  seconds until the server answers otherwise, the caller's ``cancel``
  event is set, or its ``timeout`` would be exceeded.
- **Error decoding** -- failures become
  :class:`~jukebox.exceptions.APIError` (or a subclass) via
  :func:`~jukebox.client.errors.decode_error`.
- **Coalescing** -- concurrent :meth:`Client.get` calls for the same URL
  share one network call.
"""

from __future__ import annotations

import json
import threading
from functools import lru_cache
from typing import IO, Any, Collection, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from jukebox.cache.policy import cache_response
from jukebox.cache.store import TTLCacheStore
from jukebox.client.errors import decode_error
from jukebox.client.inflight import InFlightGroup
from jukebox.client.retry import (
    CONDITIONAL_GET_RETRY_STATUSES,
    GENERAL_RETRY_STATUSES,
    RetryController,
)
from jukebox.exceptions import APIError, DecodeError, TransportError
from jukebox.models import CacheEntry, ClientConfig, Options
from jukebox.output import get_output


def build_url(base_url: str, path: str, options: Optional[Options] = None) -> str:
    """Join *path* onto *base_url* and append the set fields of *options*.

    Absolute URLs are used as-is. Query parameters are sorted by name, so
    the same options always produce the same URL (and the same cache key).

    Example::

        >>> build_url("https://api.spotify.com/v1/", "browse/new-releases",
        ...           Options(country="US", limit=5))
        'https://api.spotify.com/v1/browse/new-releases?country=US&limit=5'
    """
    url = httpx.URL(path)
    if url.is_relative_url:
        url = httpx.URL(base_url).join(path.lstrip("/"))
    if options is not None:
        params = options.to_params()
        if params:
            url = url.copy_merge_params(params)
    return str(url)


@lru_cache(maxsize=128)
def _adapter(result_type: Any) -> TypeAdapter:
    return TypeAdapter(result_type)


class Client:
    """Blocking client for the API.

    Must be used as a context manager so the underlying transport (and a
    cache created from the config) are opened and closed properly.

    Args:
        config: Base URL, request, and cache settings. Defaults to
            :class:`~jukebox.models.ClientConfig` defaults.
        token: Bearer token sent as ``Authorization`` on every request.
            Obtaining it is up to the caller.
        cache: Cache store to use. When ``None`` and caching is enabled, a
            store is created from ``config.cache`` on enter and closed on
            exit; an injected store is left open.
        transport: Optional :mod:`httpx` transport, e.g.
            :class:`httpx.MockTransport` in tests.

    Example::

        with Client(token=token) as client:
            client.auto_retry = True
            albums = client.new_releases(Options(country="US", limit=5))
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        token: Optional[str] = None,
        cache: Optional[TTLCacheStore] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._token = token
        self._cache = cache
        self._owns_cache = False
        self._transport = transport
        self._client: Optional[httpx.Client] = None

        request = self._config.request
        self._retry = RetryController(
            enabled=request.auto_retry,
            default_wait=request.default_retry_after_seconds,
        )
        self._inflight: Optional[InFlightGroup[Optional[bytes]]] = (
            InFlightGroup() if request.coalesce_requests else None
        )

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Client:
        request = self._config.request
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        self._client = httpx.Client(
            headers=headers,
            timeout=request.timeout,
            verify=request.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        if self._cache is None and self._config.cache.enabled:
            self._cache = TTLCacheStore.from_config(self._config.cache)
            self._owns_cache = True
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None
        if self._owns_cache and self._cache is not None:
            self._cache.close()
            self._cache = None
            self._owns_cache = False

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def auto_retry(self) -> bool:
        """Whether rate-limited requests are retried instead of raising."""
        return self._retry.enabled

    @auto_retry.setter
    def auto_retry(self, value: bool) -> None:
        self._retry.enabled = value

    @property
    def cache(self) -> Optional[TTLCacheStore]:
        return self._cache

    def url_for(self, path: str, options: Optional[Options] = None) -> str:
        """Return the full URL for *path* under the configured base URL."""
        return build_url(self._config.base_url, path, options)

    # ------------------------------------------------------------------ #
    # Core primitives
    # ------------------------------------------------------------------ #

    def get(
        self,
        url: str,
        result_type: Any = None,
        *,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """GET *url* through the cache and decode the JSON body.

        Args:
            url: Absolute URL, or a path relative to the base URL. The
                resolved URL, query string included, is the cache key.
            result_type: Type to validate the body into with pydantic
                (a model, ``list[Model]``, ``dict[str, Any]`` ...). ``None``
                returns the plain decoded JSON.
            cancel: Event that aborts a pending retry wait, or the wait on a
                coalesced request, when set.
            timeout: Upper bound in seconds on time spent waiting to retry
                (and waiting on a coalesced request).

        Returns:
            The decoded body, or ``None`` for ``204 No Content``.

        Raises:
            APIError: On a failure status (``RateLimited`` for 429 with
                ``auto_retry`` off).
            DecodeError: If the body is not valid for *result_type*.
            TransportError: On network failure.
            Cancelled: If *cancel* is set or *timeout* runs out.
        """
        key = self._resolve(url)
        deadline = self._retry.deadline(timeout)

        def fetch() -> Optional[bytes]:
            return self._conditional_get(key, cancel, deadline)

        if self._inflight is None:
            body = fetch()
        else:
            # Coalesced callers share the body and transport/API errors only.
            body = self._inflight.do(key, fetch, timeout=timeout, cancel=cancel)

        if body is None:
            return None
        return self._decode(body, result_type)

    def execute(
        self,
        method: str,
        url: str,
        result_type: Any = None,
        *,
        json_body: Any = None,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        accept: Collection[int] = (),
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send a request that bypasses the cache, retrying 202/429 when enabled.

        Any ``2xx`` status is a success, as is any status listed in
        *accept*. ``204`` (and any empty body) returns ``None``.

        Args:
            method: HTTP method.
            url: Absolute URL or path relative to the base URL.
            result_type: Type to validate a non-empty body into; ``None``
                returns plain decoded JSON.
            json_body: JSON-serialisable request body.
            params: Extra query parameters.
            headers: Extra request headers.
            accept: Additional statuses treated as success.
            cancel: Event that aborts a pending retry wait when set.
            timeout: Upper bound in seconds on time spent waiting to retry.

        Raises:
            APIError: On a failure status.
            DecodeError: If a success body cannot be decoded.
            TransportError: On network failure.
            Cancelled: If *cancel* is set or *timeout* runs out.
        """
        target = self._resolve(url)
        deadline = self._retry.deadline(timeout)

        while True:
            response = self._send(
                method, target, headers=headers, json=json_body, params=params
            )
            if self._retry.should_retry(response, GENERAL_RETRY_STATUSES):
                self._retry.wait(response, cancel, deadline)
                continue

            status = response.status_code
            if status == httpx.codes.NO_CONTENT:
                return None
            if not (200 <= status < 300) and status not in accept:
                raise self._error(response)
            if not response.content:
                return None
            return self._decode(response.content, result_type)

    # ------------------------------------------------------------------ #
    # Endpoint helpers
    # ------------------------------------------------------------------ #

    def new_releases(self, options: Optional[Options] = None) -> Any:
        """Return the page of new album releases (the ``albums`` object).

        Args:
            options: Optional ``country``, ``limit`` and ``offset``.
        """
        data = self.get(self.url_for("browse/new-releases", options))
        if not isinstance(data, dict) or "albums" not in data:
            raise DecodeError("New releases response has no 'albums' object")
        return data["albums"]

    def download(self, url: str, dst: IO[bytes]) -> int:
        """Stream the resource at *url* (typically an image) into *dst*.

        Returns:
            The number of bytes written.

        Raises:
            APIError: If the server does not answer ``200``.
            TransportError: On network failure.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"
        target = self._resolve(url)
        written = 0
        try:
            with self._client.stream("GET", target) as response:
                if response.status_code != httpx.codes.OK:
                    raise APIError(
                        f"Couldn't download {target}: HTTP {response.status_code}",
                        response.status_code,
                    )
                for chunk in response.iter_bytes():
                    dst.write(chunk)
                    written += len(chunk)
        except httpx.HTTPError as exc:
            raise TransportError(f"GET {target} failed: {exc}") from exc
        return written

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _conditional_get(
        self,
        key: str,
        cancel: Optional[threading.Event],
        deadline: Optional[float],
    ) -> Optional[bytes]:
        """Run the cache / revalidate / fetch loop for *key*.

        Returns the raw body to decode, or ``None`` for ``204``. Every retry
        starts again from the cache lookup.
        """
        output = get_output()
        conditional = True
        refetched = False

        while True:
            entry: Optional[CacheEntry] = None
            headers: dict[str, str] = {}
            if conditional:
                entry, found = self._cache_lookup(key)
                if found and entry is not None:
                    if not entry.etag:
                        output.debug(f"Served from cache: {key}")
                        return entry.body
                    headers["If-None-Match"] = entry.etag

            response = self._send("GET", key, headers=headers)

            if self._retry.should_retry(response, CONDITIONAL_GET_RETRY_STATUSES):
                self._retry.wait(response, cancel, deadline)
                conditional = True
                continue

            status = response.status_code
            if status == httpx.codes.NO_CONTENT:
                return None

            if status == httpx.codes.NOT_MODIFIED:
                if entry is not None:
                    output.debug(f"Served via revalidation: {key}")
                    return entry.body
                if not refetched:
                    output.debug(f"Unexpected 304 for {key} without a cached entry, re-requesting")
                    refetched = True
                    conditional = False
                    continue
                raise self._error(response)

            if status == httpx.codes.OK:
                body = response.content
                output.debug(f"Served via fresh fetch: {key}")
                if self._cache is not None:
                    cache_response(
                        self._cache,
                        key,
                        response.headers,
                        body,
                        validator_only_ttl=self._config.cache.validator_only_ttl_seconds,
                    )
                return body

            raise self._error(response)

    def _cache_lookup(self, key: str) -> tuple[Optional[CacheEntry], bool]:
        if self._cache is None:
            return None, False
        return self._cache.get(key)

    def _send(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request, mapping :mod:`httpx` failures to :class:`TransportError`."""
        assert self._client is not None, "Client not initialised -- use as context manager"
        try:
            response = self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method.upper()} {url} failed: {exc}") from exc
        get_output().debug(f"{method.upper()} {url} -> HTTP {response.status_code}")
        return response

    def _error(self, response: httpx.Response) -> Exception:
        return decode_error(response, self._retry.default_wait)

    def _decode(self, body: bytes, result_type: Any) -> Any:
        try:
            if result_type is None:
                return json.loads(body)
            return _adapter(result_type).validate_json(body)
        except (ValueError, ValidationError) as exc:
            text = body.decode("utf-8", errors="replace")
            raise DecodeError(
                f"Couldn't decode response: ({len(body)}) [{text[:200]}]: {exc}", body=body
            ) from exc

    def _resolve(self, url: str) -> str:
        return build_url(self._config.base_url, url)
