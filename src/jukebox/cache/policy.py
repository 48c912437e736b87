"""Deciding whether, and for how long, a successful response is cached.

The API uses freshness lifetimes (``Cache-Control: max-age``, ``Expires``)
and validators (``ETag``, ``Last-Modified``), sometimes both and sometimes
neither, so nothing here assumes either is present.

Resolution order:

1. ``max-age`` from ``Cache-Control``.
2. ``Expires`` minus now, unless it is one of the "never expires" sentinels
   (``""``, ``"-1"``, ``"0"``).
3. Otherwise the lifetime is undefined.

A response with no lifetime and no validator is not cached. A response is
only written to the store with a strictly positive lifetime, which means a
response carrying only an ``ETag`` is dropped too unless a fallback
lifetime for validator-only responses is configured.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Mapping, Optional

import httpx

from jukebox.cache.store import TTLCacheStore
from jukebox.models import CacheEntry
from jukebox.output import get_output
from jukebox.timeutil import format_duration, parse_http_date

EMPTY_EXPIRES = frozenset({"", "-1", "0"})

_LEADING_DIGITS = re.compile(r"\d+")


def parse_cache_control(value: str) -> dict[str, Optional[str]]:
    """Split a ``Cache-Control`` value into ``{directive: argument}``.

    Directive names are lower-cased; arguments keep their case with
    surrounding quotes removed. Directives without an argument map to
    ``None``.

    Example::

        >>> parse_cache_control('public, Max-Age=60; no-transform')
        {'public': None, 'max-age': '60', 'no-transform': None}
    """
    directives: dict[str, Optional[str]] = {}
    for part in re.split(r"[,;]", value):
        part = part.strip()
        if not part:
            continue
        name, sep, argument = part.partition("=")
        name = name.strip().lower()
        if not name:
            continue
        directives[name] = argument.strip().strip('"') if sep else None
    return directives


def max_age(cache_control: str) -> Optional[int]:
    """Return the ``max-age`` seconds of a ``Cache-Control`` value.

    Only the leading decimal digits of the argument count. ``None`` when the
    directive is missing or its argument does not start with a digit.
    """
    argument = parse_cache_control(cache_control).get("max-age")
    if not argument:
        return None
    match = _LEADING_DIGITS.match(argument)
    if match is None:
        return None
    return int(match.group())


def resolve_lifetime(headers: Mapping[str, str], now: Optional[datetime] = None) -> Optional[float]:
    """Return the freshness lifetime of a response in seconds.

    ``None`` means no lifetime could be derived. A value of zero or below
    means the response is already stale.
    """
    headers = httpx.Headers(headers)
    cache_control = headers.get("Cache-Control", "")
    if cache_control:
        seconds = max_age(cache_control)
        if seconds is not None:
            return float(seconds)

    expires = headers.get("Expires", "")
    if expires in EMPTY_EXPIRES:
        return None
    expires_at = parse_http_date(expires)
    if expires_at is None:
        return None
    if now is None:
        now = datetime.now(timezone.utc)
    return (expires_at - now).total_seconds()


def build_entry(
    key: str,
    headers: Mapping[str, str],
    body: bytes,
    now: Optional[datetime] = None,
    validator_only_ttl: Optional[float] = None,
) -> tuple[Optional[CacheEntry], Optional[float]]:
    """Build the cache entry for a successful response without storing it.

    Args:
        key: The full request URL.
        headers: Response headers (case-insensitive mapping).
        body: The full response payload.
        now: Reference time for ``Expires``; defaults to the current time.
        validator_only_ttl: Lifetime used when the response has an ``ETag``
            but no derivable lifetime.

    Returns:
        ``(entry, lifetime)``. ``entry`` is ``None`` when the response has
        neither a lifetime nor a validator. ``lifetime`` may be ``None`` or
        non-positive, in which case the entry must not be stored.
    """
    headers = httpx.Headers(headers)
    lifetime = resolve_lifetime(headers, now)
    etag = headers.get("ETag", "")
    last_modified = headers.get("Last-Modified", "")

    output = get_output()
    output.debug(
        f"Cache headers for {key}: Cache-Control={headers.get('Cache-Control', '')!r} "
        f"Expires={headers.get('Expires', '')!r} Last-Modified={last_modified!r} ETag={etag!r}"
    )

    if lifetime is None and not etag and not last_modified:
        return None, None

    if lifetime is None and etag and validator_only_ttl is not None:
        lifetime = validator_only_ttl

    entry = CacheEntry(key=key, etag=etag, body=body, ttl=lifetime if lifetime and lifetime > 0 else 0)
    return entry, lifetime


def cache_response(
    store: TTLCacheStore,
    key: str,
    headers: Mapping[str, str],
    body: bytes,
    now: Optional[datetime] = None,
    validator_only_ttl: Optional[float] = None,
) -> bool:
    """Store a successful response in *store* when its lifetime allows it.

    Returns:
        ``True`` if an entry was written.
    """
    entry, lifetime = build_entry(key, headers, body, now, validator_only_ttl)
    output = get_output()
    if entry is None:
        output.debug(f"Not caching {key}: no lifetime and no validator")
        return False
    if lifetime is None or lifetime <= 0:
        output.debug(f"Not caching {key}: no positive lifetime")
        return False

    store.set(key, entry, ttl=lifetime)
    output.debug(f"Cached {key} for {format_duration(lifetime)}")
    return True
