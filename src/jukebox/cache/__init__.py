"""Response caching for jukebox.

:class:`TTLCacheStore` holds the last successful body (and its ``ETag``) per
request URL; :mod:`jukebox.cache.policy` decides from the response headers
whether and for how long a body is stored. Both are owned by a
:class:`~jukebox.client.Client` or injected into it; there is no
process-wide cache.
"""

from jukebox.cache.policy import (
    build_entry,
    cache_response,
    max_age,
    parse_cache_control,
    resolve_lifetime,
)
from jukebox.cache.store import TTLCacheStore

__all__ = [
    "TTLCacheStore",
    "build_entry",
    "cache_response",
    "max_age",
    "parse_cache_control",
    "resolve_lifetime",
]
