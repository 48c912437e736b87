"""HTTP client for jukebox.

:class:`Client` wraps :mod:`httpx` with the two primitives every endpoint
wrapper builds on:

* :meth:`Client.get` -- GET through the response cache with ``ETag``
  revalidation.
* :meth:`Client.execute` -- any other request, uncached.

Both retry rate-limited responses when ``auto_retry`` is on and turn
failures into :class:`~jukebox.exceptions.APIError`.

Example::

    from jukebox.client import Client

    with Client(token=token) as client:
        me = client.get("me")
"""

from jukebox.client.errors import decode_error
from jukebox.client.inflight import InFlightGroup
from jukebox.client.retry import RetryController, retry_after, should_retry
from jukebox.client.sync_client import Client, build_url

__all__ = [
    "Client",
    "InFlightGroup",
    "RetryController",
    "build_url",
    "decode_error",
    "retry_after",
    "should_retry",
]
