"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~jukebox.exceptions.JukeboxError` subclass.
Shell wrappers can inspect the exit code to tell a rate limit from a
malformed response without parsing stderr.

Example::

    $ jukebox get browse/new-releases
    $ echo $?
    8   # EXIT_RATE_LIMITED -- the API answered 429 and auto-retry was off
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or configuration."""

EXIT_API_ERROR = 5
"""The remote API answered with a non-success status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_DECODE_ERROR = 7
"""A response body could not be decoded as the expected JSON."""

EXIT_RATE_LIMITED = 8
"""The API rate-limited the request and automatic retry was disabled."""

EXIT_CANCELLED = 130
"""The operation was cancelled or ran past its deadline."""
