"""jukebox -- a caching, rate-limit aware client for a JSON web API.

Endpoint wrappers call into two primitives of :class:`~jukebox.client.Client`:
``get`` (cached, revalidated with ``ETag``) and ``execute`` (uncached).
Responses are cached per URL for as long as ``Cache-Control: max-age`` or
``Expires`` allows; rate-limited requests are retried after ``Retry-After``
seconds when ``auto_retry`` is on.

Modules:
    client: The HTTP client, retry controller and error decoder.
    cache: TTL cache store and cache-header policy.
    models: Pydantic models for configuration, cache entries and payloads.
    config: XDG-aware configuration loading and precedence.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr output with Rich support.
    timeutil: API date/timestamp layouts and duration formatting.
    app: Typer CLI entry point.
"""

__version__ = "1.0.0"
