"""Cache commands -- inspect and maintain the persistent response cache.

The CLI keeps cached responses in the XDG cache directory (see
:func:`~jukebox.config.get_cache_dir`) so that ``ETag`` revalidation and
``max-age`` freshness carry over between invocations.
"""

from __future__ import annotations

from contextlib import closing

import typer

from jukebox.output import format_response, success


cache_app = typer.Typer(no_args_is_help=True)


def _open_store():
    from jukebox.cache import TTLCacheStore
    from jukebox.config import resolve_config

    config = resolve_config()
    # One-shot commands sweep explicitly; no background thread needed.
    return TTLCacheStore(
        directory=config.cache.directory,
        default_ttl=config.cache.default_ttl_seconds,
        sweep_interval=0,
    )


@cache_app.command("stats")
def cache_stats() -> None:
    """Show the number of cached entries and the cache settings.

    Example::

        jukebox cache stats --json
    """
    from jukebox.app import handle_errors

    with handle_errors(), closing(_open_store()) as store:
        stats = store.stats()
    format_response(stats)


@cache_app.command("sweep")
def cache_sweep() -> None:
    """Delete expired entries now."""
    from jukebox.app import handle_errors

    with handle_errors(), closing(_open_store()) as store:
        removed = store.sweep()
    success(f"Removed {removed} expired entries.")


@cache_app.command("clear")
def cache_clear(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Remove every cached response."""
    from jukebox.app import handle_errors

    if not force and not typer.confirm("Remove all cached responses?"):
        raise typer.Exit()
    with handle_errors(), closing(_open_store()) as store:
        removed = store.clear()
    success(f"Removed {removed} entries.")
