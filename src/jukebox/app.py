"""Typer application and CLI entry point for jukebox.

The CLI is a thin shell over :class:`~jukebox.client.Client` with a
persistent on-disk cache, so repeated invocations benefit from cached
responses and ``ETag`` revalidation:

    jukebox get browse/new-releases -P country=US -P limit=5
    jukebox --verbose get me          # shows cache decisions on stderr
    jukebox cache stats

:func:`main` is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import contextlib
import signal
import sys
from typing import Any, Iterator, Optional

import httpx
import typer

from jukebox import __version__
from jukebox.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE, EXIT_INVALID_USAGE


app = typer.Typer(
    name="jukebox",
    help="Query the web API with response caching and rate-limit retry.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

from jukebox.commands.cache import cache_app  # noqa: E402
from jukebox.commands.config import config_app  # noqa: E402

app.add_typer(cache_app, name="cache", help="Inspect and maintain the response cache.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"jukebox {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Override the API base address."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show cache and retry decisions."
    ),
) -> None:
    """Install the global output manager and stash shared options in ``ctx.obj``."""
    from jukebox.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["base_url"] = base_url


@contextlib.contextmanager
def handle_errors() -> Iterator[None]:
    """Report a :class:`~jukebox.exceptions.JukeboxError` and exit with its code."""
    from jukebox.exceptions import JukeboxError
    from jukebox.output import error

    try:
        yield
    except JukeboxError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def open_client(ctx: typer.Context, auto_retry: Optional[bool] = None) -> Any:
    """Build a :class:`~jukebox.client.Client` from the resolved configuration."""
    from jukebox.client import Client
    from jukebox.config import resolve_config, resolve_credential

    base_url = ctx.obj.get("base_url") if ctx.obj else None
    config = resolve_config(cli_base_url=base_url, cli_auto_retry=auto_retry)
    token = None
    if config.token_source:
        token = resolve_credential(config.token_source)
    else:
        from jukebox.output import warning

        warning("No token source configured; sending requests without Authorization")
    return Client(config, token=token)


def _parse_params(pairs: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            from jukebox.output import error

            error(f"Invalid parameter '{pair}', expected NAME=VALUE")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        params[name] = value
    return params


@app.command("get")
def get_command(
    ctx: typer.Context,
    path: str = typer.Argument(help="Path under the base URL, or an absolute URL."),
    param: list[str] = typer.Option(
        [], "--param", "-P", help="Query parameter as NAME=VALUE (repeatable)."
    ),
    auto_retry: Optional[bool] = typer.Option(
        None, "--auto-retry/--no-auto-retry", help="Wait and retry when rate-limited."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Give up waiting to retry after this many seconds."
    ),
) -> None:
    """GET a resource through the cache and print the JSON body.

    Example::

        jukebox get browse/new-releases -P country=US -P limit=5
    """
    from jukebox.output import format_response

    params = _parse_params(param)
    with handle_errors(), open_client(ctx, auto_retry) as client:
        url = client.url_for(path)
        if params:
            url = str(httpx.URL(url).copy_merge_params(dict(sorted(params.items()))))
        data = client.get(url, timeout=timeout)
    if data is not None:
        format_response(data)


@app.command("new-releases")
def new_releases_command(
    ctx: typer.Context,
    country: Optional[str] = typer.Option(None, "--country", help="ISO 3166-1 alpha-2 code."),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of albums."),
    offset: Optional[int] = typer.Option(None, "--offset", help="Index of the first album."),
    auto_retry: Optional[bool] = typer.Option(
        None, "--auto-retry/--no-auto-retry", help="Wait and retry when rate-limited."
    ),
) -> None:
    """List new album releases."""
    from jukebox.models import Options
    from jukebox.output import format_response

    options = Options(country=country, limit=limit, offset=offset)
    with handle_errors(), open_client(ctx, auto_retry) as client:
        albums = client.new_releases(options)
    format_response(albums)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``jukebox`` console script.

    :class:`~jukebox.exceptions.JukeboxError` instances that escape a
    command exit with the error's ``exit_code``; anything else exits with
    :data:`~jukebox.exit_codes.EXIT_GENERIC_FAILURE`.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except Exception as exc:
        from jukebox.exceptions import JukeboxError
        from jukebox.output import error

        if isinstance(exc, JukeboxError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
