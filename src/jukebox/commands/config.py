"""Config commands -- view and modify the configuration file.

Settings are persisted as :class:`~jukebox.models.ClientConfig` JSON in the
jukebox config directory and control the base URL, token source, retry
behaviour and cache lifetimes.
"""

from __future__ import annotations

from typing import Any

import typer

from jukebox.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


def _coerce(current: Any, value: str, key: str) -> Any:
    """Coerce *value* to the type of the field's *current* value."""
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes", "on")
    if isinstance(current, (int, float)):
        try:
            return type(current)(value)
        except ValueError:
            error(f"Expected a number for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    if current is None and value.lower() in ("none", "null", ""):
        return None
    return value


@config_app.command("show")
def config_show() -> None:
    """Show the current configuration file contents.

    Example::

        jukebox config show --json
    """
    from jukebox.app import handle_errors
    from jukebox.config import config_path, load_config

    with handle_errors():
        config = load_config()
    info(f"Config file: {config_path()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key in dot notation, e.g. 'request.auto_retry'."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the existing field's type and the result is
    validated before saving.

    Example::

        jukebox config set request.auto_retry true
        jukebox config set cache.validator_only_ttl_seconds 300
    """
    from jukebox.app import handle_errors
    from jukebox.config import load_config, save_config
    from jukebox.models import ClientConfig

    with handle_errors():
        config = load_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    coerced = _coerce(target[final_key], value, key)
    target[final_key] = coerced

    try:
        new_config = ClientConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset the configuration to defaults."""
    from jukebox.config import save_config
    from jukebox.models import ClientConfig

    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_config(ClientConfig())
    success("Configuration reset to defaults.")
