"""Where jukebox keeps its files and how the effective settings are chosen.

* **Directories** -- ``$XDG_CONFIG_HOME/jukebox`` and
  ``$XDG_CACHE_HOME/jukebox`` on Linux/BSD, ``~/.jukebox`` (with a
  ``cache/`` subdirectory) elsewhere.
* **Config file** -- one :class:`~jukebox.models.ClientConfig` serialised as
  JSON, replaced atomically on save.
* **Precedence** -- CLI flags, then ``JUKEBOX_*`` environment variables,
  then the config file, then model defaults. See :func:`resolve_config`.
* **Tokens** -- :func:`resolve_credential` reads an existing bearer token
  from an environment variable or a file. Obtaining one is the caller's job.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from jukebox.exceptions import ConfigError
from jukebox.models import ClientConfig

_APP_NAME = "jukebox"
_CONFIG_FILENAME = "config.json"
_RESPONSES_SUBDIR = "responses"

_TRUTHY = ("1", "true", "yes", "on")


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: str, fallback_subdir: Optional[str]) -> Path:
    if _is_xdg_platform():
        root = os.environ.get(xdg_var) or str(Path.home() / xdg_default)
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback_subdir:
            path = path / fallback_subdir
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Return (and create) the directory holding ``config.json``."""
    return _app_dir("XDG_CONFIG_HOME", ".config", None)


def get_cache_dir() -> Path:
    """Return (and create) the cache directory. Its contents are disposable."""
    return _app_dir("XDG_CACHE_HOME", ".cache", "cache")


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* so readers see either the old or the new file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_config() -> ClientConfig:
    """Read the config file, or return defaults when there is none.

    Raises:
        ConfigError: If the file is not valid JSON or does not validate.
    """
    path = config_path()
    if not path.is_file():
        return ClientConfig()
    try:
        return ClientConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except ValueError as exc:
        # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: ClientConfig) -> None:
    text = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    _atomic_write(config_path(), text)


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_auto_retry: Optional[bool] = None,
    cli_format: Optional[str] = None,
) -> ClientConfig:
    """Merge CLI flags, environment and config file into one :class:`ClientConfig`.

    Environment variables: ``JUKEBOX_BASE_URL``, ``JUKEBOX_AUTO_RETRY``
    (``1``/``true``/``yes``/``on`` enable it, anything else disables it) and
    ``JUKEBOX_TOKEN_SOURCE``.

    Unless the config file names a cache directory, responses are kept under
    :func:`get_cache_dir` so they survive between CLI invocations.
    """
    config = load_config()

    env = os.environ
    if env.get("JUKEBOX_BASE_URL"):
        config.base_url = env["JUKEBOX_BASE_URL"]
    if env.get("JUKEBOX_AUTO_RETRY"):
        config.request.auto_retry = env["JUKEBOX_AUTO_RETRY"].strip().lower() in _TRUTHY
    if env.get("JUKEBOX_TOKEN_SOURCE"):
        config.token_source = env["JUKEBOX_TOKEN_SOURCE"]

    if cli_base_url is not None:
        config.base_url = cli_base_url
    if cli_auto_retry is not None:
        config.request.auto_retry = cli_auto_retry
    if cli_format is not None:
        config.output.format = cli_format

    if config.cache.directory is None:
        config.cache.directory = str(get_cache_dir() / _RESPONSES_SUBDIR)
    return config


def resolve_credential(source: str) -> str:
    """Return the token named by *source*: ``env:VAR`` or ``file:/path``.

    Raises:
        ConfigError: If the variable is unset, the file is missing or
            unreadable, or the prefix is unknown.
    """
    kind, _, ref = source.partition(":")
    if kind == "env":
        value = os.environ.get(ref)
        if value is None:
            raise ConfigError(f"Environment variable '{ref}' is not set (source: {source})")
        return value
    if kind == "file":
        path = Path(ref).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc
    raise ConfigError(f"Unknown credential source format: {source}")
