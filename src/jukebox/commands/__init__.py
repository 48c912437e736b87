"""Built-in CLI sub-command groups for jukebox.

* :mod:`~jukebox.commands.cache` -- inspect, sweep and clear the
  persistent response cache.
* :mod:`~jukebox.commands.config` -- view and modify settings.

Each module exports a :class:`typer.Typer` sub-application registered on the
root app in :mod:`jukebox.app`.
"""
