"""Built-in CLI sub-commands for fixturecache.

* :mod:`~fixturecache.commands.fetch` -- ``fetch``, ``show`` and ``key``:
  fetch through the cache and inspect stored entries.
* :mod:`~fixturecache.commands.config` -- view and modify global settings.

Single commands are plain callback functions registered directly on the
root app; multi-command groups export a :class:`typer.Typer` sub-application.
"""
