"""Typer application and CLI entry point for fixturecache.

This module wires together the top-level Typer application and registers
the built-in commands (``fetch``, ``show``, ``key``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~fixturecache.exceptions.FixtureCacheError` exits with its own
exit code; any other exception is written to a crash log under the data
directory.

See Also:
    :mod:`fixturecache.config`: Store configuration resolution.
    :mod:`fixturecache.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

import typer

from fixturecache import __version__
from fixturecache.commands.config import config_app
from fixturecache.commands.fetch import fetch_command, key_command, show_command
from fixturecache.exit_codes import EXIT_GENERIC_FAILURE

if TYPE_CHECKING:
    from fixturecache.output import OutputFormat


app = typer.Typer(
    name="fixturecache",
    help="Fetch URLs through a versioned on-disk response cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("fetch")(fetch_command)
app.command("show")(show_command)
app.command("key")(key_command)
app.add_typer(config_app, name="config", help="Configuration management.")

_LIBRARY_LOGGER = "fixturecache"


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"fixturecache {__version__}")
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
    root: Optional[str] = typer.Option(
        None, "--root", "-r", help="Cache root directory."
    ),
    max_error_version: Optional[int] = typer.Option(
        None,
        "--max-error-version",
        min=0,
        help="Refetch cached error responses until their version exceeds this.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~fixturecache.output.OutputManager`,
    routes library logging to it when ``--verbose`` is set, and stores
    shared options in ``ctx.obj`` for sub-commands.
    """
    from fixturecache.output import OutputFormat, OutputLogHandler, OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = _configured_format()

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    _configure_logging(OutputLogHandler(output), verbose)

    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["max_error_version"] = max_error_version
    ctx.obj["force"] = force


def _configured_format() -> OutputFormat:
    """Default format from ``output.format`` in the global config; AUTO if unreadable."""
    from fixturecache.config import load_global_config
    from fixturecache.exceptions import ConfigError
    from fixturecache.output import OutputFormat

    try:
        return OutputFormat(load_global_config().output.format)
    except ConfigError:
        return OutputFormat.AUTO


def _configure_logging(handler: logging.Handler, verbose: bool) -> None:
    """Attach *handler* to the library logger, replacing any earlier one."""
    logger = logging.getLogger(_LIBRARY_LOGGER)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from fixturecache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``fixturecache`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from fixturecache.exceptions import FixtureCacheError
        from fixturecache.output import error

        if isinstance(exc, FixtureCacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
