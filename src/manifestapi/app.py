"""Typer application and CLI entry point for manifestapi.

The CLI is a thin layer over :class:`~manifestapi.facade.ManifestClient`:

    manifestapi call charges find -d id=ch_123
    manifestapi list customers --limit 50
    manifestapi inspect operations charges
    manifestapi config set output.format json

The root callback installs the global
:class:`~manifestapi.output.OutputManager` and stores connection options in
``ctx.obj``. :func:`main` is the console-script entry point declared in
``pyproject.toml``; it maps :class:`~manifestapi.exceptions.ManifestApiError`
to its exit code and writes a crash log for anything unexpected.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from manifestapi import __version__
from manifestapi.commands.call import call_command
from manifestapi.commands.config import config_app
from manifestapi.commands.inspect import inspect_app
from manifestapi.commands.listing import list_command
from manifestapi.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="manifestapi",
    help="Call REST APIs described by declarative manifests.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("call")(call_command)
app.command("list")(list_command)
app.add_typer(inspect_app, name="inspect", help="Inspect manifests.")
app.add_typer(config_app, name="config", help="View and modify stored settings.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"manifestapi {__version__}")
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
    api_key: Optional[str] = typer.Option(
        None, "--api-key", "-k", help="API key, or env:VAR / file:/path."
    ),
    api_version: Optional[str] = typer.Option(
        None, "--api-version", help="API version (selects the manifest set)."
    ),
    manifest_path: Optional[str] = typer.Option(
        None, "--manifests", help="Root directory of the versioned manifests."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command."""
    from manifestapi.config import load_settings
    from manifestapi.exceptions import ConfigError
    from manifestapi.output import OutputFormat, OutputManager, set_output, warning

    settings_error: Optional[ConfigError] = None
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        try:
            fmt = OutputFormat(load_settings().output.format)
        except ConfigError as exc:
            fmt = OutputFormat.AUTO
            settings_error = exc

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    if settings_error is not None:
        warning(f"{settings_error}; using the default output format")

    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["version"] = api_version
    ctx.obj["manifest_path"] = manifest_path


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log() -> str:
    """Write the current traceback under the data directory and return its path."""
    from manifestapi.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now().strftime('%Y%m%d-%H%M%S')}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """Console-script entry point."""
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from manifestapi.exceptions import ManifestApiError
        from manifestapi.output import error

        if isinstance(exc, ManifestApiError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log()
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
