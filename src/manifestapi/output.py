"""Diagnostics and API results, kept on separate streams.

API results (decoded response bodies, iterated items, manifest tables) go to
stdout so they can be piped. Everything the library says about itself
(manifest loads, executor builds, page fetches, warnings, errors) goes to
stderr.

Library modules never print; they call :func:`debug`, :func:`info`,
:func:`warning` and :func:`error`, which forward to the installed
:class:`OutputManager`. The CLI installs one per invocation with
:func:`set_output`. Code embedding the client gets a quiet manager, so only
warnings and errors reach stderr.

Rich rendering is used on a colour terminal, plain text otherwise.
``NO_COLOR`` and ``TERM=dumb`` are honoured.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How results are written. ``AUTO`` picks ``RICH`` on a colour TTY, else ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Writes API results to stdout and diagnostics to stderr.

    Args:
        format: Result format; ``AUTO`` is resolved once, here.
        no_color: Disable colour and Rich markup.
        quiet: Drop :meth:`info` messages.
        verbose: Show :meth:`debug` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _color_disabled_by_env()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            rich = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Write a decoded response body or a list of items.

        Plain mode writes one ``key<TAB>value`` line per field of an object,
        and one tab-separated line per item of a list. Nested values such as
        ``metadata`` are written as compact JSON.
        """
        if self._format == OutputFormat.JSON:
            _write(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                _write(line)
        else:
            text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows as a Rich table, a JSON array of objects, or TSV."""
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            _write(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                _write("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message)

    def warning(self, message: str) -> None:
        """Always shown, even with ``--quiet``."""
        self._emit(f"Warning: {message}", style="yellow")

    def error(self, message: str) -> None:
        """Always shown, even with ``--quiet``."""
        self._emit(f"Error: {message}", style="bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(f"[debug] {message}", style="dim")

    def _emit(self, message: str, style: Optional[str] = None) -> None:
        if self._no_color:
            print(message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(message, style=style, markup=False, highlight=False)


def _write(text: str) -> None:
    print(text, file=sys.stdout, flush=True)


def _plain_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{_plain_value(value)}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(_plain_value(v) for v in item.values())
            if isinstance(item, dict)
            else _plain_value(item)
            for item in data
        ]
    return [_plain_value(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _color_disabled_by_env() -> bool:
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating a quiet one on first use."""
    global _output
    if _output is None:
        _output = OutputManager(quiet=True)
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
