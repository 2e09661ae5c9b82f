"""Terminal rendering for the ``storefront`` CLI and the library's trace line.

Catalogue rows, favourites, orders and audit-log pages are *data* and go to
stdout, so ``storefront products list --json | jq`` stays parseable.
Everything said *about* a command goes to stderr: sign-in confirmations,
"more pages available" hints, API errors and the ``[debug]`` trace of
requests and cache decisions.

Rich styling is used only when stdout is a terminal and colour is allowed;
``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` all force plain text.

The request pipeline, query cache and paginator never print.  They call
:func:`debug`, which is silent until the CLI installs a ``--verbose``
:class:`OutputManager` with :func:`set_output`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How command results are rendered (``--json``, ``--plain`` or neither).

    ``AUTO`` picks ``RICH`` for a colour-capable terminal and ``PLAIN``
    otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Writes command results to stdout and diagnostics to stderr.

    Args:
        format: Rendering for results; ``AUTO`` is resolved once, here.
        no_color: Plain diagnostics without Rich markup.
        quiet: Drop info, success and suggestion lines (``--quiet``).
            Warnings and errors are always shown.
        verbose: Show the ``[debug]`` trace (``--verbose``).
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        if format != OutputFormat.AUTO:
            self._format = format
        elif _is_tty() and not self._no_color:
            self._format = OutputFormat.RICH
        else:
            self._format = OutputFormat.PLAIN

        rich = self._format == OutputFormat.RICH
        self._stdout = Console(file=sys.stdout, no_color=self._no_color, force_terminal=rich)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Render one result, e.g. a dumped :class:`~storefront_client.models.Product`.

        JSON prints it verbatim, plain prints ``key<TAB>value`` lines (or one
        line per list element) and Rich pretty-prints it as highlighted JSON.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json(data))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
        elif isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_to_json(data), "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print list results such as products or orders.

        JSON gives an array of objects keyed by *headers*; plain gives a
        tab-separated header line and one line per row, ready for ``cut``.
        The *title* is shown in Rich mode only.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json([dict(zip(headers, row)) for row in rows]))
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return
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
        """E.g. "No orders." when a list comes back empty."""
        if not self._quiet:
            self._say(message, message)

    def success(self, message: str) -> None:
        """Confirms a completed write, e.g. "p1 is now a favourite."."""
        if not self._quiet:
            self._say(message, f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        self._say(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Reports a failed command; shown even with ``--quiet``."""
        self._say(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def suggest(self, message: str) -> None:
        """Hints the next command, e.g. ``→ Run: storefront login``."""
        if not self._quiet:
            hint = f"→ {message}"
            self._say(hint, f"[dim]{hint}[/dim]")

    def debug(self, message: str) -> None:
        # URLs and cache keys contain brackets; escape them from Rich markup
        if self._verbose:
            line = f"[debug] {message}"
            if self._no_color:
                print(line, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]{escape(line)}[/dim]", highlight=False)

    def _say(self, plain: str, styled: str) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(styled)


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything, even empty, or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide manager
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager; a default, non-verbose one is made on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install the manager built from the CLI's global flags."""
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    """Trace a request or cache decision; printed only under ``--verbose``."""
    get_output().debug(message)
