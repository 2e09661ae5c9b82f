"""Typer application and CLI entry point for storefront-client.

This module wires together the top-level Typer application and registers
the built-in commands (``login``, ``register``, ``logout``, ``status``,
``health``) and groups (``products``, ``favorites``, ``admin``,
``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  It installs a signal handler, registers commands and
invokes the Typer app.  Unhandled exceptions are written to a crash log
under the data directory.

See Also:
    :mod:`storefront_client.commands.runner`: runs a command against a
    :class:`~storefront_client.context.StorefrontContext`.
    :mod:`storefront_client.output`: Output formatting initialised in
    :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from storefront_client import __version__
from storefront_client.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="storefront",
    help="Authenticated, cached access to the storefront API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"storefront-client {__version__}")
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
        None, "--base-url", help="API base endpoint (overrides STOREFRONT_API_URL)."
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
        False, "--verbose", "-v", help="Enable debug output (requests, cache activity)."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~storefront_client.output.OutputManager`
    from CLI flags and stores shared options in ``ctx.obj``.  Entries
    already present in ``ctx.obj`` (such as an ``http_transport`` supplied
    by a test harness) are kept.
    """
    from storefront_client.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["base_url"] = base_url
    ctx.obj["verbose"] = verbose


def _register_commands() -> None:
    from storefront_client.commands.admin import admin_app, health_command
    from storefront_client.commands.auth import (
        login_command,
        logout_command,
        register_command,
        status_command,
    )
    from storefront_client.commands.catalog import favorites_app, products_app
    from storefront_client.commands.config import config_app
    from storefront_client.commands.orders import orders_app

    app.command("login")(login_command)
    app.command("register")(register_command)
    app.command("logout")(logout_command)
    app.command("status")(status_command)
    app.command("health")(health_command)
    app.add_typer(products_app, name="products", help="Browse the catalogue.")
    app.add_typer(favorites_app, name="favorites", help="Manage your favourites.")
    app.add_typer(orders_app, name="orders", help="Your orders.")
    app.add_typer(admin_app, name="admin", help="Administration (admin role required).")
    app.add_typer(config_app, name="config", help="Configuration management.")


_register_commands()


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from storefront_client.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text("".join(traceback.format_exception(exc)))
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``storefront`` console script.

    Unhandled :class:`~storefront_client.exceptions.StorefrontError`
    instances cause a clean exit with the error's ``exit_code``.  All other
    exceptions produce a crash log and a generic failure exit.

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
        from storefront_client.commands.runner import report_error
        from storefront_client.exceptions import StorefrontError
        from storefront_client.output import error

        if isinstance(exc, StorefrontError):
            report_error(exc)
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
