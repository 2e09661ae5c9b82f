"""Bridge between synchronous Typer commands and the async client core."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import typer

from storefront_client.config import resolve_settings
from storefront_client.context import StorefrontContext
from storefront_client.exceptions import AuthenticationError, StorefrontError, TransportError
from storefront_client.output import error, suggest

T = TypeVar("T")


def report_error(exc: StorefrontError) -> None:
    """Print *exc* with a next-step hint where one exists."""
    message = exc.message
    if exc.status is not None:
        message = f"{message} (HTTP {exc.status})"
    if exc.request_id:
        message = f"{message} [request {exc.request_id}]"
    error(message)
    if isinstance(exc, AuthenticationError):
        suggest("Session expired or missing. Run: storefront login")
    elif isinstance(exc, TransportError):
        suggest("Is the API running? Check: storefront config show")


def run_async(ctx: typer.Context, fn: Callable[[StorefrontContext], Awaitable[T]]) -> T:
    """Run ``fn(storefront_context)`` on a fresh event loop.

    The context is built from the resolved settings (honouring
    ``--base-url``) and closed afterwards.  A :class:`StorefrontError`
    is reported and turned into its exit code.

    Raises:
        typer.Exit: With the error's ``exit_code`` on any API failure.
    """
    obj = ctx.obj or {}

    async def _main() -> T:
        settings = resolve_settings(obj.get("base_url"))
        async with StorefrontContext(
            settings, http_transport=obj.get("http_transport")
        ) as storefront:
            return await fn(storefront)

    try:
        return asyncio.run(_main())
    except StorefrontError as exc:
        report_error(exc)
        raise typer.Exit(code=exc.exit_code) from None


def print_models(
    items: list,
    headers: list[str],
    row: Callable[[T], list[str]],
    title: str | None = None,
) -> None:
    """Print pydantic models as a table, or as full JSON objects with ``--json``."""
    from storefront_client.output import OutputFormat, get_output

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.format_response([item.model_dump(mode="json") for item in items])
    else:
        output.print_table(headers, [row(item) for item in items], title)
