"""Order commands -- list, show and cancel orders.

``list --all`` needs an admin session; everything else acts on the signed-in
user's own orders.

Example::

    storefront orders list --limit 10 --pages 2
    storefront orders list --all --status pending
    storefront orders cancel o_17 --yes
"""

from __future__ import annotations

from typing import Optional

import typer

from storefront_client.commands.runner import print_models, run_async
from storefront_client.models import OrderStatus
from storefront_client.output import format_response, info, success, suggest


orders_app = typer.Typer(no_args_is_help=True)


def _order_row(order) -> list[str]:
    return [
        order.id,
        order.created_at,
        order.status.value,
        str(len(order.items)),
        f"{order.total_amount:.2f}",
    ]


@orders_app.command("list")
def orders_list(
    ctx: typer.Context,
    all_orders: bool = typer.Option(False, "--all", help="Every user's orders (admin)."),
    status: Optional[OrderStatus] = typer.Option(
        None, "--status", "-s", help="Filter by status (with --all)."
    ),
    limit: int = typer.Option(20, "--limit", "-l", min=1, help="Orders per page."),
    pages: int = typer.Option(1, "--pages", min=1, help="Maximum pages to fetch."),
) -> None:
    """List orders, newest first."""
    from storefront_client.queries import StorefrontQueries

    if status is not None and not all_orders:
        raise typer.BadParameter("--status requires --all", param_hint="--status")

    async def _collect(sf):
        queries = StorefrontQueries(sf)
        if all_orders:
            paginator = queries.all_orders(status=status, limit=limit)
        else:
            paginator = queries.my_orders(limit=limit)
        try:
            for _ in range(pages):
                if paginator.exhausted:
                    break
                await paginator.fetch_next()
            return paginator.items, paginator.exhausted
        finally:
            paginator.close()

    orders, exhausted = run_async(ctx, _collect)
    if not orders:
        info("No orders.")
        return
    print_models(
        orders,
        ["ID", "Placed", "Status", "Items", "Total"],
        _order_row,
        title="All orders" if all_orders else "Your orders",
    )
    if not exhausted:
        suggest(f"More orders available: --pages {pages + 1}")


@orders_app.command("show")
def orders_show(
    ctx: typer.Context,
    order_id: str = typer.Argument(help="Order id."),
) -> None:
    """Show one order."""
    from storefront_client.queries import StorefrontQueries

    order = run_async(ctx, lambda sf: StorefrontQueries(sf).order(order_id))
    format_response(order.model_dump(mode="json", by_alias=True))


@orders_app.command("cancel")
def orders_cancel(
    ctx: typer.Context,
    order_id: str = typer.Argument(help="Order id."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Cancel an order that has not shipped yet."""
    from storefront_client.queries import StorefrontQueries

    if not yes:
        typer.confirm(f"Cancel order {order_id}?", abort=True)
    order = run_async(ctx, lambda sf: StorefrontQueries(sf).cancel_order(order_id))
    success(f"Order {order.id} is {order.status.value}.")
