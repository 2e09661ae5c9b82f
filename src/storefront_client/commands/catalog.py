"""Catalogue commands -- ``products`` and ``favorites`` groups.

Example::

    storefront products list --sort price --desc
    storefront favorites add p_123
"""

from __future__ import annotations

from typing import Optional

import typer

from storefront_client.commands.runner import print_models, run_async
from storefront_client.output import format_response, info, success


products_app = typer.Typer(no_args_is_help=True)
favorites_app = typer.Typer(no_args_is_help=True)


def _product_row(product) -> list[str]:
    return [
        product.id,
        product.name,
        f"{product.price:.2f}",
        product.category,
        str(product.stock),
    ]


_PRODUCT_HEADERS = ["ID", "Name", "Price", "Category", "Stock"]


@products_app.command("list")
def products_list(
    ctx: typer.Context,
    sort: Optional[str] = typer.Option(None, "--sort", help="Field to sort by (e.g. price)."),
    desc: bool = typer.Option(False, "--desc", help="Sort descending."),
) -> None:
    """List catalogue products."""
    from storefront_client.queries import StorefrontQueries

    sort_dir = ("desc" if desc else "asc") if sort else None
    products = run_async(ctx, lambda sf: StorefrontQueries(sf).products(sort, sort_dir))
    if not products:
        info("No products.")
        return
    print_models(products, _PRODUCT_HEADERS, _product_row, title="Products")


@products_app.command("show")
def products_show(
    ctx: typer.Context,
    product_id: str = typer.Argument(help="Product id."),
) -> None:
    """Show one product."""
    from storefront_client.queries import StorefrontQueries

    product = run_async(ctx, lambda sf: StorefrontQueries(sf).product(product_id))
    format_response(product.model_dump(mode="json", by_alias=True))


@products_app.command("stats")
def products_stats(ctx: typer.Context) -> None:
    """Show catalogue statistics (admin only)."""
    from storefront_client.queries import StorefrontQueries

    stats = run_async(ctx, lambda sf: StorefrontQueries(sf).product_stats())
    format_response(stats.model_dump(mode="json", by_alias=True))


@favorites_app.command("list")
def favorites_list(ctx: typer.Context) -> None:
    """List your favourite products."""
    from storefront_client.queries import StorefrontQueries

    items = run_async(ctx, lambda sf: StorefrontQueries(sf).favorites())
    if not items:
        info("No favourites yet.")
        return
    print_models(
        items,
        _PRODUCT_HEADERS,
        lambda item: _product_row(item.product),
        title="Favourites",
    )


@favorites_app.command("add")
def favorites_add(
    ctx: typer.Context,
    product_id: str = typer.Argument(help="Product id."),
) -> None:
    """Add a product to your favourites."""
    run_async(ctx, lambda sf: sf.favorites.add(product_id))
    success(f"Added {product_id} to favourites.")


@favorites_app.command("remove")
def favorites_remove(
    ctx: typer.Context,
    product_id: str = typer.Argument(help="Product id."),
) -> None:
    """Remove a product from your favourites."""
    run_async(ctx, lambda sf: sf.favorites.remove(product_id))
    success(f"Removed {product_id} from favourites.")


@favorites_app.command("toggle")
def favorites_toggle(
    ctx: typer.Context,
    product_id: str = typer.Argument(help="Product id."),
) -> None:
    """Flip the favourite flag of a product."""
    from storefront_client.queries import StorefrontQueries

    now_favorite = run_async(ctx, lambda sf: StorefrontQueries(sf).toggle_favorite(product_id))
    success(f"{product_id} is {'now' if now_favorite else 'no longer'} a favourite.")


@favorites_app.command("check")
def favorites_check(
    ctx: typer.Context,
    product_id: str = typer.Argument(help="Product id."),
) -> None:
    """Tell whether a product is one of your favourites."""
    from storefront_client.queries import StorefrontQueries

    favorite = run_async(ctx, lambda sf: StorefrontQueries(sf).favorite_status(product_id))
    format_response({"product_id": product_id, "favorite": favorite})
