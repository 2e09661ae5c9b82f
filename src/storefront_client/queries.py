"""Cached storefront queries and the writes that keep them consistent.

Cache keys and timings::

    ("favorites", "list")                stale 60s
    ("favorites", "status", <pid>)       stale 30s, seeded from the list
    ("products", "list", {sort...})      stale 60s
    ("products", "detail", <pid>)        stale 60s
    ("products", "stats")                stale 60s
    ("admin", "users")                   default policy
    ("admin", "audit-logs", {params})    paginated, stale 30s
    ("admin", "metrics")                 stale 30s, polled every 60s, 1 retry
    ("orders", "mine", {limit})          paginated, stale 30s
    ("orders", "all", {status, limit})   paginated, stale 30s
    ("orders", "detail", <oid>)          stale 30s
    ("system", "health")                 stale 10s, polled every 30s, 1 retry

Writes never retry.  After a successful write the affected keys are either
patched in place (:meth:`QueryCache.mutate`) or invalidated.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from storefront_client.context import StorefrontContext
from storefront_client.models import (
    AdminUser,
    AuditLogEntry,
    FavoriteItem,
    HealthStatus,
    Order,
    OrderInput,
    OrderStatus,
    OrderUpdate,
    Product,
    ProductInput,
    ProductStats,
    SystemMetrics,
)
from storefront_client.query.cache import QueryOptions, Subscription
from storefront_client.query.keys import QueryKey
from storefront_client.query.mutation import Mutation
from storefront_client.query.pagination import Cursor, Page, Paginator

FAVORITES = QueryKey.of("favorites")
FAVORITES_LIST = QueryKey.of("favorites", "list")
PRODUCTS = QueryKey.of("products")
PRODUCT_STATS = QueryKey.of("products", "stats")
ADMIN_USERS = QueryKey.of("admin", "users")
AUDIT_LOGS = QueryKey.of("admin", "audit-logs")
SYSTEM_METRICS = QueryKey.of("admin", "metrics")
ORDERS = QueryKey.of("orders")
MY_ORDERS = QueryKey.of("orders", "mine")
ALL_ORDERS = QueryKey.of("orders", "all")
SYSTEM_HEALTH = QueryKey.of("system", "health")

FAVORITES_OPTIONS = QueryOptions(stale_time=60)
FAVORITE_STATUS_OPTIONS = QueryOptions(stale_time=30)
PRODUCTS_OPTIONS = QueryOptions(stale_time=60)
AUDIT_LOG_OPTIONS = QueryOptions(stale_time=30)
HEALTH_OPTIONS = QueryOptions(stale_time=10, refetch_interval=30, retries=1)
METRICS_OPTIONS = QueryOptions(stale_time=30, refetch_interval=60, retries=1)
ORDERS_OPTIONS = QueryOptions(stale_time=30)


def favorite_status_key(product_id: str) -> QueryKey:
    return QueryKey.of("favorites", "status", product_id)


def products_list_key(sort_field: Optional[str] = None, sort_dir: Optional[str] = None) -> QueryKey:
    return QueryKey.of("products", "list", sort_field=sort_field, sort_dir=sort_dir)


def order_key(order_id: str) -> QueryKey:
    return QueryKey.of("orders", "detail", order_id)


def product_key(product_id: str) -> QueryKey:
    return QueryKey.of("products", "detail", product_id)


def _replace_user(updated: AdminUser):
    def _apply(users: list[AdminUser]) -> list[AdminUser]:
        return [updated if u.id == updated.id else u for u in users]

    return _apply


def _without_user(user_id: str):
    def _apply(users: list[AdminUser]) -> list[AdminUser]:
        return [u for u in users if u.id != user_id]

    return _apply


class StorefrontQueries:
    """Query and mutation definitions over one :class:`StorefrontContext`.

    Holds no state of its own; every read goes through ``ctx.cache`` so
    separate instances over the same context share results.
    """

    def __init__(self, ctx: StorefrontContext) -> None:
        self._ctx = ctx
        self._cache = ctx.cache

    # ------------------------------------------------------------------ #
    # Favourites
    # ------------------------------------------------------------------ #

    async def favorites(self) -> list[FavoriteItem]:
        return await self._cache.read(FAVORITES_LIST, self._ctx.favorites.list, FAVORITES_OPTIONS)

    async def favorite_status(self, product_id: str) -> bool:
        """Whether *product_id* is a favourite.

        When no status is cached yet but the favourites list is, the answer
        is derived from the list instead of asking the server.
        """
        key = favorite_status_key(product_id)
        if key not in self._cache:
            cached = self._cache.get_data(FAVORITES_LIST)
            if cached is not None:
                self._cache.set_data(
                    key, any(item.product.id == product_id for item in cached)
                )
        return await self._cache.read(
            key, lambda: self._ctx.favorites.check(product_id), FAVORITE_STATUS_OPTIONS
        )

    async def toggle_favorite(self, product_id: str) -> bool:
        """Flip the favourite flag of *product_id*.

        Returns:
            The new status.
        """
        current = await self.favorite_status(product_id)
        write = self._ctx.favorites.remove if current else self._ctx.favorites.add
        await Mutation(
            self._cache,
            write,
            invalidates=[FAVORITES_LIST],
            on_success=lambda _result, pid: self._cache.set_data(
                favorite_status_key(pid), not current
            ),
        ).run(product_id)
        return not current

    # ------------------------------------------------------------------ #
    # Products
    # ------------------------------------------------------------------ #

    async def products(
        self, sort_field: Optional[str] = None, sort_dir: Optional[str] = None
    ) -> list[Product]:
        return await self._cache.read(
            products_list_key(sort_field, sort_dir),
            lambda: self._ctx.products.list(sort_field, sort_dir),
            PRODUCTS_OPTIONS,
        )

    async def product(self, product_id: str) -> Product:
        return await self._cache.read(
            product_key(product_id),
            lambda: self._ctx.products.get(product_id),
            PRODUCTS_OPTIONS,
        )

    async def product_stats(self) -> ProductStats:
        return await self._cache.read(PRODUCT_STATS, self._ctx.products.stats, PRODUCTS_OPTIONS)

    async def create_product(self, data: Union[ProductInput, dict[str, Any]]) -> Product:
        return await Mutation(
            self._cache, self._ctx.products.create, invalidates=[PRODUCTS]
        ).run(data)

    async def update_product(self, product_id: str, patch: dict[str, Any]) -> Product:
        product = await Mutation(
            self._cache, self._ctx.products.update, invalidates=[PRODUCTS]
        ).run(product_id, patch)
        self._cache.set_data(product_key(product_id), product)
        return product

    async def delete_product(self, product_id: str) -> None:
        await Mutation(
            self._cache,
            self._ctx.products.delete,
            invalidates=[PRODUCTS],
            on_success=lambda _result, pid: self._cache.remove(product_key(pid)),
        ).run(product_id)

    # ------------------------------------------------------------------ #
    # Admin
    # ------------------------------------------------------------------ #

    async def admin_users(self) -> list[AdminUser]:
        return await self._cache.read(ADMIN_USERS, self._ctx.admin.list_users)

    def _patch_users(self, fn) -> None:
        # only a cached list is patched; a missing one is fetched on next read
        if self._cache.get_data(ADMIN_USERS) is not None:
            self._cache.mutate(ADMIN_USERS, fn)

    async def promote_user(self, user_id: str) -> AdminUser:
        return await Mutation(
            self._cache,
            self._ctx.admin.promote_user,
            on_success=lambda user, _id: self._patch_users(_replace_user(user)),
        ).run(user_id)

    async def demote_user(self, user_id: str) -> AdminUser:
        return await Mutation(
            self._cache,
            self._ctx.admin.demote_user,
            on_success=lambda user, _id: self._patch_users(_replace_user(user)),
        ).run(user_id)

    async def delete_user(self, user_id: str) -> None:
        await Mutation(
            self._cache,
            self._ctx.admin.delete_user,
            on_success=lambda _result, uid: self._patch_users(_without_user(uid)),
        ).run(user_id)

    def audit_logs(
        self, action: Optional[str] = None, limit: Optional[int] = None
    ) -> Paginator[AuditLogEntry]:
        """Return a paginator over the audit log filtered by *action*.

        The caller owns the paginator and must :meth:`~Paginator.close` it.
        """

        async def fetch_page(params: dict[str, Any], cursor: Optional[Cursor]) -> Page[AuditLogEntry]:
            return await self._ctx.admin.list_audit_logs(after=cursor, **params)

        return Paginator(
            self._cache,
            AUDIT_LOGS,
            fetch_page,
            params={"action": action, "limit": limit},
            options=AUDIT_LOG_OPTIONS,
        )

    async def system_metrics(self) -> SystemMetrics:
        return await self._cache.read(
            SYSTEM_METRICS, self._ctx.admin.system_metrics, METRICS_OPTIONS
        )

    def watch_metrics(self) -> Subscription:
        """Observe the server metrics; re-read every minute while open."""
        return self._cache.subscribe(
            SYSTEM_METRICS, self._ctx.admin.system_metrics, METRICS_OPTIONS
        )

    # ------------------------------------------------------------------ #
    # Orders
    # ------------------------------------------------------------------ #

    def my_orders(self, limit: Optional[int] = None) -> Paginator[Order]:
        """Return a paginator over the signed-in user's orders, newest first.

        The caller owns the paginator and must :meth:`~Paginator.close` it.
        """

        async def fetch_page(params: dict[str, Any], cursor: Optional[Cursor]) -> Page[Order]:
            return await self._ctx.orders.list_mine(last_order_id=cursor, **params)

        return Paginator(
            self._cache, MY_ORDERS, fetch_page, params={"limit": limit}, options=ORDERS_OPTIONS
        )

    def all_orders(
        self,
        status: Optional[Union[OrderStatus, str]] = None,
        limit: Optional[int] = None,
    ) -> Paginator[Order]:
        """Return a paginator over every order, optionally filtered by *status* (admin)."""
        if status is not None:
            status = OrderStatus(status).value

        async def fetch_page(params: dict[str, Any], cursor: Optional[Cursor]) -> Page[Order]:
            return await self._ctx.orders.list_all(last_order_id=cursor, **params)

        return Paginator(
            self._cache,
            ALL_ORDERS,
            fetch_page,
            params={"status": status, "limit": limit},
            options=ORDERS_OPTIONS,
        )

    async def order(self, order_id: str) -> Order:
        return await self._cache.read(
            order_key(order_id), lambda: self._ctx.orders.get(order_id), ORDERS_OPTIONS
        )

    async def create_order(self, data: Union[OrderInput, dict[str, Any]]) -> Order:
        return await Mutation(
            self._cache,
            self._ctx.orders.create,
            invalidates=[MY_ORDERS, ALL_ORDERS],
            on_success=lambda order, _data: self._cache.set_data(order_key(order.id), order),
        ).run(data)

    async def update_order(
        self, order_id: str, patch: Union[OrderUpdate, dict[str, Any]]
    ) -> Order:
        return await Mutation(
            self._cache,
            self._ctx.orders.update,
            invalidates=[MY_ORDERS, ALL_ORDERS],
            on_success=lambda order, oid, _patch: self._cache.set_data(order_key(oid), order),
        ).run(order_id, patch)

    async def cancel_order(self, order_id: str) -> Order:
        return await Mutation(
            self._cache,
            self._ctx.orders.cancel,
            invalidates=[MY_ORDERS, ALL_ORDERS],
            on_success=lambda order, oid: self._cache.set_data(order_key(oid), order),
        ).run(order_id)

    # ------------------------------------------------------------------ #
    # System
    # ------------------------------------------------------------------ #

    async def health(self) -> HealthStatus:
        return await self._cache.read(SYSTEM_HEALTH, self._ctx.health.probe, HEALTH_OPTIONS)

    def watch_health(self) -> Subscription:
        """Observe the health probe; it is re-polled while the subscription is open."""
        return self._cache.subscribe(SYSTEM_HEALTH, self._ctx.health.probe, HEALTH_OPTIONS)
