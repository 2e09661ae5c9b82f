"""``/orders`` endpoints: placing, reading and updating orders."""

from __future__ import annotations

from typing import Any, Optional, Union

import httpx

from storefront_client.api.base import ResourceClient
from storefront_client.models import Order, OrderInput, OrderStatus, OrderUpdate
from storefront_client.query.pagination import Page


def _payload(data: Union[OrderInput, OrderUpdate, dict[str, Any]]) -> dict[str, Any]:
    if isinstance(data, (OrderInput, OrderUpdate)):
        return data.model_dump(by_alias=True, exclude_none=True, mode="json")
    return {k: v for k, v in data.items() if v is not None}


class OrdersApi(ResourceClient):
    """Order client.

    Order lists page by *last order id*: the server answers
    ``{"data": [...], "meta": {"count": n, "hasMore": bool}}`` and the next
    page is requested with ``lastOrderId`` set to the last id received.
    :class:`Page` carries that id as its cursor while ``hasMore`` holds.

    ``list_all`` requires an admin credential.  Users may only read and
    update their own orders.
    """

    async def create(self, data: Union[OrderInput, dict[str, Any]]) -> Order:
        response = await self._transport.post("/orders", json_body=_payload(data))
        return self._parse(response, Order)

    async def get(self, order_id: str) -> Order:
        response = await self._transport.get(f"/orders/{order_id}")
        return self._parse(response, Order)

    async def list_mine(
        self, limit: Optional[int] = None, last_order_id: Optional[str] = None
    ) -> Page[Order]:
        response = await self._transport.get(
            "/orders/my", params={"limit": limit, "lastOrderId": last_order_id}
        )
        return self._page(response)

    async def list_all(
        self,
        status: Optional[Union[OrderStatus, str]] = None,
        limit: Optional[int] = None,
        last_order_id: Optional[str] = None,
    ) -> Page[Order]:
        if status is not None:
            status = OrderStatus(status).value
        response = await self._transport.get(
            "/orders",
            params={"status": status, "limit": limit, "lastOrderId": last_order_id},
        )
        return self._page(response)

    async def update(
        self, order_id: str, patch: Union[OrderUpdate, dict[str, Any]]
    ) -> Order:
        response = await self._transport.put(f"/orders/{order_id}", json_body=_payload(patch))
        return self._parse(response, Order)

    async def cancel(self, order_id: str) -> Order:
        response = await self._transport.post(f"/orders/{order_id}/cancel")
        return self._parse(response, Order)

    def _page(self, response: httpx.Response) -> Page[Order]:
        body = self._parse(response, dict[str, Any], unwrap=False)
        orders = self._parse(response, list[Order])
        meta = body.get("meta") or {}
        has_more = bool(meta.get("hasMore")) and bool(orders)
        return Page(items=tuple(orders), next_cursor=orders[-1].id if has_more else None)
