"""``/products`` endpoints: catalogue reads and admin writes."""

from __future__ import annotations

from typing import Any, Optional, Union

from storefront_client.api.base import ResourceClient
from storefront_client.models import Product, ProductInput, ProductStats

SORT_DIRECTIONS = ("asc", "desc")


def _payload(data: Union[ProductInput, dict[str, Any]]) -> dict[str, Any]:
    if isinstance(data, ProductInput):
        return data.model_dump(by_alias=True, exclude_none=True)
    return {k: v for k, v in data.items() if v is not None}


class ProductsApi(ResourceClient):
    """Catalogue client.

    ``list`` sorts server-side with the ``sort[field]`` / ``sort[dir]``
    query parameters.  ``create``, ``update``, ``delete`` and ``stats``
    require an admin credential.
    """

    async def list(
        self,
        sort_field: Optional[str] = None,
        sort_dir: Optional[str] = None,
    ) -> list[Product]:
        if sort_dir is not None and sort_dir not in SORT_DIRECTIONS:
            raise ValueError(f"sort_dir must be one of {SORT_DIRECTIONS}, got {sort_dir!r}")
        params: dict[str, Any] = {}
        if sort_field:
            params["sort[field]"] = sort_field
            params["sort[dir]"] = sort_dir or "asc"
        response = await self._transport.get("/products", params=params)
        return self._parse(response, list[Product])

    async def get(self, product_id: str) -> Product:
        response = await self._transport.get(f"/products/{product_id}")
        return self._parse(response, Product)

    async def create(self, data: Union[ProductInput, dict[str, Any]]) -> Product:
        response = await self._transport.post("/products", json_body=_payload(data))
        return self._parse(response, Product)

    async def update(self, product_id: str, patch: dict[str, Any]) -> Product:
        response = await self._transport.put(
            f"/products/{product_id}", json_body=_payload(patch)
        )
        return self._parse(response, Product)

    async def delete(self, product_id: str) -> None:
        await self._transport.delete(f"/products/{product_id}")

    async def stats(self) -> ProductStats:
        response = await self._transport.get("/products/admin/stats")
        return self._parse(response, ProductStats)
