"""``/favorites`` endpoints for the signed-in user."""

from __future__ import annotations

from storefront_client.api.base import ResourceClient
from storefront_client.models import FavoriteItem


class FavoritesApi(ResourceClient):
    async def list(self) -> list[FavoriteItem]:
        response = await self._transport.get("/favorites")
        return self._parse(response, list[FavoriteItem])

    async def add(self, product_id: str) -> None:
        await self._transport.post(f"/favorites/{product_id}")

    async def remove(self, product_id: str) -> None:
        await self._transport.delete(f"/favorites/{product_id}")

    async def check(self, product_id: str) -> bool:
        """Return whether *product_id* is in the user's favourites.

        A body without ``data.favorite`` counts as ``False``.
        """
        response = await self._transport.get(f"/favorites/{product_id}")
        data = self._parse(response, dict)
        return bool(data.get("favorite"))
