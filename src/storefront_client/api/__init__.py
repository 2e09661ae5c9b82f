"""Typed resource clients, one per API resource.

Every method performs exactly one call on the shared
:class:`~storefront_client.client.transport.Transport` and validates the body
into the models of :mod:`storefront_client.models`.
"""

from storefront_client.api.admin import AdminApi
from storefront_client.api.auth import AuthApi
from storefront_client.api.base import ResourceClient
from storefront_client.api.favorites import FavoritesApi
from storefront_client.api.health import HealthApi, health_from_error
from storefront_client.api.orders import OrdersApi
from storefront_client.api.products import ProductsApi

__all__ = [
    "AdminApi",
    "AuthApi",
    "FavoritesApi",
    "HealthApi",
    "OrdersApi",
    "ProductsApi",
    "ResourceClient",
    "health_from_error",
]
