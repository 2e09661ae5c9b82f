"""Query cache, pagination and mutations."""

from storefront_client.query.cache import (
    CacheEntry,
    QueryCache,
    QueryOptions,
    QueryStatus,
    Subscription,
)
from storefront_client.query.keys import QueryKey, as_key
from storefront_client.query.mutation import Mutation
from storefront_client.query.pagination import (
    Page,
    PaginationState,
    Paginator,
    PaginatorStatus,
)

__all__ = [
    "CacheEntry",
    "Mutation",
    "Page",
    "PaginationState",
    "Paginator",
    "PaginatorStatus",
    "QueryCache",
    "QueryKey",
    "QueryOptions",
    "QueryStatus",
    "Subscription",
    "as_key",
]
