"""HTTP layer for storefront-client.

Provides the shared asynchronous :class:`Transport` and the middleware
:class:`Pipeline` it runs every call through.

Example::

    from storefront_client.client import Transport, default_pipeline

    async with Transport(base_url, default_pipeline(store)) as transport:
        resp = await transport.get("/health")
"""

from storefront_client.client.middleware import (
    Pipeline,
    bearer_auth,
    clear_credential_on_unauthenticated,
    correlation_id,
    default_pipeline,
    raise_for_status,
)
from storefront_client.client.transport import Transport

__all__ = [
    "Pipeline",
    "Transport",
    "bearer_auth",
    "clear_credential_on_unauthenticated",
    "correlation_id",
    "default_pipeline",
    "raise_for_status",
]
