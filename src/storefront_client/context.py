"""Explicitly constructed process context for the storefront client.

:class:`StorefrontContext` owns the credential store, the shared transport,
the query cache and the resource clients.  Create one at startup, pass it
to whatever consumes storefront data and close it at shutdown::

    async with StorefrontContext() as ctx:
        await ctx.login("ada@example.com", "s3cret")
        favorites = await StorefrontQueries(ctx).favorites()

Closing the context cancels polling and eviction timers, pending
background fetches and the HTTP connection pool.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import httpx

from storefront_client.api import (
    AdminApi,
    AuthApi,
    FavoritesApi,
    HealthApi,
    OrdersApi,
    ProductsApi,
)
from storefront_client.auth.credential_store import CredentialStore
from storefront_client.client.middleware import Pipeline, default_pipeline
from storefront_client.client.transport import Transport
from storefront_client.config import resolve_settings
from storefront_client.models import LoginResult, RegisteredUser, Settings, User
from storefront_client.output import debug
from storefront_client.query.cache import QueryCache


class StorefrontContext:
    """Everything a storefront consumer needs, with one well-defined lifetime.

    Args:
        settings: Resolved settings; defaults to :func:`resolve_settings`.
        store: Credential store.  One is created (and later closed) from
            ``settings.session`` when omitted.
        pipeline: Middleware pipeline; defaults to
            :func:`~storefront_client.client.middleware.default_pipeline`.
        http_transport: Optional httpx transport, e.g. a mock in tests.
        clock: Monotonic time source for cache ages.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[CredentialStore] = None,
        pipeline: Optional[Pipeline] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or resolve_settings()
        self._owns_store = store is None
        self.store = store or CredentialStore(key=self.settings.session.credential_key)
        self.transport = Transport(
            self.settings.base_url,
            pipeline or default_pipeline(self.store),
            self.settings.request,
            http_transport,
        )
        self.cache = QueryCache(self.settings.query, clock=clock)
        self.user: Optional[User] = None

        self.auth = AuthApi(self.transport)
        self.products = ProductsApi(self.transport)
        self.favorites = FavoritesApi(self.transport)
        self.orders = OrdersApi(self.transport)
        self.admin = AdminApi(self.transport)
        self.health = HealthApi(self.transport)
        self._closed = False

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> StorefrontContext:
        self.transport.open()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.cache.close()
        await self.transport.aclose()
        if self._owns_store:
            self.store.close()
        debug("storefront context closed")

    # ------------------------------------------------------------------ #
    # Session
    # ------------------------------------------------------------------ #

    @property
    def is_authenticated(self) -> bool:
        """Whether a credential is stored.  Says nothing about server-side validity."""
        return self.store.get() is not None

    async def login(self, email: str, password: str) -> LoginResult:
        """Authenticate and persist the returned token.

        Raises:
            AuthenticationError: On bad credentials.
            ValidationError: If the server rejects the input.
        """
        result = await self.auth.login(email, password)
        self.store.set(result.token)
        self.user = result.user
        debug(f"signed in as {result.user.id} ({result.user.role.value})")
        return result

    async def register(self, email: str, password: str) -> RegisteredUser:
        """Create an account.  Does not sign in; call :meth:`login` afterwards."""
        return await self.auth.register(email, password)

    def logout(self) -> None:
        """Forget the credential and every cached query."""
        self.store.clear()
        self.cache.clear()
        self.user = None
