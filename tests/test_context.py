"""Tests for StorefrontContext: session lifecycle over the shared transport."""

from __future__ import annotations

import httpx
import pytest

from storefront_client.auth.credential_store import CredentialStore
from storefront_client.context import StorefrontContext
from storefront_client.exceptions import AuthenticationError, TransportError
from storefront_client.models import Settings
from storefront_client.query.keys import QueryKey

LOGIN_OK = {"data": {"token": "tok_123", "user": {"id": "u1", "role": "user"}}}


@pytest.fixture
def make_context(settings: Settings, store: CredentialStore, fake_api, clock):
    def _make() -> StorefrontContext:
        return StorefrontContext(
            settings, store=store, http_transport=fake_api.transport(), clock=clock
        )

    return _make


class TestSession:
    @pytest.mark.asyncio
    async def test_login_persists_token_and_user(self, make_context, store, fake_api) -> None:
        fake_api.add("POST", "/auth/login", json=LOGIN_OK)
        async with make_context() as ctx:
            assert not ctx.is_authenticated
            result = await ctx.login("ada@example.com", "pw")

            assert result.token == "tok_123"
            assert ctx.is_authenticated
            assert ctx.user is not None and ctx.user.id == "u1"
        assert store.get() == "tok_123"

    @pytest.mark.asyncio
    async def test_login_failure_leaves_no_token(self, make_context, store, fake_api) -> None:
        fake_api.add(
            "POST", "/auth/login", status=401, json={"error": {"message": "Invalid credentials"}}
        )
        async with make_context() as ctx:
            with pytest.raises(AuthenticationError):
                await ctx.login("ada@example.com", "nope")
            assert ctx.user is None
        assert store.get() is None

    @pytest.mark.asyncio
    async def test_register_does_not_sign_in(self, make_context, store, fake_api) -> None:
        fake_api.add(
            "POST", "/auth/register", status=201, json={"data": {"id": "u9", "email": "n@e.w"}}
        )
        async with make_context() as ctx:
            user = await ctx.register("n@e.w", "pw")
            assert user.id == "u9"
            assert not ctx.is_authenticated

    @pytest.mark.asyncio
    async def test_expired_token_is_cleared_then_calls_go_unauthenticated(
        self, make_context, store, fake_api
    ) -> None:
        fake_api.add("POST", "/auth/login", json=LOGIN_OK)
        fake_api.add(
            "GET", "/favorites", status=401, json={"error": {"message": "Token expired"}}
        )
        async with make_context() as ctx:
            await ctx.login("ada@example.com", "pw")

            with pytest.raises(AuthenticationError, match="Token expired"):
                await ctx.favorites.list()
            assert store.get() is None

            with pytest.raises(AuthenticationError):
                await ctx.favorites.list()

        first, second = fake_api.calls("GET", "/favorites")
        assert first.headers["authorization"] == "Bearer tok_123"
        assert "authorization" not in second.headers

    @pytest.mark.asyncio
    async def test_logout_clears_credential_and_cache(self, make_context, store, fake_api) -> None:
        fake_api.add("POST", "/auth/login", json=LOGIN_OK)
        async with make_context() as ctx:
            await ctx.login("ada@example.com", "pw")
            ctx.cache.set_data(QueryKey.of("favorites", "list"), [])

            ctx.logout()

            assert store.get() is None
            assert ctx.user is None
            assert len(ctx.cache) == 0


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, make_context) -> None:
        ctx = make_context()
        async with ctx:
            assert ctx.transport.is_open
        assert not ctx.transport.is_open
        await ctx.close()

    @pytest.mark.asyncio
    async def test_owned_store_is_created_from_settings(
        self, settings: Settings, isolated_config, fake_api
    ) -> None:
        async with StorefrontContext(settings, http_transport=fake_api.transport()) as ctx:
            assert ctx.store.key == "token"
            assert ctx.store.directory.is_dir()

    @pytest.mark.asyncio
    async def test_unreachable_server(self, settings: Settings, store: CredentialStore) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with StorefrontContext(
            settings, store=store, http_transport=httpx.MockTransport(refuse)
        ) as ctx:
            with pytest.raises(TransportError):
                await ctx.products.list()
