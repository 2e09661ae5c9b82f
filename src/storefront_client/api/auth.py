"""``/auth`` endpoints."""

from __future__ import annotations

from storefront_client.api.base import ResourceClient
from storefront_client.models import LoginResult, RegisteredUser


class AuthApi(ResourceClient):
    """Login and registration.  Neither call touches the credential store."""

    async def login(self, email: str, password: str) -> LoginResult:
        response = await self._transport.post(
            "/auth/login", json_body={"email": email, "password": password}
        )
        return self._parse(response, LoginResult)

    async def register(self, email: str, password: str) -> RegisteredUser:
        response = await self._transport.post(
            "/auth/register", json_body={"email": email, "password": password}
        )
        return self._parse(response, RegisteredUser)
