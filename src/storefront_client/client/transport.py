"""Asynchronous HTTP transport shared by every resource client.

:class:`Transport` wraps one :class:`httpx.AsyncClient` configured with the
API base endpoint and routes every call through a
:class:`~storefront_client.client.middleware.Pipeline`:

1. build the :class:`httpx.Request`,
2. run request middleware (correlation id, bearer credential),
3. send it; network failures become
   :class:`~storefront_client.exceptions.TransportError`,
4. run response middleware (status classification),
5. on any :class:`~storefront_client.exceptions.StorefrontError`, run the
   error middleware (credential clearing on 401) and re-raise.

The transport performs exactly one network call per :meth:`Transport.request`.
Retrying is the query cache's business, never this layer's.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from storefront_client.client.middleware import Pipeline
from storefront_client.exceptions import StorefrontError, TransportError
from storefront_client.models import RequestConfig
from storefront_client.output import debug


class Transport:
    """Single shared HTTP client for the storefront API.

    Must be opened before use, either as an async context manager or via
    :meth:`open` / :meth:`aclose`.

    Args:
        base_url: API base endpoint, fixed for the lifetime of the transport.
        pipeline: Middleware applied to every call.
        config: Timeout and TLS settings.
        http_transport: Optional httpx transport, e.g.
            :class:`httpx.MockTransport` in tests.

    Example::

        async with Transport("http://localhost:4000/api/v1", pipeline) as transport:
            response = await transport.get("/favorites")
    """

    def __init__(
        self,
        base_url: str,
        pipeline: Optional[Pipeline] = None,
        config: Optional[RequestConfig] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._pipeline = pipeline or Pipeline()
        self._config = config or RequestConfig()
        self._http_transport = http_transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        """The API base endpoint (read-only)."""
        return self._base_url

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    @property
    def is_open(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def open(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            transport=self._http_transport,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Transport:
        self.open()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """Send one request through the middleware pipeline.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE).
            path: URL path appended to the base endpoint.
            params: Query parameters; ``None`` values are dropped.
            json_body: JSON-serialisable body.
            headers: Extra request headers.

        Returns:
            The 2xx :class:`httpx.Response`.

        Raises:
            TransportError: On network / timeout errors.
            AuthenticationError: On 401, after the credential was cleared.
            ValidationError: On other 4xx statuses.
            ServerError: On 5xx statuses.
        """
        if self._client is None:
            raise RuntimeError("Transport is not open -- use it as an async context manager")

        query = {k: v for k, v in (params or {}).items() if v is not None}
        request = self._client.build_request(
            method,
            path,
            params=query or None,
            json=json_body,
            headers=headers,
        )
        request = self._pipeline.process_request(request)
        debug(f"{method} {request.url}")

        try:
            try:
                response = await self._client.send(request)
            except httpx.TransportError as exc:
                raise TransportError(f"{method} {path} failed: {exc}") from exc
            return self._pipeline.process_response(response)
        except StorefrontError as exc:
            self._pipeline.process_error(exc)
            raise

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)
