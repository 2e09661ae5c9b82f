"""Interceptor pipeline: ordered request/response/error middleware.

A :class:`Pipeline` is three ordered lists of plain functions:

* **request middleware** ``(httpx.Request) -> httpx.Request`` runs before the
  request is sent.  :func:`bearer_auth` attaches the stored credential here.
* **response middleware** ``(httpx.Response) -> httpx.Response`` runs on
  every response and may raise.  :func:`raise_for_status` classifies
  non-2xx responses here.
* **error middleware** ``(StorefrontError) -> None`` observes every failure
  (HTTP or network) before it propagates.  It can perform side effects such
  as :func:`clear_credential_on_unauthenticated` but cannot swallow the
  error: :class:`~storefront_client.client.transport.Transport` always
  re-raises after the error chain ran.

Each middleware is independent and testable without a network.  Each list
runs in registration order; every function receives the output of the
previous one.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import Callable

import httpx

from storefront_client.auth.credential_store import CredentialStore
from storefront_client.client.response import error_from_response
from storefront_client.exceptions import AuthenticationError, StorefrontError
from storefront_client.output import debug

RequestMiddleware = Callable[[httpx.Request], httpx.Request]
ResponseMiddleware = Callable[[httpx.Response], httpx.Response]
ErrorMiddleware = Callable[[StorefrontError], None]

CORRELATION_ID_HEADER = "x-correlation-id"


@dataclass
class Pipeline:
    """Ordered middleware lists applied by the transport to every call."""

    request: list[RequestMiddleware] = field(default_factory=list)
    response: list[ResponseMiddleware] = field(default_factory=list)
    error: list[ErrorMiddleware] = field(default_factory=list)

    def process_request(self, request: httpx.Request) -> httpx.Request:
        for middleware in self.request:
            request = middleware(request)
        return request

    def process_response(self, response: httpx.Response) -> httpx.Response:
        for middleware in self.response:
            response = middleware(response)
        return response

    def process_error(self, exc: StorefrontError) -> None:
        for middleware in self.error:
            middleware(exc)


# ------------------------------------------------------------------ #
# Built-in middleware
# ------------------------------------------------------------------ #


def bearer_auth(store: CredentialStore) -> RequestMiddleware:
    """Attach ``Authorization: Bearer <token>`` when the store holds a token.

    Requests go out unchanged when no credential is stored.  The store is
    read on every call, so a token cleared after a 401 is never sent again.
    """

    def _attach(request: httpx.Request) -> httpx.Request:
        token = store.get()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        return request

    return _attach


def correlation_id(factory: Callable[[], str] | None = None) -> RequestMiddleware:
    """Give each request an ``x-correlation-id`` unless the caller set one."""
    make_id = factory or (lambda: secrets.token_hex(16))

    def _tag(request: httpx.Request) -> httpx.Request:
        if CORRELATION_ID_HEADER not in request.headers:
            request.headers[CORRELATION_ID_HEADER] = make_id()
        return request

    return _tag


def raise_for_status(response: httpx.Response) -> httpx.Response:
    """Raise the classified :class:`StorefrontError` for any non-2xx response."""
    if 200 <= response.status_code < 300:
        return response
    raise error_from_response(response)


def clear_credential_on_unauthenticated(store: CredentialStore) -> ErrorMiddleware:
    """Clear the stored credential when the API answers 401.

    No retry or redirect happens here; sending the user back to a login step
    is the collaborator's job.
    """

    def _clear(exc: StorefrontError) -> None:
        if isinstance(exc, AuthenticationError):
            debug("401 received, clearing stored credential")
            store.clear()

    return _clear


def default_pipeline(store: CredentialStore) -> Pipeline:
    """The pipeline used by :class:`~storefront_client.context.StorefrontContext`."""
    return Pipeline(
        request=[correlation_id(), bearer_auth(store)],
        response=[raise_for_status],
        error=[clear_credential_on_unauthenticated(store)],
    )
