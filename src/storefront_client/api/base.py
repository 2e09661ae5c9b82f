"""Shared plumbing for the per-resource API clients."""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from storefront_client.client.response import extract_response_data, unwrap_data
from storefront_client.client.transport import Transport
from storefront_client.exceptions import ResponseFormatError

T = TypeVar("T")


class ResourceClient:
    """Base class for one API resource.

    Each public method on a subclass performs exactly one transport call and
    validates the body into a typed value.  Nothing is retried or cached
    here; that is the query cache's job.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @property
    def transport(self) -> Transport:
        return self._transport

    def _parse(self, response: httpx.Response, shape: Any, *, unwrap: bool = True) -> Any:
        """Validate the response body against *shape*.

        Raises:
            ResponseFormatError: If the 2xx body does not match *shape*.
        """
        body = extract_response_data(response)
        payload = unwrap_data(body) if unwrap else body
        try:
            return TypeAdapter(shape).validate_python(payload)
        except PydanticValidationError as exc:
            raise ResponseFormatError(
                f"Unexpected response from {response.request.method} "
                f"{response.request.url.path}",
                status=response.status_code,
                details=exc.errors(include_url=False),
            ) from exc
