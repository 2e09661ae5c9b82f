"""Response decoding and error classification.

Bridges raw :class:`httpx.Response` objects and the typed world above the
transport:

* :func:`extract_response_data` decodes a body (JSON first, text fallback).
* :func:`unwrap_data` strips the API's ``{"data": ...}`` envelope.
* :func:`error_from_response` turns a non-2xx response into the matching
  :class:`~storefront_client.exceptions.StorefrontError` subclass, pulling
  the message, details and request id out of the body the same way for
  every endpoint.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from storefront_client.exceptions import (
    AuthenticationError,
    NotFoundError,
    RateLimitError,
    ServerError,
    StorefrontError,
    ValidationError,
)

DEFAULT_ERROR_MESSAGE = "Request failed"

_REQUEST_ID_HEADERS = ("x-request-id", "x-correlation-id")


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Returns:
        A JSON-decoded object, a ``str`` of raw text when the body is not
        JSON, or ``None`` for an empty body.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def unwrap_data(payload: Any) -> Any:
    """Return ``payload["data"]`` when the body uses the API envelope, else *payload*."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _error_section(body: Any) -> dict[str, Any]:
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"]
    return {}


def _error_message(body: Any) -> str:
    section = _error_section(body)
    if isinstance(section.get("message"), str) and section["message"]:
        return section["message"]
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return DEFAULT_ERROR_MESSAGE


def _error_details(body: Any) -> Any:
    section = _error_section(body)
    if section.get("details") is not None:
        return section["details"]
    if isinstance(body, dict) and body.get("errors") is not None:
        return body["errors"]
    return body


def _request_id(body: Any, response: httpx.Response) -> Optional[str]:
    section = _error_section(body)
    if isinstance(section.get("requestId"), str):
        return section["requestId"]
    for header in _REQUEST_ID_HEADERS:
        value = response.headers.get(header)
        if value:
            return value
    return None


def error_class_for_status(status: int) -> type[StorefrontError]:
    """Map an HTTP status to the exception class that reports it."""
    if status == 401:
        return AuthenticationError
    if status == 404:
        return NotFoundError
    if status == 429:
        return RateLimitError
    if 400 <= status < 500:
        return ValidationError
    if status >= 500:
        return ServerError
    return StorefrontError


def error_from_response(response: httpx.Response) -> StorefrontError:
    """Build the structured error describing a non-2xx *response*.

    The message comes from ``error.message``, then ``message``, then the
    generic ``"Request failed"``.  ``details`` holds ``error.details``, the
    ``errors`` list of a validation failure, or the whole body otherwise.
    """
    body = extract_response_data(response)
    cls = error_class_for_status(response.status_code)
    return cls(
        _error_message(body),
        status=response.status_code,
        details=_error_details(body),
        request_id=_request_id(body, response),
    )
