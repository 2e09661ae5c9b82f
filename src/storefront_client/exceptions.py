"""Exception hierarchy for storefront-client.

Every failure that leaves the request pipeline is a :class:`StorefrontError`
carrying the HTTP ``status`` (``None`` for network failures), the server's
``message``, optional structured ``details`` and the server ``request_id``.
The core never presents errors itself: it classifies and forwards them so
that collaborators (the CLI, a UI) decide how to show them.

Subclass hierarchy::

    StorefrontError          (exit 1)
    +-- TransportError       (exit 6)  network unreachable, timeout
    +-- AuthenticationError  (exit 3)  HTTP 401
    +-- ValidationError      (exit 2)  HTTP 4xx other than 401
    |   +-- NotFoundError    (exit 4)  HTTP 404
    |   +-- RateLimitError   (exit 2)  HTTP 429
    +-- ServerError          (exit 5)  HTTP 5xx
    +-- ResponseFormatError  (exit 7)  2xx body with an unexpected shape
    +-- ConfigError          (exit 1)
"""

from __future__ import annotations

from typing import Any, Optional

from storefront_client.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_BAD_RESPONSE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class StorefrontError(Exception):
    """Base exception for all storefront-client errors.

    Args:
        message: Human-readable error description (the server message when
            one was provided).
        status: HTTP status code, or ``None`` when no response was received.
        details: Structured error payload from the server (validation
            issues, the raw body, ...).
        request_id: Server correlation id, when the API reported one.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        details: Any = None,
        request_id: Optional[str] = None,
        exit_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details
        self.request_id = request_id
        if exit_code is not None:
            self.exit_code = exit_code


class TransportError(StorefrontError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class AuthenticationError(StorefrontError):
    """Raised when the API answers HTTP 401; the stored credential has already been cleared."""

    exit_code = EXIT_AUTH_FAILURE


class ValidationError(StorefrontError):
    """Raised for HTTP 4xx responses other than 401 (bad input, forbidden, conflict)."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(ValidationError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    exit_code = EXIT_NOT_FOUND


class RateLimitError(ValidationError):
    """Raised when the API returns HTTP 429 (too many requests)."""


class ServerError(StorefrontError):
    """Raised when the API returns an HTTP 5xx server error."""

    exit_code = EXIT_SERVER_ERROR


class ResponseFormatError(StorefrontError):
    """Raised when a successful response body fails typed validation."""

    exit_code = EXIT_BAD_RESPONSE


class ConfigError(StorefrontError):
    """Raised for configuration problems (invalid config file, bad base URL)."""

    exit_code = EXIT_GENERIC_FAILURE


def is_retryable(exc: BaseException) -> bool:
    """Return ``True`` for failures worth a bounded retry.

    Only network failures and 5xx responses qualify.  Authentication and
    validation errors would fail the same way again.
    """
    return isinstance(exc, (TransportError, ServerError))


def field_errors(exc: BaseException) -> dict[str, str]:
    """Map server validation issues to ``{field: message}``.

    The API reports input problems as ``[{"path": ["email"], "message": ...}]``
    either under ``errors`` or directly as the error details.  Issues without
    a path are collected under ``"general"``.

    Args:
        exc: Any exception; non-:class:`ValidationError` values yield ``{}``.

    Returns:
        A dict keyed by the first path segment of each issue.
    """
    if not isinstance(exc, ValidationError):
        return {}
    issues = exc.details
    if isinstance(issues, dict):
        issues = issues.get("errors") or issues.get("issues")
    if not isinstance(issues, list):
        return {}

    errors: dict[str, str] = {}
    for issue in issues:
        if not isinstance(issue, dict) or not isinstance(issue.get("message"), str):
            continue
        path = issue.get("path") or []
        if isinstance(path, str):
            path = path.split(".")
        field = str(path[0]) if isinstance(path, list) and path else "general"
        errors[field] = issue["message"]
    return errors
