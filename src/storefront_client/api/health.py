"""``/health`` probe."""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from storefront_client.api.base import ResourceClient
from storefront_client.exceptions import ServerError
from storefront_client.models import HealthStatus


class HealthApi(ResourceClient):
    async def probe(self) -> HealthStatus:
        """Check API liveness and database reachability.

        The endpoint is unauthenticated and unwrapped (no ``data``
        envelope).  When the database is down the server answers 503 with
        the same body; that surfaces as :class:`ServerError` and
        :func:`health_from_error` recovers the status from it.
        """
        response = await self._transport.get("/health")
        return self._parse(response, HealthStatus, unwrap=False)


def health_from_error(exc: ServerError) -> Optional[HealthStatus]:
    """Return the :class:`HealthStatus` carried by a 503 probe failure, if any."""
    if not isinstance(exc.details, dict):
        return None
    try:
        return HealthStatus.model_validate(exc.details)
    except PydanticValidationError:
        return None
