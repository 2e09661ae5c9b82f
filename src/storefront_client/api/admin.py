"""``/admin`` endpoints: user management and the audit log, plus server metrics."""

from __future__ import annotations

from typing import Any, Optional

from prometheus_client.parser import text_string_to_metric_families

from storefront_client.api.base import ResourceClient
from storefront_client.exceptions import ResponseFormatError
from storefront_client.models import AdminUser, AuditLogEntry, MetricSample, SystemMetrics
from storefront_client.query.pagination import Cursor, Page


class AdminApi(ResourceClient):
    async def list_users(self) -> list[AdminUser]:
        response = await self._transport.get("/admin/users")
        return self._parse(response, list[AdminUser])

    async def delete_user(self, user_id: str) -> None:
        await self._transport.delete(f"/admin/users/{user_id}")

    async def promote_user(self, user_id: str) -> AdminUser:
        response = await self._transport.post(f"/admin/users/{user_id}/promote")
        return self._parse(response, AdminUser)

    async def demote_user(self, user_id: str) -> AdminUser:
        response = await self._transport.post(f"/admin/users/{user_id}/demote")
        return self._parse(response, AdminUser)

    async def list_audit_logs(
        self,
        action: Optional[str] = None,
        limit: Optional[int] = None,
        after: Optional[Cursor] = None,
    ) -> Page[AuditLogEntry]:
        """Read one page of the audit log, newest first.

        The server answers ``{"data": [...], "meta": {"nextCursor": ...}}``;
        a missing ``nextCursor`` means this is the last page.
        """
        response = await self._transport.get(
            "/admin/audit-logs",
            params={"action": action, "limit": limit, "after": after},
        )
        body = self._parse(response, dict[str, Any], unwrap=False)
        entries = self._parse(response, list[AuditLogEntry])
        meta = body.get("meta") or {}
        return Page(items=tuple(entries), next_cursor=meta.get("nextCursor"))

    async def system_metrics(self) -> SystemMetrics:
        """Read ``/metrics``, the server's Prometheus text exposition.

        Raises:
            ResponseFormatError: If the body is not valid exposition text.
        """
        response = await self._transport.get("/metrics", headers={"Accept": "text/plain"})
        text = response.text
        try:
            samples = [
                MetricSample(name=s.name, labels=dict(s.labels), value=s.value)
                for family in text_string_to_metric_families(text)
                for s in family.samples
            ]
        except ValueError as exc:
            raise ResponseFormatError(
                f"Unreadable metrics from GET {response.request.url.path}",
                status=response.status_code,
                details=str(exc),
            ) from exc
        return SystemMetrics(samples=samples)
