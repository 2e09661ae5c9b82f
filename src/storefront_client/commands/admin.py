"""Admin commands -- user management, the audit log, server metrics and the health probe.

All ``admin`` commands need an admin session; ``health`` needs none.

Example::

    storefront admin users
    storefront admin promote u_42
    storefront admin audit-logs --action admin.user.promote --limit 20 --pages 3
    storefront admin metrics --name http_requests_total
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import typer

from storefront_client.commands.runner import print_models, run_async
from storefront_client.exit_codes import EXIT_SERVER_ERROR
from storefront_client.output import error, format_response, info, success, suggest


admin_app = typer.Typer(no_args_is_help=True)


def _format_timestamp(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@admin_app.command("users")
def admin_users(ctx: typer.Context) -> None:
    """List every account."""
    from storefront_client.queries import StorefrontQueries

    users = run_async(ctx, lambda sf: StorefrontQueries(sf).admin_users())
    print_models(
        users,
        ["ID", "Email", "Role"],
        lambda u: [u.id, u.email, u.role.value],
        title="Users",
    )


@admin_app.command("promote")
def admin_promote(
    ctx: typer.Context,
    user_id: str = typer.Argument(help="User id."),
) -> None:
    """Grant the admin role to a user."""
    from storefront_client.queries import StorefrontQueries

    user = run_async(ctx, lambda sf: StorefrontQueries(sf).promote_user(user_id))
    success(f"{user.email} is now {user.role.value}.")


@admin_app.command("demote")
def admin_demote(
    ctx: typer.Context,
    user_id: str = typer.Argument(help="User id."),
) -> None:
    """Revoke the admin role from a user."""
    from storefront_client.queries import StorefrontQueries

    user = run_async(ctx, lambda sf: StorefrontQueries(sf).demote_user(user_id))
    success(f"{user.email} is now {user.role.value}.")


@admin_app.command("delete-user")
def admin_delete_user(
    ctx: typer.Context,
    user_id: str = typer.Argument(help="User id."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete an account."""
    from storefront_client.queries import StorefrontQueries

    if not yes:
        typer.confirm(f"Delete user {user_id}?", abort=True)
    run_async(ctx, lambda sf: StorefrontQueries(sf).delete_user(user_id))
    success(f"Deleted user {user_id}.")


@admin_app.command("audit-logs")
def admin_audit_logs(
    ctx: typer.Context,
    action: Optional[str] = typer.Option(None, "--action", "-a", help="Filter by action."),
    limit: int = typer.Option(20, "--limit", "-l", min=1, help="Entries per page."),
    pages: int = typer.Option(1, "--pages", min=1, help="Maximum pages to fetch."),
) -> None:
    """Show the audit log, newest first."""
    from storefront_client.queries import StorefrontQueries

    async def _collect(sf):
        paginator = StorefrontQueries(sf).audit_logs(action=action, limit=limit)
        try:
            for _ in range(pages):
                if paginator.exhausted:
                    break
                await paginator.fetch_next()
            return paginator.items, paginator.exhausted
        finally:
            paginator.close()

    entries, exhausted = run_async(ctx, _collect)
    if not entries:
        info("No audit log entries.")
        return
    print_models(
        entries,
        ["Time", "Action", "Actor", "Summary"],
        lambda e: [
            _format_timestamp(e.created_at),
            e.action,
            e.actor_email or e.actor_id or "",
            e.summary,
        ],
        title="Audit log",
    )
    if not exhausted:
        suggest(f"More entries available: --pages {pages + 1}")


def health_command(ctx: typer.Context) -> None:
    """Probe API liveness and database reachability.

    Exits with the server-error code when the database is unreachable.
    """
    from storefront_client.api.health import health_from_error
    from storefront_client.exceptions import ServerError

    async def _probe(sf):
        try:
            return await sf.health.probe()
        except ServerError as exc:
            status = health_from_error(exc)
            if status is None:
                raise
            return status

    status = run_async(ctx, _probe)
    format_response(status.model_dump(mode="json"))
    if not status.database.ok:
        reason = status.database.error or "unreachable"
        error(f"Database ({status.database.store}): {reason}")
        raise typer.Exit(code=EXIT_SERVER_ERROR)


@admin_app.command("metrics")
def admin_metrics(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Only this metric."),
) -> None:
    """Show the server metrics, one row per metric name summed over labels."""
    from storefront_client.models import MetricSample
    from storefront_client.queries import StorefrontQueries

    metrics = run_async(ctx, lambda sf: StorefrontQueries(sf).system_metrics())
    names = [n for n in metrics.names() if name is None or n == name]
    if not names:
        info("No metrics reported.")
        return
    print_models(
        [MetricSample(name=n, value=metrics.total(n)) for n in names],
        ["Metric", "Value"],
        lambda s: [s.name, f"{s.value:g}"],
        title="Metrics",
    )
