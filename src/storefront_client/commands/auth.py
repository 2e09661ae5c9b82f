"""Session commands -- ``login``, ``register``, ``logout`` and ``status``.

Typical workflow::

    storefront login --email ada@example.com   # prompts for the password
    storefront favorites list
    storefront logout
"""

from __future__ import annotations

import typer

from storefront_client.output import format_response, info, success, suggest


def login_command(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email."),
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, help="Account password."
    ),
) -> None:
    """Sign in and store the session token.

    Example::

        storefront login --email ada@example.com
    """
    from storefront_client.commands.runner import run_async

    result = run_async(ctx, lambda sf: sf.login(email, password))
    success(f"Signed in as {result.user.email or email} ({result.user.role.value}).")


def register_command(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email."),
    password: str = typer.Option(
        ...,
        "--password",
        prompt=True,
        hide_input=True,
        confirmation_prompt=True,
        help="Account password.",
    ),
) -> None:
    """Create an account.  Does not sign in."""
    from storefront_client.commands.runner import run_async

    user = run_async(ctx, lambda sf: sf.register(email, password))
    success(f"Registered {user.email} (id {user.id}).")
    suggest(f"Sign in: storefront login --email {user.email}")


def logout_command() -> None:
    """Forget the stored session token."""
    from storefront_client.auth.credential_store import CredentialStore
    from storefront_client.config import load_settings

    store = CredentialStore(key=load_settings().session.credential_key)
    try:
        signed_in = store.get() is not None
        store.clear()
    finally:
        store.close()
    if signed_in:
        success("Signed out.")
    else:
        info("Not signed in.")


def status_command(ctx: typer.Context) -> None:
    """Show the API endpoint and whether a session token is stored."""
    from storefront_client.auth.credential_store import CredentialStore
    from storefront_client.config import resolve_settings

    obj = ctx.obj or {}
    settings = resolve_settings(obj.get("base_url"))
    store = CredentialStore(key=settings.session.credential_key)
    try:
        authenticated = store.get() is not None
        session_dir = str(store.directory)
    finally:
        store.close()

    format_response(
        {
            "base_url": settings.base_url,
            "authenticated": authenticated,
            "session_dir": session_dir,
        }
    )
    if not authenticated:
        suggest("Sign in: storefront login")
