"""Config commands -- view and modify the stored settings.

Settings live in ``config.json`` under the storefront-client config
directory.  The API endpoint can also be overridden per invocation with
``--base-url`` or the ``STOREFRONT_API_URL`` environment variable.
"""

from __future__ import annotations

import typer

from storefront_client.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective configuration.

    Example::

        storefront config show
        storefront --json config show
    """
    from storefront_client.config import get_config_dir, resolve_settings

    obj = ctx.obj or {}
    settings = resolve_settings(obj.get("base_url"))
    info(f"Config directory: {get_config_dir()}")
    format_response(settings.model_dump(mode="json"))


@config_app.command("set-url")
def config_set_url(
    url: str = typer.Argument(help="API base endpoint, e.g. https://shop.example.com/api/v1."),
) -> None:
    """Store the API base endpoint.

    Raises:
        typer.Exit: With code 2 if the URL is not an absolute http(s) URL.
    """
    from storefront_client.config import load_settings, save_settings, validate_base_url
    from storefront_client.exceptions import ConfigError

    try:
        base_url = validate_base_url(url)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None

    settings = load_settings()
    settings.base_url = base_url
    save_settings(settings)
    success(f"API endpoint set to {base_url}")


@config_app.command("reset")
def config_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Restore the default settings."""
    from storefront_client.config import save_settings
    from storefront_client.models import Settings

    if not yes:
        typer.confirm("Reset all settings to defaults?", abort=True)
    save_settings(Settings())
    success("Settings reset.")
