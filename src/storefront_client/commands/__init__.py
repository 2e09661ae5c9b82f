"""Built-in CLI sub-commands for storefront-client.

* :mod:`~storefront_client.commands.auth` -- ``login``, ``logout``, ``status``.
* :mod:`~storefront_client.commands.catalog` -- ``products`` and ``favorites``.
* :mod:`~storefront_client.commands.admin` -- user management, audit log, health.
* :mod:`~storefront_client.commands.config` -- view and modify settings.

Single commands are plain callbacks registered on the root app; groups
are :class:`typer.Typer` sub-applications.  Every command that talks to
the API goes through :func:`~storefront_client.commands.runner.run_async`.
"""
