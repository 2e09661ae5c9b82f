"""storefront-client -- authenticated, cached access to the storefront API.

The package is a data-access layer: a request pipeline that attaches and
invalidates bearer credentials, and a query cache that de-duplicates,
retries, expires and cursor-paginates server data for independent
consumers.  A small ``storefront`` CLI is built on top of it.

Typical use::

    async with StorefrontContext() as ctx:
        await ctx.login("ada@example.com", "s3cret")
        queries = StorefrontQueries(ctx)
        favorites = await queries.favorites()

Modules:
    app: Typer application and CLI entry point.
    context: The explicitly constructed context owning all shared state.
    queries: Cached query and mutation definitions.
    models: Pydantic models for settings and API payloads.
    config: XDG-aware settings resolution.
    exceptions: Error taxonomy with exit-code mapping.
    output: stdout/stderr formatting and the debug trace.
"""

__version__ = "0.1.0"
