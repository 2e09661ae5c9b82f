"""Numeric process exit codes for the ``storefront`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~storefront_client.exceptions.StorefrontError`
subclass.  Shell wrappers can inspect the exit code to tell an expired
session apart from an unreachable API without parsing stderr.

Example::

    $ storefront favorites list
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the stored token was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or the API rejected the input (HTTP 4xx)."""

EXIT_AUTH_FAILURE = 3
"""The API rejected the credential (HTTP 401)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an HTTP 5xx server error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_BAD_RESPONSE = 7
"""The API answered with a body that does not match the expected shape."""
