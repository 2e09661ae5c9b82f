"""Durable holder of the bearer credential.

The token lives under a single named key (``token`` by default) in a
:class:`diskcache.Cache` directory below the data dir, typically
``~/.local/share/storefront-client/session``.  It survives process restarts
the way the browser client's local storage survives page reloads; absence
of the key means the client is unauthenticated.

The store is the only component that persists the credential.  The request
pipeline reads it before every outbound call and clears it when the API
answers 401 (see :mod:`storefront_client.client.middleware`).

See Also:
    :class:`~storefront_client.context.StorefrontContext` -- creates the
    store at startup and closes it at shutdown.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import diskcache

from storefront_client.config import get_data_dir
from storefront_client.output import debug


def _session_dir() -> Path:
    """Return the session directory, creating it if needed."""
    path = get_data_dir() / "session"
    path.mkdir(parents=True, exist_ok=True)
    return path


class CredentialStore:
    """Read/write the bearer token.

    Reads return the stored string as-is (an immutable snapshot), so any
    number of concurrent readers is safe.  There is no retry logic here: the
    store is a pure state holder.

    Args:
        directory: Backing directory.  Defaults to the ``session`` directory
            under :func:`~storefront_client.config.get_data_dir`.
        key: Name of the durable key holding the token.

    Example::

        store = CredentialStore()
        store.set("eyJhbGciOi...")
        assert store.get() == "eyJhbGciOi..."
        store.clear()
        assert store.get() is None
    """

    def __init__(self, directory: str | Path | None = None, key: str = "token") -> None:
        self._directory = Path(directory) if directory is not None else _session_dir()
        self._key = key
        self._cache = diskcache.Cache(str(self._directory))

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def key(self) -> str:
        return self._key

    def get(self) -> Optional[str]:
        """Return the stored token, or ``None`` when unauthenticated."""
        value = self._cache.get(self._key)
        if isinstance(value, str) and value:
            return value
        return None

    def set(self, token: str) -> None:
        """Persist *token*, replacing any previous credential.

        Raises:
            ValueError: If *token* is empty.
        """
        if not token:
            raise ValueError("Refusing to store an empty credential")
        self._cache.set(self._key, token)

    def clear(self) -> None:
        """Remove the persisted token.  A no-op when none is stored."""
        if self._cache.delete(self._key):
            debug("credential cleared")

    def close(self) -> None:
        """Release the underlying :class:`diskcache.Cache` handles."""
        self._cache.close()
