"""Write operations reconciled into the query cache.

A :class:`Mutation` wraps one resource-client write.  The write runs with the
write retry policy (no retries by default).  Only when it succeeds are the
listed keys invalidated and the ``on_success`` hook given a chance to patch
cached data via :meth:`QueryCache.mutate`; a failed write leaves the cache
untouched.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar

from storefront_client.query.cache import QueryCache
from storefront_client.query.keys import KeyLike
from storefront_client.query.retry import call_with_retry

T = TypeVar("T")


class Mutation(Generic[T]):
    """Reusable write with cache reconciliation.

    Args:
        cache: Cache to reconcile.
        write: Coroutine function performing the write.
        invalidates: Key prefixes marked stale after a successful write.
        on_success: Called as ``on_success(result, *args, **kwargs)`` with the
            write's result and the arguments it was run with.
        retries: Override for ``QueryConfig.write_retries``.

    Example::

        promote = Mutation(
            cache,
            api.admin.promote_user,
            on_success=lambda user, _id: cache.mutate(USERS, replace_user(user)),
        )
        await promote.run("u1")
    """

    def __init__(
        self,
        cache: QueryCache,
        write: Callable[..., Awaitable[T]],
        invalidates: Sequence[KeyLike] = (),
        on_success: Optional[Callable[..., None]] = None,
        retries: Optional[int] = None,
    ) -> None:
        self._cache = cache
        self._write = write
        self._invalidates = tuple(invalidates)
        self._on_success = on_success
        self._retries = cache.config.write_retries if retries is None else retries
        self.is_pending = False
        self.error: Optional[Exception] = None

    async def run(self, *args: Any, **kwargs: Any) -> T:
        self.is_pending = True
        self.error = None
        try:
            result = await call_with_retry(
                lambda: self._write(*args, **kwargs),
                retries=self._retries,
                retry_delay=self._cache.config.retry_delay,
                label=getattr(self._write, "__name__", "mutation"),
            )
        except Exception as exc:
            self.error = exc
            raise
        finally:
            self.is_pending = False

        if self._on_success is not None:
            self._on_success(result, *args, **kwargs)
        for key in self._invalidates:
            self._cache.invalidate(key)
        return result


__all__ = ["Mutation"]
