"""Process-wide query cache: keyed reads, de-duplication, staleness, retry, polling.

:class:`QueryCache` is the engine between UI consumers and the resource
clients.  Every logical query is addressed by a
:class:`~storefront_client.query.keys.QueryKey` and served by a *fetcher*, a
zero-argument coroutine factory that performs one resource-client call.

Read algorithm (:meth:`QueryCache.read`):

1. **Miss** -- no entry: create one in ``fetching`` state and await the
   fetcher.  Concurrent reads of the same key join the same in-flight task,
   so N concurrent readers cause exactly one network call.
2. **Fresh hit** -- age below ``stale_time``: return cached data, no I/O.
3. **Stale hit** -- data exists but is older than ``stale_time`` (or was
   invalidated): return the data immediately and start at most one
   background refetch.
4. **Failure** -- retryable errors are retried ``retries`` times with
   exponential backoff; the entry sits in ``error`` between attempts and
   after the last one.  Previously fetched data stays visible.

Entries are immutable :class:`CacheEntry` snapshots replaced wholesale, so a
reader never sees a half-applied update.  Only this module writes them;
callers go through :meth:`~QueryCache.read`, :meth:`~QueryCache.invalidate`,
:meth:`~QueryCache.mutate` and :meth:`~QueryCache.remove`.

Superseded fetches: each entry carries a ``generation`` drawn from a
cache-wide monotonic counter.  A fetch captures the generation it started
from and its result is written only if the entry still exists with that
generation.  :meth:`~QueryCache.invalidate`, :meth:`~QueryCache.mutate` and
:meth:`~QueryCache.remove` move the generation on, so a late response can
neither overwrite newer data nor revive an evicted key.  The late response
still resolves for whoever awaited it.

Observers (:meth:`QueryCache.subscribe`) are reference counted.  While the
count is positive a ``refetch_interval`` poller runs; at zero the poller is
cancelled and the entry is scheduled for eviction after ``retention``
seconds unless someone subscribes or reads it again.
"""

from __future__ import annotations

import asyncio
import enum
import itertools
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from storefront_client.models import QueryConfig
from storefront_client.output import debug
from storefront_client.query.keys import KeyLike, QueryKey, as_key
from storefront_client.query.retry import call_with_retry

T = TypeVar("T")
Fetcher = Callable[[], Awaitable[Any]]


class QueryStatus(str, enum.Enum):
    """Lifecycle state of a cache entry."""

    FRESH = "fresh"
    STALE = "stale"
    FETCHING = "fetching"
    ERROR = "error"


@dataclass(frozen=True)
class QueryOptions:
    """Per-query policy; ``None`` fields fall back to the cache's :class:`QueryConfig`.

    Attributes:
        stale_time: Seconds before data is considered stale.
        retries: Extra attempts for retryable failures.
        retry_delay: Base backoff delay in seconds.
        refetch_interval: Polling period while the key is observed.
        retention: Seconds an unobserved entry survives before eviction.
    """

    stale_time: Optional[float] = None
    retries: Optional[int] = None
    retry_delay: Optional[float] = None
    refetch_interval: Optional[float] = None
    retention: Optional[float] = None

    def resolve(self, config: QueryConfig) -> QueryOptions:
        return QueryOptions(
            stale_time=config.stale_time if self.stale_time is None else self.stale_time,
            retries=config.read_retries if self.retries is None else self.retries,
            retry_delay=config.retry_delay if self.retry_delay is None else self.retry_delay,
            refetch_interval=self.refetch_interval,
            retention=config.retention if self.retention is None else self.retention,
        )


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Immutable snapshot of one cached query.

    ``has_data`` distinguishes "no data yet" from legitimately falsy data
    such as ``False`` or an empty list.
    """

    key: QueryKey
    data: Optional[T] = None
    has_data: bool = False
    status: QueryStatus = QueryStatus.FETCHING
    fetched_at: Optional[float] = None
    error: Optional[BaseException] = None
    failure_count: int = 0
    invalidated: bool = False
    generation: int = 0

    def age(self, now: float) -> Optional[float]:
        if self.fetched_at is None:
            return None
        return now - self.fetched_at


@dataclass(eq=False)
class _Slot:
    """Mutable bookkeeping for one key.  Never handed out."""

    entry: CacheEntry
    options: QueryOptions
    fetcher: Optional[Fetcher] = None
    inflight: Optional[asyncio.Task] = None
    observers: int = 0
    poller: Optional[asyncio.Task] = None
    gc_handle: Optional[asyncio.TimerHandle] = None


class Subscription(Generic[T]):
    """An observer's handle on one key; closing it releases the reference.

    Usable as a context manager::

        with cache.subscribe(key, fetcher, QueryOptions(refetch_interval=30)) as sub:
            data = await sub.read()
    """

    def __init__(
        self,
        cache: QueryCache,
        key: QueryKey,
        fetcher: Optional[Fetcher],
        options: Optional[QueryOptions],
        slot: _Slot,
    ) -> None:
        self._cache = cache
        self._key = key
        self._fetcher = fetcher
        self._options = options
        self._slot = slot
        self._closed = False

    @property
    def key(self) -> QueryKey:
        return self._key

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active(self) -> bool:
        """``False`` once closed, or once the observed entry was evicted.

        An eviction (``remove``, ``clear``) drops the observer count with the
        entry; a later entry under the same key is not observed by this
        subscription.
        """
        return not self._closed and self._cache._slots.get(self._key) is self._slot

    @property
    def entry(self) -> Optional[CacheEntry[T]]:
        return self._cache.get_entry(self._key)

    @property
    def data(self) -> Optional[T]:
        return self._cache.get_data(self._key)

    async def read(self) -> T:
        """Read the observed key with the subscription's fetcher and options."""
        if self._fetcher is None:
            raise RuntimeError(f"Subscription to {self._key} has no fetcher")
        return await self._cache.read(self._key, self._fetcher, self._options)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._cache._unsubscribe(self._key, self._slot)

    def __enter__(self) -> Subscription[T]:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class QueryCache:
    """Keyed store of server data with freshness, de-duplication and polling.

    One instance is created per :class:`~storefront_client.context.StorefrontContext`
    and closed with it.

    Args:
        config: Default policy (stale time, retries, retention).
        clock: Monotonic time source used for entry ages; injectable for tests.
    """

    def __init__(
        self,
        config: Optional[QueryConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or QueryConfig()
        self._clock = clock
        self._slots: dict[QueryKey, _Slot] = {}
        self._generations = itertools.count(1)
        self._tasks: set[asyncio.Task] = set()

    @property
    def config(self) -> QueryConfig:
        return self._config

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, key: KeyLike) -> bool:
        return as_key(key) in self._slots

    def keys(self) -> list[QueryKey]:
        return list(self._slots)

    # ------------------------------------------------------------------ #
    # Snapshots
    # ------------------------------------------------------------------ #

    def get_entry(self, key: KeyLike) -> Optional[CacheEntry]:
        """Return the current snapshot for *key*, or ``None`` if absent.

        A ``fresh`` entry older than its ``stale_time`` is reported as
        ``stale``.
        """
        slot = self._slots.get(as_key(key))
        if slot is None:
            return None
        entry = slot.entry
        if entry.status == QueryStatus.FRESH and self._is_stale(slot):
            return replace(entry, status=QueryStatus.STALE)
        return entry

    def get_data(self, key: KeyLike) -> Any:
        slot = self._slots.get(as_key(key))
        if slot is None or not slot.entry.has_data:
            return None
        return slot.entry.data

    def observer_count(self, key: KeyLike) -> int:
        slot = self._slots.get(as_key(key))
        return slot.observers if slot is not None else 0

    def is_fetching(self, key: KeyLike) -> bool:
        slot = self._slots.get(as_key(key))
        return slot is not None and slot.inflight is not None and not slot.inflight.done()

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def read(
        self,
        key: KeyLike,
        fetcher: Fetcher,
        options: Optional[QueryOptions] = None,
    ) -> Any:
        """Return the data for *key*, fetching or refreshing per policy.

        Blocks only when there is no data yet.  Stale data is returned at
        once while a single background refetch runs.

        Raises:
            StorefrontError: When there is no data to fall back on and the
                fetch failed after its retries.
        """
        qkey = as_key(key)
        resolved = (options or QueryOptions()).resolve(self._config)
        slot = self._slots.get(qkey)

        if slot is None:
            slot = self._create_slot(qkey, resolved, fetcher)
            debug(f"cache miss: {qkey}")
            return await self._await_fetch(slot)

        slot.fetcher = fetcher
        slot.options = resolved
        self._schedule_gc(qkey, slot)

        if not slot.entry.has_data:
            return await self._await_fetch(slot)

        if self._is_stale(slot):
            debug(f"cache stale: {qkey}, refreshing in background")
            self._start_fetch(slot)
        else:
            debug(f"cache hit: {qkey}")
        return slot.entry.data

    async def refetch(self, key: KeyLike) -> Any:
        """Fetch *key* now with its last-used fetcher, ignoring staleness.

        Joins an in-flight fetch when there is one.

        Raises:
            KeyError: If the key is unknown or was never read with a fetcher.
        """
        qkey = as_key(key)
        slot = self._slots.get(qkey)
        if slot is None or slot.fetcher is None:
            raise KeyError(f"No fetcher registered for {qkey}")
        return await self._await_fetch(slot)

    # ------------------------------------------------------------------ #
    # Writes requested by collaborators
    # ------------------------------------------------------------------ #

    def invalidate(self, key: KeyLike) -> int:
        """Mark every entry under the *key* prefix stale.

        The next read of each entry refetches.  Observed entries are
        refetched right away.  An in-flight fetch that started before the
        invalidation is superseded: its result is not written.

        Returns:
            The number of entries invalidated.
        """
        prefix = as_key(key)
        matched = [(k, s) for k, s in self._slots.items() if prefix.is_prefix_of(k)]
        for qkey, slot in matched:
            slot.entry = replace(
                slot.entry,
                status=QueryStatus.STALE,
                invalidated=True,
                generation=next(self._generations),
            )
            slot.inflight = None
            debug(f"invalidated: {qkey}")
            if slot.observers > 0 and slot.fetcher is not None:
                self._start_fetch(slot)
        return len(matched)

    def mutate(self, key: KeyLike, fn: Callable[[Any], Any]) -> Any:
        """Apply an optimistic local update to *key* without a round trip.

        *fn* receives the current data (``None`` when absent) and returns the
        replacement.  The entry becomes ``fresh`` and any in-flight fetch for
        it is superseded.

        Returns:
            The new data.
        """
        qkey = as_key(key)
        slot = self._slots.get(qkey)
        current = slot.entry.data if slot is not None and slot.entry.has_data else None
        new_data = fn(current)

        if slot is None:
            slot = self._create_slot(qkey, QueryOptions().resolve(self._config), None)
        slot.entry = replace(
            slot.entry,
            data=new_data,
            has_data=True,
            status=QueryStatus.FRESH,
            fetched_at=self._clock(),
            error=None,
            failure_count=0,
            invalidated=False,
            generation=next(self._generations),
        )
        slot.inflight = None
        self._schedule_gc(qkey, slot)
        return new_data

    def set_data(self, key: KeyLike, data: Any) -> Any:
        return self.mutate(key, lambda _current: data)

    def remove(self, key: KeyLike) -> bool:
        """Evict *key* now.  A pending fetch may finish but is not written back."""
        qkey = as_key(key)
        slot = self._slots.pop(qkey, None)
        if slot is None:
            return False
        self._release(slot)
        debug(f"evicted: {qkey}")
        return True

    def clear(self) -> None:
        """Evict every entry (used on logout)."""
        for qkey in list(self._slots):
            self.remove(qkey)

    # ------------------------------------------------------------------ #
    # Observers
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        key: KeyLike,
        fetcher: Optional[Fetcher] = None,
        options: Optional[QueryOptions] = None,
    ) -> Subscription:
        """Register an observer of *key* and return its :class:`Subscription`.

        With a fetcher, a missing or stale entry is fetched in the background
        and a ``refetch_interval`` poller starts for the first observer.
        """
        qkey = as_key(key)
        resolved = (options or QueryOptions()).resolve(self._config)
        slot = self._slots.get(qkey)
        if slot is None:
            slot = self._create_slot(qkey, resolved, fetcher)
        else:
            if fetcher is not None:
                slot.fetcher = fetcher
            if fetcher is not None or options is not None:
                slot.options = resolved

        slot.observers += 1
        if slot.gc_handle is not None:
            slot.gc_handle.cancel()
            slot.gc_handle = None

        if slot.fetcher is not None:
            if self._is_stale(slot):
                self._start_fetch(slot)
            if slot.options.refetch_interval and slot.poller is None:
                slot.poller = asyncio.get_running_loop().create_task(self._poll(qkey, slot))
        return Subscription(self, qkey, fetcher, options, slot)

    def _unsubscribe(self, qkey: QueryKey, slot: _Slot) -> None:
        # the entry was evicted since; its replacement has its own observers
        if self._slots.get(qkey) is not slot:
            return
        slot.observers = max(0, slot.observers - 1)
        if slot.observers == 0:
            if slot.poller is not None:
                slot.poller.cancel()
                slot.poller = None
            self._schedule_gc(qkey, slot)

    async def _poll(self, qkey: QueryKey, slot: _Slot) -> None:
        while self._slots.get(qkey) is slot and slot.observers > 0:
            await asyncio.sleep(slot.options.refetch_interval or 0)
            if self._slots.get(qkey) is not slot or slot.observers == 0:
                return
            debug(f"polling: {qkey}")
            self._start_fetch(slot)

    # ------------------------------------------------------------------ #
    # Shutdown
    # ------------------------------------------------------------------ #

    async def close(self) -> None:
        """Cancel pollers, eviction timers and pending fetches; drop all entries."""
        for slot in self._slots.values():
            self._release(slot)
        self._slots.clear()
        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _create_slot(
        self, qkey: QueryKey, options: QueryOptions, fetcher: Optional[Fetcher]
    ) -> _Slot:
        slot = _Slot(
            entry=CacheEntry(key=qkey, generation=next(self._generations)),
            options=options,
            fetcher=fetcher,
        )
        self._slots[qkey] = slot
        self._schedule_gc(qkey, slot)
        return slot

    def _is_stale(self, slot: _Slot) -> bool:
        entry = slot.entry
        if not entry.has_data or entry.invalidated:
            return True
        age = entry.age(self._clock())
        return age is None or age >= (slot.options.stale_time or 0)

    def _start_fetch(self, slot: _Slot) -> asyncio.Task:
        """Start a fetch for *slot* unless one is already in flight.

        Raises:
            RuntimeError: If no fetcher was ever registered for the key.
        """
        if slot.inflight is not None and not slot.inflight.done():
            return slot.inflight
        qkey = slot.entry.key
        if slot.fetcher is None:
            raise RuntimeError(f"Cannot fetch {qkey}: no fetcher registered")

        generation = slot.entry.generation
        slot.entry = replace(slot.entry, status=QueryStatus.FETCHING)
        task = asyncio.get_running_loop().create_task(
            self._run_fetch(qkey, generation, slot.fetcher, slot.options)
        )
        slot.inflight = task
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._fetch_done(qkey, t))
        return task

    async def _await_fetch(self, slot: _Slot) -> Any:
        # shield: a cancelled reader must not cancel a fetch other readers share
        return await asyncio.shield(self._start_fetch(slot))

    async def _run_fetch(
        self,
        qkey: QueryKey,
        generation: int,
        fetcher: Fetcher,
        options: QueryOptions,
    ) -> Any:
        def _record_failure(exc: Exception, attempt: int) -> None:
            self._apply(
                qkey,
                generation,
                lambda e: replace(
                    e,
                    status=QueryStatus.ERROR,
                    error=exc,
                    failure_count=e.failure_count + 1,
                ),
            )

        data = await call_with_retry(
            fetcher,
            retries=options.retries or 0,
            retry_delay=options.retry_delay or 0,
            on_failure=_record_failure,
            label=f"fetch {qkey}",
        )
        self._apply(
            qkey,
            generation,
            lambda e: replace(
                e,
                data=data,
                has_data=True,
                status=QueryStatus.FRESH,
                fetched_at=self._clock(),
                error=None,
                failure_count=0,
                invalidated=False,
            ),
        )
        return data

    def _apply(
        self,
        qkey: QueryKey,
        generation: int,
        update: Callable[[CacheEntry], CacheEntry],
    ) -> bool:
        """Replace the entry snapshot, unless the fetch was superseded."""
        slot = self._slots.get(qkey)
        if slot is None or slot.entry.generation != generation:
            debug(f"discarding superseded result for {qkey}")
            return False
        slot.entry = update(slot.entry)
        return True

    def _fetch_done(self, qkey: QueryKey, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        slot = self._slots.get(qkey)
        if slot is not None and slot.inflight is task:
            slot.inflight = None
        if not task.cancelled():
            # mark background failures as retrieved; the entry holds the error
            task.exception()

    def _schedule_gc(self, qkey: QueryKey, slot: _Slot) -> None:
        if slot.observers > 0:
            return
        if slot.gc_handle is not None:
            slot.gc_handle.cancel()
            slot.gc_handle = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        slot.gc_handle = loop.call_later(
            slot.options.retention or 0, self._evict_if_unobserved, qkey, slot
        )

    def _evict_if_unobserved(self, qkey: QueryKey, slot: _Slot) -> None:
        if self._slots.get(qkey) is slot and slot.observers == 0:
            self.remove(qkey)

    def _release(self, slot: _Slot) -> None:
        if slot.poller is not None:
            slot.poller.cancel()
            slot.poller = None
        if slot.gc_handle is not None:
            slot.gc_handle.cancel()
            slot.gc_handle = None
        slot.inflight = None
        slot.observers = 0


__all__ = [
    "CacheEntry",
    "Fetcher",
    "QueryCache",
    "QueryOptions",
    "QueryStatus",
    "Subscription",
]
