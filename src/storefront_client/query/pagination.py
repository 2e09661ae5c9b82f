"""Cursor-based accumulation of pages on top of the query cache.

A :class:`Paginator` works on one cache key per *base* query: the query
parameters without the cursor.  The :class:`PaginationState` under that key
only grows, one page appended per successful :meth:`Paginator.fetch_next`.
Paginators opened with the same parameters share that state; a paginator
whose parameters change moves to the state of the new key.

A page is written back only while the state it was requested for is still
in the cache.  After :meth:`~Paginator.refresh`, or after the key was
evicted (``remove``, ``clear`` on logout), a late page is dropped and never
re-creates the key.  The next operation on an evicted paginator starts over
from the first page.

States::

    idle --fetch_next--> fetching_next --ok--> idle | exhausted
                                      --err--> error  (cursor unchanged)

Example::

    paginator = Paginator(cache, ("admin", "audit-logs"), fetch_page, {"limit": 20})
    while not paginator.exhausted:
        await paginator.fetch_next()
    entries = paginator.items
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from storefront_client.output import debug
from storefront_client.query.cache import QueryCache, QueryOptions, QueryStatus, Subscription
from storefront_client.query.keys import KeyLike, QueryKey, as_key
from storefront_client.query.retry import call_with_retry

T = TypeVar("T")
Cursor = Union[str, int]


@dataclass(frozen=True)
class Page(Generic[T]):
    """One server page: items in server order plus the continuation cursor.

    ``next_cursor is None`` means there are no further pages.
    """

    items: tuple[T, ...] = ()
    next_cursor: Optional[Cursor] = None

    def __len__(self) -> int:
        return len(self.items)


class PaginatorStatus(str, enum.Enum):
    IDLE = "idle"
    FETCHING_NEXT = "fetching_next"
    ERROR = "error"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class PaginationState(Generic[T]):
    """Accumulated pages for one base query.

    ``started`` separates "nothing fetched yet" from "fetched, no cursor
    left", since both have ``next_cursor is None``.  ``run`` identifies one
    accumulation from its empty state on; ``replace`` carries it over, a
    fresh state gets a new one.
    """

    pages: tuple[Page[T], ...] = ()
    next_cursor: Optional[Cursor] = None
    is_fetching_next: bool = False
    started: bool = False
    error: Optional[BaseException] = field(default=None, compare=False)
    run: object = field(default_factory=object, compare=False, repr=False)

    @property
    def exhausted(self) -> bool:
        return self.started and self.next_cursor is None

    @property
    def items(self) -> list[T]:
        return [item for page in self.pages for item in page.items]


PageFetcher = Callable[[dict[str, Any], Optional[Cursor]], Awaitable[Page[T]]]


class Paginator(Generic[T]):
    """Infinite-scroll style reader for a cursor-paginated endpoint.

    The paginator observes its cache key for as long as it is open, so the
    accumulated state is not evicted by retention.  Call :meth:`close`
    when done; a closed paginator refuses further fetches.

    Args:
        cache: Query cache holding the :class:`PaginationState`.
        base_key: Key parts naming the query, e.g. ``("admin", "audit-logs")``.
        fetch_page: ``fetch_page(params, cursor)`` performing one resource
            client call; ``cursor`` is ``None`` for the first page.
        params: Query parameters other than the cursor.
        options: Retry policy and ``stale_time`` for :meth:`load`.
    """

    def __init__(
        self,
        cache: QueryCache,
        base_key: KeyLike,
        fetch_page: PageFetcher,
        params: Optional[dict[str, Any]] = None,
        options: Optional[QueryOptions] = None,
    ) -> None:
        self._cache = cache
        self._base = as_key(base_key)
        self._fetch_page = fetch_page
        self._options = options
        self._resolved = (options or QueryOptions()).resolve(cache.config)
        self._params: dict[str, Any] = {}
        self._key = self._base
        self._subscription: Optional[Subscription] = None
        self._closed = False
        self._attach(params or {})

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def key(self) -> QueryKey:
        return self._key

    @property
    def params(self) -> dict[str, Any]:
        return dict(self._params)

    @property
    def state(self) -> PaginationState[T]:
        data = self._cache.get_data(self._key)
        return data if isinstance(data, PaginationState) else PaginationState()

    @property
    def status(self) -> PaginatorStatus:
        state = self.state
        if state.is_fetching_next:
            return PaginatorStatus.FETCHING_NEXT
        if state.error is not None:
            return PaginatorStatus.ERROR
        if state.exhausted:
            return PaginatorStatus.EXHAUSTED
        return PaginatorStatus.IDLE

    @property
    def pages(self) -> tuple[Page[T], ...]:
        return self.state.pages

    @property
    def items(self) -> list[T]:
        return self.state.items

    @property
    def next_cursor(self) -> Optional[Cursor]:
        return self.state.next_cursor

    @property
    def error(self) -> Optional[BaseException]:
        return self.state.error

    @property
    def exhausted(self) -> bool:
        return self.state.exhausted

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def fetch_next(self) -> Optional[Page[T]]:
        """Fetch and append the next page.

        A no-op returning ``None`` while a fetch is already in flight or once
        the paginator is exhausted, so it is safe to call repeatedly.  On
        failure the error is recorded, the cursor is left unchanged so the
        call can be retried, and the exception is re-raised.

        A page that arrives after the state was reset or evicted is returned
        to the caller but not appended.

        Raises:
            RuntimeError: If the paginator was closed.
        """
        self._ensure_open()
        self._ensure_attached()
        state = self.state
        if state.is_fetching_next:
            debug(f"fetch_next ignored, already fetching: {self._key}")
            return None
        if state.exhausted:
            debug(f"fetch_next ignored, exhausted: {self._key}")
            return None

        key = self._key
        run = state.run
        cursor = state.next_cursor
        params = dict(self._params)
        self._update(key, run, lambda s: replace(s, is_fetching_next=True, error=None))

        try:
            page = await call_with_retry(
                lambda: self._fetch_page(params, cursor),
                retries=self._resolved.retries or 0,
                retry_delay=self._resolved.retry_delay or 0,
                label=f"page {key} after={cursor}",
            )
        except asyncio.CancelledError:
            self._update(key, run, lambda s: replace(s, is_fetching_next=False))
            raise
        except Exception as exc:
            self._update(key, run, lambda s: replace(s, is_fetching_next=False, error=exc))
            raise

        appended = self._update(
            key,
            run,
            lambda s: replace(
                s,
                pages=s.pages + (page,),
                next_cursor=page.next_cursor,
                is_fetching_next=False,
                started=True,
                error=None,
            ),
        )
        if not appended:
            debug(f"discarding page for reset or evicted state: {key}")
            return page
        debug(f"page {len(self.pages)} of {key}: {len(page)} items, next={page.next_cursor}")
        return page

    async def load(self) -> list[T]:
        """Make sure the first page is loaded; refresh when the state went stale."""
        self._ensure_open()
        self._ensure_attached()
        entry = self._cache.get_entry(self._key)
        state = self.state
        if not state.started:
            await self.fetch_next()
        elif (
            entry is not None
            and entry.status == QueryStatus.STALE
            and not state.is_fetching_next
        ):
            await self.refresh()
        return self.items

    def set_params(self, params: Optional[dict[str, Any]]) -> bool:
        """Switch to new query parameters.

        The paginator moves to the state of the new key: empty, unless an
        open paginator with the same parameters already accumulated pages.

        Returns:
            ``True`` if the parameters changed, ``False`` for a no-op.
        """
        self._ensure_open()
        new_key = self._key_for(params or {})
        if new_key == self._key:
            return False
        debug(f"paginator params changed: {self._key} -> {new_key}")
        if self._subscription is not None:
            self._subscription.close()
        self._attach(params or {})
        return True

    async def refresh(self) -> Optional[Page[T]]:
        """Drop accumulated pages and fetch the first page again."""
        self._ensure_open()
        self._ensure_attached()
        self._reset()
        return await self.fetch_next()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _key_for(self, params: dict[str, Any]) -> QueryKey:
        return QueryKey.of(*self._base.parts, **params)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"Paginator for {self._key} is closed")

    def _ensure_attached(self) -> None:
        """Observe the key again after its entry was evicted underneath us."""
        if self._subscription is not None and self._subscription.active:
            return
        debug(f"paginator state evicted, starting over: {self._key}")
        if self._subscription is not None:
            self._subscription.close()
        self._attach(self._params)

    def _attach(self, params: dict[str, Any]) -> None:
        self._params = {k: v for k, v in params.items() if v is not None}
        self._key = self._key_for(self._params)
        self._subscription = self._cache.subscribe(self._key, options=self._options)
        if not isinstance(self._cache.get_data(self._key), PaginationState):
            self._reset()

    def _reset(self) -> None:
        self._cache.set_data(self._key, PaginationState())

    def _update(
        self,
        key: QueryKey,
        run: object,
        fn: Callable[[PaginationState[T]], PaginationState[T]],
    ) -> bool:
        """Apply *fn* to the state under *key* if it is still accumulation *run*.

        Never creates the key.  Returns ``False`` when the state was reset
        or evicted since *run* started.
        """
        current = self._cache.get_data(key)
        if not isinstance(current, PaginationState) or current.run is not run:
            return False
        self._cache.mutate(key, fn)
        return True


__all__ = [
    "Cursor",
    "Page",
    "PageFetcher",
    "PaginationState",
    "Paginator",
    "PaginatorStatus",
]
