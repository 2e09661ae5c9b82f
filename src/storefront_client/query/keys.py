"""Structured, order-independent cache keys.

A :class:`QueryKey` groups every parameter of one logical query.  Positional
parts name the query (``"favorites", "list"``); keyword parameters are
normalised so that ``{"limit": 20, "action": "x"}`` and
``{"action": "x", "limit": 20}`` produce the same key.  ``None`` values are
dropped, so an omitted filter and an explicit ``None`` are the same query.

Keys compare by value and hash, and support prefix matching so that one
call can invalidate a whole family::

    QueryKey.of("favorites").is_prefix_of(QueryKey.of("favorites", "status", "p1"))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Hashable, Union


def _freeze(value: Any) -> Hashable:
    """Turn dicts/lists/sets into canonical, hashable tuples."""
    if isinstance(value, dict):
        return tuple(
            sorted(
                ((str(k), _freeze(v)) for k, v in value.items() if v is not None),
                key=lambda item: item[0],
            )
        )
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return tuple(sorted((_freeze(v) for v in value), key=repr))
    return value


@dataclass(frozen=True)
class QueryKey:
    """Immutable identifier of one logical query."""

    parts: tuple[Hashable, ...]

    @classmethod
    def of(cls, *parts: Any, **params: Any) -> QueryKey:
        """Build a key from positional parts and (order-independent) params."""
        frozen = tuple(_freeze(p) for p in parts)
        if params:
            normalised = _freeze(params)
            if normalised:
                frozen = frozen + (normalised,)
        return cls(frozen)

    def is_prefix_of(self, other: QueryKey) -> bool:
        return other.parts[: len(self.parts)] == self.parts

    def __str__(self) -> str:
        return "/".join(str(p) for p in self.parts)


KeyLike = Union[QueryKey, tuple, str]


def as_key(key: KeyLike) -> QueryKey:
    """Coerce a tuple or a single string into a :class:`QueryKey`."""
    if isinstance(key, QueryKey):
        return key
    if isinstance(key, tuple):
        return QueryKey.of(*key)
    return QueryKey.of(key)
