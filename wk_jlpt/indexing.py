"""Keyed lookups built once per fetched collection."""

from __future__ import annotations

from typing import Callable, Hashable, Iterable, TypeVar

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def index_by(records: Iterable[T], key: Callable[[T], K]) -> dict[K, T]:
    """Return `{key(record): record}`; later records win on duplicate keys."""
    out: dict[K, T] = {}
    for record in records:
        out[key(record)] = record
    return out


def index_where(records: Iterable[T], key: Callable[[T], K], keep: Callable[[T], bool]) -> dict[K, T]:
    return index_by((r for r in records if keep(r)), key)
