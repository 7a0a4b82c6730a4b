"""Utility helper functions."""

from __future__ import annotations

from typing import Hashable, Iterable, List, TypeVar

T = TypeVar("T", bound=Hashable)


def normalize_result_url(url: str) -> str:
    """
    Reduce a URL to the key used for de-duplicating search results.

    Drops the query string, strips trailing slashes and lowercases, so
    ``https://X.com/a/?utm=1`` and ``https://x.com/a`` compare equal.
    """
    return url.split("?", 1)[0].rstrip("/").lower()


def unique_in_order(values: Iterable[T]) -> List[T]:
    """Drop repeated values, keeping the first occurrence of each."""
    seen = set()
    result: List[T] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def truncate(text: str, budget: int) -> str:
    """Prefix-cut ``text`` to at most ``budget`` characters."""
    return text[:budget]
