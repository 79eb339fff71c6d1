"""Fan-out/join helpers for multi-endpoint operations.

Secondary lookups run concurrently, one per unique key. A failed lookup only
removes that key from the result map; siblings and the caller carry on.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable
from typing import TypeVar

logger = logging.getLogger("uvicorn.error")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def unique_keys(keys: Iterable[K | None]) -> list[K]:
    """Distinct non-None keys in first-seen order."""
    seen: dict[K, None] = {}
    for key in keys:
        if key is not None and key not in seen:
            seen[key] = None
    return list(seen)


async def fetch_by_key(
    keys: Iterable[K | None],
    fetch: Callable[[K], Awaitable[V | None]],
    label: str,
) -> dict[K, V]:
    """Run ``fetch`` for every unique key concurrently and map key -> result.

    Keys whose fetch raises, or returns None, are left out of the map.
    Waits for every fetch to settle before returning.
    """
    ordered = unique_keys(keys)
    if not ordered:
        return {}

    results = await asyncio.gather(*(fetch(k) for k in ordered), return_exceptions=True)

    found: dict[K, V] = {}
    for key, res in zip(ordered, results):
        if isinstance(res, asyncio.CancelledError):
            raise res
        if isinstance(res, BaseException):
            logger.warning(f"{label} lookup failed for key {key}: {res!r}")
            continue
        if res is None:
            continue
        found[key] = res
    return found


def merge_categories(pairs: Iterable[tuple[K, Iterable[str]]]) -> dict[K, list[str]]:
    """Union of categories per key, without duplicates, first-seen order."""
    merged: dict[K, dict[str, None]] = {}
    for key, categories in pairs:
        bucket = merged.setdefault(key, {})
        for category in categories:
            if category:
                bucket.setdefault(category, None)
    return {key: list(bucket) for key, bucket in merged.items()}


def group_by(items: Iterable[V], key: Callable[[V], K | None]) -> dict[K, list[V]]:
    """Group items by key, keeping input order inside each group. None keys are dropped."""
    groups: dict[K, list[V]] = {}
    for item in items:
        k = key(item)
        if k is None:
            continue
        groups.setdefault(k, []).append(item)
    return groups
