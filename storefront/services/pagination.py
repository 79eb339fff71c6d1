"""Bounded walk over a paginated search endpoint."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger("uvicorn.error")

T = TypeVar("T")

DEFAULT_MAX_PAGES = 10


@dataclass
class Page(Generic[T]):
    """What one page call reports back to the walker."""

    items: list[T]
    page_number: int | None
    total_pages: int | None
    total_matches: int | None = None


@dataclass
class WalkResult(Generic[T]):
    items: list[T] = field(default_factory=list)
    total_matches: int = 0
    pages_fetched: int = 0


async def walk_pages(
    fetch_page: Callable[[int], Awaitable[Page[T]]],
    max_pages: int = DEFAULT_MAX_PAGES,
) -> WalkResult[T]:
    """Fetch pages 1..N in order until the upstream runs out or ``max_pages`` is hit.

    The total-match count comes from page 1 only. An exception on page 1
    propagates; an exception on a later page ends the walk with what was
    accumulated so far.
    """
    result: WalkResult[T] = WalkResult()
    page_number = 1

    while result.pages_fetched < max_pages:
        try:
            page = await fetch_page(page_number)
        except Exception as e:
            if page_number == 1:
                raise
            logger.warning(f"Stopping page walk at page {page_number}: {e}")
            break

        result.pages_fetched += 1
        result.items.extend(page.items)
        if page_number == 1:
            result.total_matches = page.total_matches or 0

        if page.total_pages is None or page.page_number is None:
            break
        if page.page_number >= page.total_pages:
            break
        page_number += 1

    return result
