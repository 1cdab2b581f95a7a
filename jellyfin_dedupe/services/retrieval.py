"""Shared retrieval patterns: paging through listings and bounded fan-out."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from ..models import ItemPage, MovieRecord
from .errors import RetrievalError

DEFAULT_PAGE_SIZE = 100

T = TypeVar("T")
R = TypeVar("R")

PageFetcher = Callable[[int, int], Awaitable[ItemPage]]


async def fetch_all_pages(fetch_page: PageFetcher, page_size: int = DEFAULT_PAGE_SIZE) -> list[MovieRecord]:
    """Request pages until the cumulative item count reaches the server total.

    Args:
        fetch_page: Coroutine function taking ``(start_index, limit)``
        page_size: Items requested per page

    Returns:
        Every item across all pages, in server order

    Raises:
        RetrievalError: If a page comes back empty before the total is reached
    """
    items: list[MovieRecord] = []
    start_index = 0

    while True:
        page = await fetch_page(start_index, page_size)
        items.extend(page.items)

        if len(items) >= page.total_count:
            break
        if not page.items:
            raise RetrievalError(
                f"Listing ended after {len(items)} of {page.total_count} items",
                target=f"page at index {start_index}",
            )

        # Servers may cap the page below the requested limit
        start_index += len(page.items)

    return items


async def run_bounded(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    max_concurrent: int,
) -> list[R]:
    """Run ``worker`` over ``items`` with at most ``max_concurrent`` in flight.

    All or nothing: the first failure cancels the remaining tasks, waits for
    them to settle and re-raises. Results of tasks that already finished are
    discarded.

    Returns:
        Worker results in input order
    """
    if max_concurrent < 1:
        raise ValueError("max_concurrent must be at least 1")

    semaphore = asyncio.Semaphore(max_concurrent)

    async def guarded(item: T) -> R:
        async with semaphore:
            return await worker(item)

    tasks = [asyncio.create_task(guarded(item)) for item in items]
    if not tasks:
        return []

    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
