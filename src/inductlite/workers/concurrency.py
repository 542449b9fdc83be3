"""Bounded fan-out for async work.

map_bounded runs an async worker over a list with at most `concurrency`
calls in flight and returns results in input order.
"""

import asyncio
from typing import Awaitable, Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def map_bounded(
    items: Sequence[T],
    concurrency: int,
    worker: Callable[[T], Awaitable[R]],
) -> List[R]:
    """Apply worker to every item with bounded parallelism.

    Spawns min(concurrency, len(items)) lanes; each lane repeatedly claims
    the next unprocessed index. Results are stored by index, so the output
    order matches the input regardless of completion order.

    Args:
        items: Inputs to process
        concurrency: Maximum number of worker calls in flight (>= 1)
        worker: Async callable applied to each item

    Returns:
        List of results aligned with items

    Raises:
        ValueError: If concurrency < 1
        Exception: The first exception raised by worker; callers that must
            keep going wrap per-item errors themselves

    Example:
        >>> await map_bounded([1, 2, 3], 2, double)
        [2, 4, 6]
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    results: List[R] = [None] * len(items)  # type: ignore[list-item]
    next_index = 0

    async def lane() -> None:
        nonlocal next_index
        while next_index < len(items):
            # No await between check and increment, so each index is claimed once
            index = next_index
            next_index += 1
            results[index] = await worker(items[index])

    lanes = min(concurrency, len(items))
    if lanes:
        await asyncio.gather(*(lane() for _ in range(lanes)))
    return results
