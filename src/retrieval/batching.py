"""Fixed-size concurrent batches with a pause between them, to stay under rate limits."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Sequence, TypeVar

from loguru import logger

T = TypeVar("T")
R = TypeVar("R")


async def run_batched(
    items: Sequence[T],
    batch_size: int,
    op: Callable[[T], Awaitable[R]],
    inter_batch_delay_ms: int = 0,
) -> List[R]:
    """Run `op` over `items` in sequential chunks of `batch_size`.

    Ops inside one chunk run concurrently and the chunk is awaited as a whole
    before the next one starts. Results come back in input order. `op` is
    expected to handle its own errors; one that raises aborts the run.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    results: List[R] = []
    total = len(items)
    for start in range(0, total, batch_size):
        batch = items[start : start + batch_size]
        results.extend(await asyncio.gather(*(op(item) for item in batch)))
        done = start + len(batch)
        logger.debug("[batch] {}/{} done", done, total)
        if done < total and inter_batch_delay_ms > 0:
            await asyncio.sleep(inter_batch_delay_ms / 1000)
    return results


__all__ = ["run_batched"]
