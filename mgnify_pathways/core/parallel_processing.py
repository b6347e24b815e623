"""
Bounded Parallel Execution

Concurrency helpers for independent remote lookups: an asyncio gather bounded
by a semaphore for KEGG link queries, and a thread pool map for blocking
MGnify downloads.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar
from dataclasses import dataclass
from concurrent.futures import ThreadPoolExecutor, as_completed

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class ParallelConfig:
    """Configuration for parallel processing."""
    max_concurrent_tasks: int = 8
    max_workers: int = 4
    task_timeout: Optional[float] = None

    def __post_init__(self):
        if self.max_concurrent_tasks < 1:
            raise ValueError("max_concurrent_tasks must be at least 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.task_timeout is not None and self.task_timeout <= 0:
            raise ValueError("task_timeout must be positive")


async def gather_bounded(
    func: Callable[[T], Awaitable[R]],
    items: Iterable[T],
    max_concurrency: int = 8,
    timeout: Optional[float] = None,
) -> List[Any]:
    """
    Run ``func`` over ``items`` with at most ``max_concurrency`` in flight.

    Results come back in input order. Exceptions are returned in place of
    results (like ``asyncio.gather(..., return_exceptions=True)``) so the
    caller decides per item whether a failure is fatal.

    Args:
        func: Coroutine function taking one item
        items: Items to process
        max_concurrency: Upper bound on concurrently running calls
        timeout: Optional per-call timeout in seconds

    Returns:
        List of results or exception instances, aligned with ``items``
    """
    if max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")

    semaphore = asyncio.Semaphore(max_concurrency)

    async def _run(item: T) -> R:
        async with semaphore:
            if timeout is None:
                return await func(item)
            try:
                return await asyncio.wait_for(func(item), timeout=timeout)
            except asyncio.TimeoutError:
                raise TimeoutError(f"Task for {item!r} timed out after {timeout}s")

    return await asyncio.gather(*(_run(item) for item in items), return_exceptions=True)


def thread_map(
    func: Callable[[T], R],
    items: Iterable[T],
    max_workers: int = 4,
    task_name: str = "task",
) -> Dict[T, Any]:
    """
    Apply a blocking ``func`` to every item in a thread pool.

    Items must be hashable. Failures are logged and returned as exception
    instances under their item key; successful results are returned as-is.
    The mapping preserves input order.
    """
    items = list(dict.fromkeys(items))
    results: Dict[T, Any] = {}
    if not items:
        return results

    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as executor:
        futures = {executor.submit(func, item): item for item in items}
        for future in as_completed(futures):
            item = futures[future]
            try:
                results[item] = future.result()
                logger.debug(f"{task_name} {item} completed")
            except Exception as e:
                logger.warning(f"{task_name} {item} failed: {type(e).__name__}: {e}")
                results[item] = e

    return {item: results[item] for item in items}
