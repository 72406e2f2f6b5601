"""Bounded concurrency helpers for classification batches."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, List, Optional


async def parallel_map(func: Callable, items: List[Any],
                       max_concurrent: int = 4,
                       timeout_s: Optional[float] = None) -> List[Any]:
    """Map function over items with limited concurrency.

    Results keep the input order. Blocking callables run in the default
    thread executor. Exceptions are returned in place of results so one
    failing item never cancels its siblings.
    """
    semaphore = asyncio.Semaphore(max(1, int(max_concurrent)))

    async def bounded_func(item: Any) -> Any:
        async with semaphore:
            if inspect.iscoroutinefunction(func):
                coro = func(item)
            else:
                loop = asyncio.get_running_loop()
                coro = loop.run_in_executor(None, func, item)
            if timeout_s is not None:
                return await asyncio.wait_for(coro, timeout=timeout_s)
            return await coro

    return await asyncio.gather(*[bounded_func(item) for item in items], return_exceptions=True)


__all__ = [
    "parallel_map",
]
