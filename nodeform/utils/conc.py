"""Concurrent utilities - fan-out/fan-in over a thread pool."""

from __future__ import annotations

import contextvars
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Settled[I, O]:
    """Outcome of one task: either a value or the exception it raised."""

    item: I
    value: O | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def map_settled[I, O](
    fn: Callable[[I], O],
    items: Iterable[I],
    concurrency: int | None = None,
) -> list[Settled[I, O]]:
    """Apply function to items concurrently and wait for every outcome.

    A failing task neither cancels nor hides its siblings: each item
    gets a Settled result, in input order.

    Args:
        fn: Function to apply to each item.
        items: Items to process.
        concurrency: Max concurrent workers. None = len(items).

    Example:
        >>> failed = [s.item for s in map_settled(provision, pools) if not s.ok]
    """
    items_list = list(items)
    if not items_list:
        return []

    # Fresh context copy per task (ctx.run cannot be concurrent on same object)
    workers = concurrency if concurrency is not None else len(items_list)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(contextvars.copy_context().run, fn, item)
            for item in items_list
        ]
        results: list[Settled[I, O]] = []
        for item, future in zip(items_list, futures, strict=True):
            error = future.exception()
            if error is None:
                results.append(Settled(item, value=future.result()))
            elif isinstance(error, Exception):
                results.append(Settled(item, error=error))
            else:
                raise error
        return results
