"""Bounded worker pool and cooperative cancellation for asyncio passes."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, Sequence, TypeVar

from benchrecon.core.exceptions import PassCancelledError

T = TypeVar("T")
R = TypeVar("R")


class CancellationToken:
    """Cooperative cancellation flag checked at chunk boundaries."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise PassCancelledError(stage)

    async def wait(self) -> None:
        await self._event.wait()


async def checkpoint(cancel: CancellationToken | None, stage: str) -> None:
    """Yield to the event loop, then raise if the pass was cancelled."""
    await asyncio.sleep(0)
    if cancel is not None:
        cancel.raise_if_cancelled(stage)


def chunked(items: Sequence[T], size: int) -> Iterable[Sequence[T]]:
    """Split a sequence into consecutive slices of at most ``size`` items."""
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


@dataclass
class WorkOutcome(Generic[T, R]):
    """Result of one work item: either ``result`` or ``error`` is set."""

    item: T
    result: R | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_bounded(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    *,
    limit: int,
    cancel: CancellationToken | None = None,
    stage: str = "worker_pool",
) -> list[WorkOutcome[T, R]]:
    """Run ``worker`` over ``items`` with at most ``limit`` in flight.

    Outcomes come back in input order once every item has finished. A
    failing item is captured on its outcome; ``PassCancelledError`` from any
    worker stops the pool and propagates.
    """
    outcomes: list[WorkOutcome[T, R]] = [WorkOutcome(item=i) for i in items]
    if not items:
        return outcomes

    queue: asyncio.Queue[int] = asyncio.Queue()
    for index in range(len(items)):
        queue.put_nowait(index)

    async def drain() -> None:
        while True:
            try:
                index = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            if cancel is not None:
                cancel.raise_if_cancelled(stage)
            try:
                outcomes[index].result = await worker(items[index])
            except PassCancelledError:
                raise
            except Exception as exc:
                outcomes[index].error = exc

    workers = [
        asyncio.create_task(drain()) for _ in range(max(1, min(limit, len(items))))
    ]
    try:
        await asyncio.gather(*workers)
    except PassCancelledError:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise
    return outcomes
