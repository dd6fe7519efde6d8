"""Best-effort batch execution.

Each item is processed independently; a failure is recorded next to the
item and never stops the rest of the batch.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Iterable, TypeVar

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


@dataclass
class BatchFailure(Generic[ItemT]):
    item: ItemT
    error: Exception

    @property
    def message(self) -> str:
        return getattr(self.error, "message", None) or str(self.error)


@dataclass
class BatchResult(Generic[ItemT, ResultT]):
    """Outcome of a batch: results in input order plus per-item failures."""
    succeeded: list[ResultT] = field(default_factory=list)
    failed: list[BatchFailure[ItemT]] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


async def run_batch(
    items: Iterable[ItemT],
    operation: Callable[[ItemT], Awaitable[ResultT]],
    concurrency: int = 1,
) -> BatchResult[ItemT, ResultT]:
    """Run ``operation`` over ``items`` with at most ``concurrency`` in flight.

    With the default concurrency of 1 the items run one at a time, in order.
    """
    items = list(items)
    semaphore = asyncio.Semaphore(max(1, concurrency))
    outcomes: list[tuple[bool, object]] = [(False, None)] * len(items)

    async def _run(index: int, item: ItemT) -> None:
        async with semaphore:
            try:
                outcomes[index] = (True, await operation(item))
            except Exception as e:
                logger.warning(
                    f"Batch item failed: {e}",
                    extra={"index": index, "error_type": type(e).__name__},
                )
                outcomes[index] = (False, e)

    await asyncio.gather(*(_run(i, item) for i, item in enumerate(items)))

    result: BatchResult[ItemT, ResultT] = BatchResult()
    for item, (ok, value) in zip(items, outcomes):
        if ok:
            result.succeeded.append(value)
        else:
            result.failed.append(BatchFailure(item=item, error=value))
    return result
