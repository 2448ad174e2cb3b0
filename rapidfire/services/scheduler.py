"""BatchScheduler for dispatching a run as consecutive concurrent batches.

The total volume is split into groups of ``concurrency`` requests. All
requests of a batch are started together and awaited together; the next
batch is not dispatched until every request of the current one has
settled. A short fixed pause separates consecutive batches.
"""

import asyncio
import math
from collections.abc import AsyncIterator
from dataclasses import dataclass

from rapidfire.core.logging import get_logger
from rapidfire.core.metrics import BATCH_COUNT, BATCH_SIZE
from rapidfire.services.executor import RequestExecutor, RequestOutcome
from rapidfire.services.validator import RunPlan

logger = get_logger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """Settled outcomes of one batch.

    Attributes:
        index: 0-based batch index.
        total_batches: Number of batches in the run.
        outcomes: One outcome per dispatched request.
    """

    index: int
    total_batches: int
    outcomes: tuple[RequestOutcome, ...]

    @property
    def number(self) -> int:
        """1-based batch number for display."""
        return self.index + 1

    @property
    def size(self) -> int:
        """Number of requests in the batch."""
        return len(self.outcomes)

    @property
    def is_last(self) -> bool:
        """Check if this is the final batch of the run."""
        return self.index == self.total_batches - 1


def count_batches(request_count: int, concurrency: int) -> int:
    """Number of batches needed for a run.

    Args:
        request_count: Total requests (0 or more).
        concurrency: Batch size (1 or more).

    Returns:
        ceil(request_count / concurrency), 0 for an empty run.
    """
    if request_count <= 0:
        return 0
    return math.ceil(request_count / concurrency)


def batch_sizes(request_count: int, concurrency: int) -> list[int]:
    """Size of every batch in dispatch order.

    Args:
        request_count: Total requests.
        concurrency: Batch size.

    Returns:
        List of batch sizes; only the last one may be smaller than concurrency.
    """
    return [
        min(concurrency, request_count - index * concurrency)
        for index in range(count_batches(request_count, concurrency))
    ]


class BatchScheduler:
    """Drives a run plan batch by batch through a RequestExecutor.

    Cancellation is cooperative: the scheduler checks the cancel event
    only between batches, so a batch that has been dispatched always
    settles completely.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        pause_sec: float = 0.1,
    ) -> None:
        """Initialize BatchScheduler.

        Args:
            executor: RequestExecutor used for every request.
            pause_sec: Pause between two consecutive batches.
        """
        self._executor = executor
        self._pause_sec = pause_sec

    @property
    def pause_sec(self) -> float:
        """Pause between batches in seconds."""
        return self._pause_sec

    async def run_batch(self, plan: RunPlan, size: int) -> list[RequestOutcome]:
        """Dispatch ``size`` requests concurrently and wait for all of them.

        Args:
            plan: Validated run plan.
            size: Number of requests in the batch.

        Returns:
            Outcomes in dispatch order. A request that raised instead of
            returning an outcome is reported as a failure with 0 ms.
        """
        results = await asyncio.gather(
            *(self._executor.execute(plan) for _ in range(size)),
            return_exceptions=True,
        )

        outcomes: list[RequestOutcome] = []
        for result in results:
            if isinstance(result, BaseException):
                logger.warning(
                    "Request raised instead of settling",
                    error=str(result),
                    error_type=type(result).__name__,
                )
                outcomes.append(RequestOutcome.failure(result, 0.0))
            else:
                outcomes.append(result)

        BATCH_COUNT.inc()
        BATCH_SIZE.observe(size)

        return outcomes

    async def iter_batches(
        self,
        plan: RunPlan,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[BatchResult]:
        """Run the plan and yield each batch once it has fully settled.

        The next batch is dispatched only after the consumer has handled
        the previous one. Before every batch but the first, the cancel
        event is checked both before and after the pause.

        Args:
            plan: Validated run plan.
            cancel_event: Set to stop dispatching further batches.

        Yields:
            BatchResult for every executed batch, in order.
        """
        sizes = batch_sizes(plan.request_count, plan.concurrency)
        total_batches = len(sizes)

        for index, size in enumerate(sizes):
            if index > 0:
                if cancel_event is not None and cancel_event.is_set():
                    logger.info("Cancellation observed", next_batch=index + 1)
                    return

                await asyncio.sleep(self._pause_sec)

                if cancel_event is not None and cancel_event.is_set():
                    logger.info("Cancellation observed", next_batch=index + 1)
                    return

            outcomes = await self.run_batch(plan, size)

            logger.debug(
                "Batch settled",
                batch=index + 1,
                total_batches=total_batches,
                batch_size=size,
            )

            yield BatchResult(
                index=index,
                total_batches=total_batches,
                outcomes=tuple(outcomes),
            )
