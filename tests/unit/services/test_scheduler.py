"""Unit tests for BatchScheduler.

Tests cover batch partitioning, concurrent dispatch within a batch,
all-settled semantics, inter-batch pauses and cooperative cancellation.
"""

import asyncio
import time
from dataclasses import replace
from unittest.mock import AsyncMock, Mock

import pytest

from rapidfire.services.executor import RequestExecutor, RequestOutcome
from rapidfire.services.scheduler import (
    BatchResult,
    BatchScheduler,
    batch_sizes,
    count_batches,
)


class TestBatchPartitioning:
    """Tests for count_batches and batch_sizes functions."""

    def test_uneven_partition(self):
        """10 requests in batches of 3 give sizes [3, 3, 3, 1]."""
        assert count_batches(10, 3) == 4
        assert batch_sizes(10, 3) == [3, 3, 3, 1]

    def test_even_partition(self):
        """An exact multiple gives equal batches."""
        assert batch_sizes(9, 3) == [3, 3, 3]

    def test_concurrency_above_request_count(self):
        """A single smaller batch when concurrency exceeds the volume."""
        assert batch_sizes(5, 50) == [5]

    def test_empty_run(self):
        """Zero requests give zero batches."""
        assert count_batches(0, 10) == 0
        assert batch_sizes(0, 10) == []

    def test_sizes_sum_to_request_count(self):
        """Batch sizes always add up to the request count."""
        for total in (1, 7, 99, 100, 101, 10000):
            for concurrency in (1, 3, 10, 100):
                sizes = batch_sizes(total, concurrency)
                assert sum(sizes) == total
                assert all(0 < size <= concurrency for size in sizes)


class TestBatchResult:
    """Tests for BatchResult dataclass."""

    def test_batch_result_properties(self, success_outcome):
        """BatchResult exposes number, size and last-batch flag."""
        result = BatchResult(index=3, total_batches=4, outcomes=(success_outcome,))

        assert result.number == 4
        assert result.size == 1
        assert result.is_last is True

    def test_batch_result_not_last(self, success_outcome):
        """Only the final index is the last batch."""
        result = BatchResult(index=0, total_batches=4, outcomes=(success_outcome,))

        assert result.is_last is False


@pytest.mark.asyncio
class TestBatchSchedulerRunBatch:
    """Tests for BatchScheduler.run_batch method."""

    async def test_run_batch_dispatches_all_requests(self, mock_executor, sample_plan):
        """run_batch calls the executor once per request."""
        scheduler = BatchScheduler(executor=mock_executor, pause_sec=0)

        outcomes = await scheduler.run_batch(sample_plan, 3)

        assert len(outcomes) == 3
        assert mock_executor.execute.await_count == 3
        mock_executor.execute.assert_awaited_with(sample_plan)

    async def test_run_batch_runs_requests_concurrently(self, tracking_executor, sample_plan):
        """All requests of a batch are in flight at the same time."""
        scheduler = BatchScheduler(executor=tracking_executor, pause_sec=0)

        await scheduler.run_batch(sample_plan, 5)

        assert tracking_executor.in_flight_peak == 5

    async def test_run_batch_waits_for_slowest_request(self, sample_plan, success_outcome):
        """run_batch returns only after every request settled."""
        settled = []

        async def execute(plan):
            delay = 0.05 if not settled else 0.0
            settled.append(delay)
            await asyncio.sleep(delay)
            return success_outcome

        executor = Mock(spec=RequestExecutor)
        executor.execute = AsyncMock(side_effect=execute)
        scheduler = BatchScheduler(executor=executor, pause_sec=0)

        start = time.perf_counter()
        outcomes = await scheduler.run_batch(sample_plan, 3)

        assert len(outcomes) == 3
        assert time.perf_counter() - start >= 0.04

    async def test_run_batch_converts_raised_exception(
        self, sample_plan, success_outcome
    ):
        """A request that raises is reported as a failure with 0 ms."""
        executor = Mock(spec=RequestExecutor)
        executor.execute = AsyncMock(
            side_effect=[success_outcome, RuntimeError("unexpected"), success_outcome]
        )
        scheduler = BatchScheduler(executor=executor, pause_sec=0)

        outcomes = await scheduler.run_batch(sample_plan, 3)

        assert [o.success for o in outcomes] == [True, False, True]
        assert outcomes[1].error_message == "unexpected"
        assert outcomes[1].response_time_ms == 0.0

    async def test_run_batch_keeps_failures(self, sample_plan, failure_outcome):
        """Failed outcomes never abort the batch."""
        executor = Mock(spec=RequestExecutor)
        executor.execute = AsyncMock(return_value=failure_outcome)
        scheduler = BatchScheduler(executor=executor, pause_sec=0)

        outcomes = await scheduler.run_batch(sample_plan, 4)

        assert outcomes == [failure_outcome] * 4


@pytest.mark.asyncio
class TestBatchSchedulerIterBatches:
    """Tests for BatchScheduler.iter_batches method."""

    async def test_iter_batches_yields_batches_in_order(self, mock_executor, sample_plan):
        """10 requests with concurrency 3 yield batches of [3, 3, 3, 1]."""
        scheduler = BatchScheduler(executor=mock_executor, pause_sec=0)

        batches = [batch async for batch in scheduler.iter_batches(sample_plan)]

        assert [b.index for b in batches] == [0, 1, 2, 3]
        assert [b.size for b in batches] == [3, 3, 3, 1]
        assert all(b.total_batches == 4 for b in batches)
        assert mock_executor.execute.await_count == 10

    async def test_iter_batches_never_overlaps_batches(self, tracking_executor, sample_plan):
        """No more than one batch worth of requests is ever in flight."""
        scheduler = BatchScheduler(executor=tracking_executor, pause_sec=0)

        async for _ in scheduler.iter_batches(sample_plan):
            pass

        assert tracking_executor.in_flight_peak == 3
        assert tracking_executor.calls == 10

    async def test_iter_batches_empty_plan(self, mock_executor, sample_plan):
        """A zero-request plan yields nothing."""
        plan = replace(sample_plan, request_count=0)
        scheduler = BatchScheduler(executor=mock_executor, pause_sec=0)

        batches = [batch async for batch in scheduler.iter_batches(plan)]

        assert batches == []
        mock_executor.execute.assert_not_called()

    async def test_iter_batches_pauses_between_batches(self, mock_executor, sample_plan):
        """The pause is applied between batches but not after the last."""
        scheduler = BatchScheduler(executor=mock_executor, pause_sec=0.02)

        start = time.perf_counter()
        batches = [batch async for batch in scheduler.iter_batches(sample_plan)]
        elapsed = time.perf_counter() - start

        assert len(batches) == 4
        # three pauses for four batches
        assert elapsed >= 0.05

    async def test_iter_batches_no_pause_for_single_batch(self, mock_executor, sample_plan):
        """A single batch run never pauses."""
        plan = replace(sample_plan, request_count=3)
        scheduler = BatchScheduler(executor=mock_executor, pause_sec=1.0)

        start = time.perf_counter()
        batches = [batch async for batch in scheduler.iter_batches(plan)]

        assert len(batches) == 1
        assert time.perf_counter() - start < 0.5

    async def test_iter_batches_stops_when_cancelled_between_batches(
        self, mock_executor, sample_plan
    ):
        """Setting the cancel event after a batch prevents further batches."""
        scheduler = BatchScheduler(executor=mock_executor, pause_sec=0)
        cancel_event = asyncio.Event()

        batches = []
        async for batch in scheduler.iter_batches(sample_plan, cancel_event):
            batches.append(batch)
            if batch.number == 2:
                cancel_event.set()

        assert len(batches) == 2
        assert mock_executor.execute.await_count == 6

    async def test_iter_batches_stops_when_cancelled_during_pause(
        self, mock_executor, sample_plan
    ):
        """A cancel arriving during the pause prevents the next batch."""
        scheduler = BatchScheduler(executor=mock_executor, pause_sec=0.05)
        cancel_event = asyncio.Event()

        async def cancel_soon():
            await asyncio.sleep(0.02)
            cancel_event.set()

        batches = []
        async for batch in scheduler.iter_batches(sample_plan, cancel_event):
            batches.append(batch)
            if batch.number == 1:
                asyncio.create_task(cancel_soon())

        assert len(batches) == 1
        assert mock_executor.execute.await_count == 3

    async def test_iter_batches_finishes_in_flight_batch_when_cancelled(
        self, sample_plan, success_outcome
    ):
        """A batch already dispatched always settles completely."""
        cancel_event = asyncio.Event()

        async def execute(plan):
            cancel_event.set()
            await asyncio.sleep(0.001)
            return success_outcome

        executor = Mock(spec=RequestExecutor)
        executor.execute = AsyncMock(side_effect=execute)
        scheduler = BatchScheduler(executor=executor, pause_sec=0)

        batches = [b async for b in scheduler.iter_batches(sample_plan, cancel_event)]

        assert len(batches) == 1
        assert batches[0].size == 3
        assert all(isinstance(o, RequestOutcome) for o in batches[0].outcomes)
