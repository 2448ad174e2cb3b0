"""RunController owning the lifecycle of a load-generation run.

State machine: IDLE -> RUNNING -> {COMPLETED, STOPPED}. A new run may be
started from any state except RUNNING.

The controller wires ConfigValidator, BatchScheduler and MetricsAggregator
together and publishes two event streams to its listeners:
- immutable RunSnapshot objects, one after every batch and one final;
- human-readable, timestamped run log lines.

All RunState mutation happens on the event loop inside the run task,
between batches, so no locking is needed.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

from rapidfire.core.exceptions import RunInProgressError, ValidationError
from rapidfire.core.logging import get_logger
from rapidfire.core.metrics import ACTIVE_RUNS, RUN_COUNT, RUN_PROGRESS
from rapidfire.services.aggregator import (
    MetricsAggregator,
    RunSnapshot,
    RunState,
    RunStatus,
)
from rapidfire.services.executor import RequestExecutor
from rapidfire.services.scheduler import BatchResult, BatchScheduler, count_batches
from rapidfire.services.validator import ConfigValidator, RunConfig, RunPlan

logger = get_logger(__name__)

SnapshotListener = Callable[[RunSnapshot], None]
LogListener = Callable[[str], None]


def format_log_line(message: str, now: datetime | None = None) -> str:
    """Prefix a run log message with the local wall-clock time.

    Args:
        message: Log message.
        now: Timestamp to use (defaults to the current local time).

    Returns:
        Line formatted as ``[HH:MM:SS] message``.
    """
    timestamp = (now or datetime.now()).strftime("%H:%M:%S")
    return f"[{timestamp}] {message}"


class RunController:
    """Starts, drives and stops load-generation runs.

    Only one run is active at a time. ``stop`` is cooperative: the batch
    in flight always settles and is counted before the run halts.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        validator: ConfigValidator | None = None,
        batch_pause_sec: float = 0.1,
    ) -> None:
        """Initialize RunController.

        Args:
            executor: RequestExecutor used for outbound requests.
            validator: ConfigValidator for incoming configurations.
            batch_pause_sec: Pause between consecutive batches.
        """
        self._executor = executor
        self._validator = validator or ConfigValidator()
        self._scheduler = BatchScheduler(executor=executor, pause_sec=batch_pause_sec)
        self._aggregator = MetricsAggregator()

        self._status = RunStatus.IDLE
        self._state: RunState | None = None
        self._snapshot: RunSnapshot | None = None
        self._cancel_event = asyncio.Event()
        self._task: asyncio.Task[RunSnapshot] | None = None

        self._logs: list[str] = []
        self._snapshot_listeners: list[SnapshotListener] = []
        self._log_listeners: list[LogListener] = []

    @property
    def status(self) -> RunStatus:
        """Current lifecycle state."""
        return self._status

    @property
    def is_running(self) -> bool:
        """Check if a run is in progress (including one draining after stop)."""
        return self._status is RunStatus.RUNNING

    @property
    def snapshot(self) -> RunSnapshot | None:
        """Latest snapshot, or None before the first run."""
        return self._snapshot

    @property
    def logs(self) -> list[str]:
        """Run log lines of the current or last run."""
        return list(self._logs)

    @property
    def executor(self) -> RequestExecutor:
        """RequestExecutor used by this controller."""
        return self._executor

    def add_listener(
        self,
        on_snapshot: SnapshotListener | None = None,
        on_log: LogListener | None = None,
    ) -> None:
        """Register callbacks for snapshots and run log lines.

        Args:
            on_snapshot: Called with every published RunSnapshot.
            on_log: Called with every run log line.
        """
        if on_snapshot is not None:
            self._snapshot_listeners.append(on_snapshot)
        if on_log is not None:
            self._log_listeners.append(on_log)

    def start(self, config: RunConfig) -> RunSnapshot:
        """Validate the configuration and launch the run in the background.

        Must be called from within a running event loop.

        Args:
            config: Raw run settings.

        Returns:
            Snapshot of the freshly initialized run.

        Raises:
            RunInProgressError: If a run is already in progress.
            ValidationError: If the configuration is rejected.
        """
        if self._status is RunStatus.RUNNING:
            raise RunInProgressError()

        try:
            plan = self._validator.validate(config)
        except ValidationError as e:
            self._log(f"Error: {e.message}")
            logger.warning("Run rejected", reason=e.message)
            raise

        total_batches = count_batches(plan.request_count, plan.concurrency)
        state = self._aggregator.new_state(
            total_requests=plan.request_count,
            total_batches=total_batches,
        )

        self._state = state
        self._status = RunStatus.RUNNING
        self._cancel_event = asyncio.Event()
        self._logs = []
        self._snapshot = self._aggregator.snapshot(state)

        ACTIVE_RUNS.inc()
        RUN_PROGRESS.set(0)

        logger.info(
            "Run started",
            url=plan.url,
            method=plan.method.value,
            request_count=plan.request_count,
            concurrency=plan.concurrency,
            total_batches=total_batches,
        )
        self._log(f"Starting load test on {plan.url}")
        self._log(f"Configuration: {plan.request_count} requests, {plan.concurrency} concurrent")

        self._task = asyncio.create_task(self._drive(plan, state))
        self._task.add_done_callback(self._on_task_done)
        return self._snapshot

    async def run(self, config: RunConfig) -> RunSnapshot:
        """Start a run and wait for it to finish.

        Args:
            config: Raw run settings.

        Returns:
            Final snapshot of the run.
        """
        self.start(config)
        return await self.wait()

    async def wait(self) -> RunSnapshot | None:
        """Wait for the active run task to finish.

        Returns:
            Final snapshot, or the latest snapshot if nothing is running.
        """
        if self._task is not None:
            await self._task
        return self._snapshot

    def stop(self) -> RunSnapshot | None:
        """Request the current run to stop after its in-flight batch.

        No-op unless a run is in progress and not already stopping.

        Returns:
            Latest snapshot.
        """
        if self._status is not RunStatus.RUNNING or self._cancel_event.is_set():
            return self._snapshot

        if self._state is None:
            raise RuntimeError("Run state not initialized")
        self._cancel_event.set()
        self._state.running = False
        self._snapshot = self._aggregator.snapshot(self._state)

        logger.info(
            "Run stop requested",
            completed_batches=self._state.completed_batches,
            total_batches=self._state.total_batches,
        )
        self._log("Test stopped by user")
        return self._snapshot

    async def shutdown(self) -> None:
        """Stop any active run and wait for it to drain."""
        self.stop()
        await self.wait()

    async def _drive(self, plan: RunPlan, state: RunState) -> RunSnapshot:
        """Execute the run plan batch by batch and finalize it."""
        try:
            async for batch in self._scheduler.iter_batches(plan, self._cancel_event):
                self._on_batch(state, batch)
        except Exception as e:
            logger.error(
                "Run aborted by unexpected error",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            self._finish(state, RunStatus.STOPPED)
            raise
        except asyncio.CancelledError:
            self._finish(state, RunStatus.STOPPED)
            raise

        if state.completed_batches >= state.total_batches:
            return self._finish(state, RunStatus.COMPLETED)
        return self._finish(state, RunStatus.STOPPED)

    def _on_task_done(self, task: asyncio.Task[RunSnapshot]) -> None:
        """Retrieve and log the error of a finished run task."""
        if task.cancelled():
            logger.info("Run task cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Run task failed",
                error=str(error),
                error_type=type(error).__name__,
            )

    def _on_batch(self, state: RunState, batch: BatchResult) -> None:
        """Fold one settled batch and publish it."""
        self._aggregator.fold(state, batch)
        RUN_PROGRESS.set(state.progress)

        logger.info(
            "Batch completed",
            batch=batch.number,
            total_batches=batch.total_batches,
            batch_size=batch.size,
            success_count=state.success_count,
            fail_count=state.fail_count,
            progress=state.progress,
        )
        self._log(
            f"Batch {batch.number}/{batch.total_batches} completed - "
            f"Success: {state.success_count}, Failed: {state.fail_count}"
        )
        self._publish(self._aggregator.snapshot(state))

    def _finish(self, state: RunState, status: RunStatus) -> RunSnapshot:
        """Finalize the run, publish the final snapshot and log the results."""
        self._aggregator.finalize(state, status)
        self._status = status

        ACTIVE_RUNS.dec()
        RUN_COUNT.labels(result=status.value).inc()
        RUN_PROGRESS.set(state.progress)

        logger.info(
            "Run finished",
            status=status.value,
            success_count=state.success_count,
            fail_count=state.fail_count,
            average_response_time_ms=state.average_response_time_ms,
        )

        if status is RunStatus.COMPLETED:
            self._log("Test completed")
        else:
            self._log(
                f"Test stopped after batch {state.completed_batches}/{state.total_batches}"
            )
        self._log(f"Results: {state.success_count} successful, {state.fail_count} failed")
        self._log(f"Average response time: {state.average_response_time_ms:.2f}ms")

        snapshot = self._aggregator.snapshot(state)
        self._publish(snapshot)
        return snapshot

    def _publish(self, snapshot: RunSnapshot) -> None:
        self._snapshot = snapshot
        for listener in self._snapshot_listeners:
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(
                    "Snapshot listener failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def _log(self, message: str) -> None:
        line = format_log_line(message)
        self._logs.append(line)
        for listener in self._log_listeners:
            try:
                listener(line)
            except Exception as e:
                logger.error(
                    "Log listener failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
