"""MetricsAggregator for folding request outcomes into run statistics.

RunState is the mutable record owned by the controller; RunSnapshot is
the immutable copy handed to listeners. The aggregator itself holds no
state: every method works on the RunState it is given.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType

from rapidfire.services.scheduler import BatchResult


class RunStatus(str, Enum):
    """Lifecycle states of a run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"


@dataclass
class RunState:
    """Mutable statistics of the current run.

    Only mutated between batches by the controller's task.
    """

    total_requests: int
    total_batches: int
    started_at: datetime
    success_count: int = 0
    fail_count: int = 0
    response_times: list[float] = field(default_factory=list)
    response_time_total: float = 0.0
    min_response_time_ms: float | None = None
    max_response_time_ms: float | None = None
    status_counts: dict[int, int] = field(default_factory=dict)
    completed_batches: int = 0
    progress: float = 0.0
    running: bool = True
    status: RunStatus = RunStatus.RUNNING
    ended_at: datetime | None = None
    average_response_time_ms: float = 0.0


@dataclass(frozen=True)
class RunSnapshot:
    """Immutable point-in-time copy of a RunState.

    ``response_times`` is filled on the final snapshot only.
    """

    status: RunStatus
    running: bool
    total_requests: int
    success_count: int
    fail_count: int
    progress: float
    completed_batches: int
    total_batches: int
    average_response_time_ms: float
    min_response_time_ms: float
    max_response_time_ms: float
    response_times: tuple[float, ...]
    status_counts: Mapping[int, int]
    started_at: datetime
    ended_at: datetime | None
    duration_ms: float

    @property
    def settled_count(self) -> int:
        """Requests that have settled so far."""
        return self.success_count + self.fail_count

    def to_dict(self) -> dict:
        """Serialize to a JSON-friendly dictionary.

        Returns:
            Dictionary representation without the raw response times.
        """
        return {
            "status": self.status.value,
            "running": self.running,
            "total_requests": self.total_requests,
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "progress": self.progress,
            "completed_batches": self.completed_batches,
            "total_batches": self.total_batches,
            "average_response_time_ms": self.average_response_time_ms,
            "min_response_time_ms": self.min_response_time_ms,
            "max_response_time_ms": self.max_response_time_ms,
            "status_counts": {str(code): count for code, count in self.status_counts.items()},
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_ms": self.duration_ms,
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MetricsAggregator:
    """Folds batch outcomes into a RunState and produces snapshots."""

    @staticmethod
    def average(times: Iterable[float]) -> float:
        """Arithmetic mean of the recorded times, 0 when there are none."""
        values = list(times)
        if not values:
            return 0.0
        return sum(values) / len(values)

    def new_state(self, total_requests: int, total_batches: int) -> RunState:
        """Create the initial state of a run.

        Args:
            total_requests: Requested volume.
            total_batches: Number of batches the volume is split into.

        Returns:
            RunState marked as running with zeroed counters.
        """
        return RunState(
            total_requests=total_requests,
            total_batches=total_batches,
            started_at=_now(),
        )

    def fold(self, state: RunState, batch: BatchResult) -> None:
        """Add one settled batch to the run statistics.

        Args:
            state: RunState to update in place.
            batch: Settled batch outcomes.
        """
        for outcome in batch.outcomes:
            if outcome.success:
                state.success_count += 1
            else:
                state.fail_count += 1
            if outcome.status_code is not None:
                state.status_counts[outcome.status_code] = (
                    state.status_counts.get(outcome.status_code, 0) + 1
                )
            elapsed = outcome.response_time_ms
            state.response_times.append(elapsed)
            state.response_time_total += elapsed
            if state.min_response_time_ms is None or elapsed < state.min_response_time_ms:
                state.min_response_time_ms = elapsed
            if state.max_response_time_ms is None or elapsed > state.max_response_time_ms:
                state.max_response_time_ms = elapsed

        state.completed_batches += 1
        if state.completed_batches >= state.total_batches:
            progress = 100.0
        else:
            progress = (state.completed_batches / state.total_batches) * 100
        state.progress = max(state.progress, progress)

    def finalize(self, state: RunState, status: RunStatus) -> None:
        """Close the run and compute its final statistics.

        Args:
            state: RunState to finalize in place.
            status: COMPLETED or STOPPED.
        """
        state.status = status
        state.running = False
        state.ended_at = _now()
        state.average_response_time_ms = self.average(state.response_times)
        if status is RunStatus.COMPLETED:
            # An empty run has no batch to fold but is still complete
            state.progress = 100.0

    def snapshot(self, state: RunState) -> RunSnapshot:
        """Take an immutable copy of the state.

        Counters, min, max and average are O(1) reads of the running
        totals. The raw response times are copied only once the run has
        been finalized; in-flight snapshots carry an empty tuple.

        Args:
            state: Current RunState.

        Returns:
            RunSnapshot reflecting the state at call time.
        """
        finished = state.ended_at is not None
        end = state.ended_at or _now()
        recorded = len(state.response_times)
        if finished:
            average = state.average_response_time_ms
        else:
            average = state.response_time_total / recorded if recorded else 0.0

        return RunSnapshot(
            status=state.status,
            running=state.running,
            total_requests=state.total_requests,
            success_count=state.success_count,
            fail_count=state.fail_count,
            progress=state.progress,
            completed_batches=state.completed_batches,
            total_batches=state.total_batches,
            average_response_time_ms=average,
            min_response_time_ms=state.min_response_time_ms or 0.0,
            max_response_time_ms=state.max_response_time_ms or 0.0,
            response_times=tuple(state.response_times) if finished else (),
            status_counts=MappingProxyType(dict(state.status_counts)),
            started_at=state.started_at,
            ended_at=state.ended_at,
            duration_ms=(end - state.started_at).total_seconds() * 1000,
        )
