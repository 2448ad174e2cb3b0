"""Fixtures specific to unit tests.

Provides mocked dependencies and test data for isolated unit testing.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from rapidfire.services.executor import RequestExecutor, RequestOutcome


@pytest.fixture
def success_outcome() -> RequestOutcome:
    """Successful outcome with a 200 response in 10ms."""
    return RequestOutcome(success=True, response_time_ms=10.0, status_code=200)


@pytest.fixture
def failure_outcome() -> RequestOutcome:
    """Failed outcome after a refused connection in 5ms."""
    return RequestOutcome(
        success=False,
        response_time_ms=5.0,
        error_message="Connection refused",
    )


@pytest.fixture
def mock_executor(success_outcome):
    """Create a mock RequestExecutor that always succeeds.

    Returns:
        Mock with an async execute returning success_outcome.
    """
    executor = Mock(spec=RequestExecutor)
    executor.execute = AsyncMock(return_value=success_outcome)
    return executor


@pytest.fixture
def tracking_executor(success_outcome):
    """Create a mock RequestExecutor that records concurrency.

    Each call yields to the event loop before settling, so calls of the
    same batch overlap. ``executor.in_flight_peak`` holds the largest
    number of simultaneously pending calls; ``executor.calls`` the total.

    Returns:
        Mock RequestExecutor with tracking attributes.
    """
    executor = Mock(spec=RequestExecutor)
    state = {"in_flight": 0}
    executor.in_flight_peak = 0
    executor.calls = 0

    async def execute(plan):
        state["in_flight"] += 1
        executor.calls += 1
        executor.in_flight_peak = max(executor.in_flight_peak, state["in_flight"])
        await asyncio.sleep(0.001)
        state["in_flight"] -= 1
        return success_outcome

    executor.execute = AsyncMock(side_effect=execute)
    return executor
