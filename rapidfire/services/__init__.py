"""Service layer for the Rapid Fire load generator."""

from rapidfire.services.aggregator import MetricsAggregator, RunSnapshot, RunState, RunStatus
from rapidfire.services.controller import RunController
from rapidfire.services.executor import RequestExecutor, RequestOutcome
from rapidfire.services.scheduler import BatchResult, BatchScheduler
from rapidfire.services.validator import ConfigValidator, HttpMethod, RunConfig, RunPlan

__all__ = [
    "BatchResult",
    "BatchScheduler",
    "ConfigValidator",
    "HttpMethod",
    "MetricsAggregator",
    "RequestExecutor",
    "RequestOutcome",
    "RunConfig",
    "RunController",
    "RunPlan",
    "RunSnapshot",
    "RunState",
    "RunStatus",
]
