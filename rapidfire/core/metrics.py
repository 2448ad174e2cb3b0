"""Prometheus metrics definitions for observability.

Metrics follow the naming convention: {namespace}_{subsystem}_{name}_{unit}
Reference: https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import Counter, Gauge, Histogram

# Namespace for all metrics
NAMESPACE = "rapidfire"

# Outbound request metrics
REQUEST_COUNT = Counter(
    name="requests_total",
    documentation="Total number of outbound requests by outcome",
    labelnames=["outcome"],
    namespace=NAMESPACE,
)

RESPONSE_STATUS_COUNT = Counter(
    name="response_status_total",
    documentation="Completed responses by status class (2xx, 4xx, ...)",
    labelnames=["status_class"],
    namespace=NAMESPACE,
)

REQUEST_LATENCY = Histogram(
    name="request_latency_seconds",
    documentation="Outbound request latency in seconds",
    namespace=NAMESPACE,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Batch metrics
BATCH_COUNT = Counter(
    name="batches_total",
    documentation="Total number of settled batches",
    namespace=NAMESPACE,
)

BATCH_SIZE = Histogram(
    name="batch_size",
    documentation="Number of requests dispatched per batch",
    namespace=NAMESPACE,
    buckets=(1, 2, 5, 10, 25, 50, 100),
)

# Run metrics
RUN_COUNT = Counter(
    name="runs_total",
    documentation="Finished runs by result",
    labelnames=["result"],
    namespace=NAMESPACE,
)

ACTIVE_RUNS = Gauge(
    name="active_runs",
    documentation="Number of runs currently in progress",
    namespace=NAMESPACE,
)

RUN_PROGRESS = Gauge(
    name="run_progress_percent",
    documentation="Progress of the current run (0-100)",
    namespace=NAMESPACE,
)
