"""Application metrics using the Prometheus client library.

One inventory of everything the service measures.  Other modules import
specific metrics and increment/observe them at the point of action.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Engine metrics
# ---------------------------------------------------------------------------

AVAILABILITY_DECISIONS = Counter(
    "availability_decisions_total",
    "Activity availability decisions by outcome",
    ["status", "locked_reason"],  # locked_reason is "none" unless status=locked
)

ROLLUP_COMPUTATIONS = Counter(
    "rollup_computations_total",
    "Completion rollup computations by result",
    ["result"],  # ok|not_found|persist_error
)

ROLLUP_DURATION = Histogram(
    "rollup_compute_duration_seconds",
    "Time spent computing and persisting one enrollment rollup",
    # Live-progress lookups dominate the upper buckets.
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

LIVE_PROGRESS_LOOKUPS = Counter(
    "live_progress_lookups_total",
    "Fallback live-progress lookups for activities without stored state",
    ["result"],  # ok|timeout|error|no_provider
)

RECOMPUTE_REQUESTS = Counter(
    "recompute_requests_total",
    "Recompute-requested events emitted by state writers",
    ["delivery"],  # inline|queue
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
