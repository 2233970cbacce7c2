"""The exporter's own Prometheus metrics.

These describe the exporter, not the database it scrapes: how many HTTP
requests it served, how long the statistics queries took, and which
pipeline stage failed when a scrape did not complete.  They are served
on /exporter/metrics, separately from the dotted-name text on /metrics.

prometheus_client keeps everything in its global default registry, so
this module is the single inventory; other modules import the metric
they update.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
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
    # A scrape is three catalog queries plus a fresh connection handshake.
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Scrape metrics (populated by the collector and the error handler)
# ---------------------------------------------------------------------------

SCRAPE_ERRORS = Counter(
    "pg_exporter_scrape_errors_total",
    "Scrapes aborted, by the pipeline stage that failed",
    ["stage"],  # "connect", "prepare", "execute", "decode"
)

QUERY_DURATION = Histogram(
    "pg_exporter_query_duration_seconds",
    "Time spent running one statistics query and fetching its rows",
    ["query"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0],
)

QUERY_ROWS = Gauge(
    "pg_exporter_query_rows",
    "Rows returned by the most recent run of a statistics query",
    ["query"],
)

CONNECTION_LOSSES = Counter(
    "pg_exporter_connection_losses_total",
    "Database connections that terminated while a scrape still held them",
)
