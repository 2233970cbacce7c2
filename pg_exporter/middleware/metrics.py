"""Prometheus instrumentation for every HTTP request.

Counts requests by method/path/status, times them, and tracks how many
are in flight.  Scrapes of /exporter/metrics are not counted, so the
self-metrics job does not inflate its own numbers.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from pg_exporter.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

SELF_METRICS_PATH = "/exporter/metrics"


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == SELF_METRICS_PATH:
            return await call_next(request)

        # Anything that escapes the handlers becomes a 500 upstream.
        status_code = "500"
        started = time.monotonic()
        with ACTIVE_REQUESTS.track_inprogress():
            try:
                response = await call_next(request)
                status_code = str(response.status_code)
                return response
            finally:
                REQUEST_DURATION.labels(method=request.method, endpoint=path).observe(
                    time.monotonic() - started
                )
                REQUEST_COUNT.labels(
                    method=request.method, endpoint=path, status_code=status_code
                ).inc()
