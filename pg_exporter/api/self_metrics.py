"""The exporter's own Prometheus metrics.

Kept off /metrics, which belongs to the database statistics.  Point a
Prometheus job at /exporter/metrics to watch scrape failures and query
latency of the exporter itself.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/exporter/metrics", include_in_schema=False)
async def exporter_metrics() -> Response:
    """Expose prometheus_client metrics in text exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
