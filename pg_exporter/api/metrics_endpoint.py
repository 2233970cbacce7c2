"""Scrape endpoint.

GET /metrics opens a connection, runs the statistics queries and
returns the dotted-name text.  Failures surface as ExporterError and
are turned into a 5xx by the handler installed in ``create_app``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncConnection

from pg_exporter.db.connector import get_connection
from pg_exporter.services.collector import collect
from pg_exporter.services.renderer import render

router = APIRouter(tags=["scrape"])


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics(
    conn: Annotated[AsyncConnection, Depends(get_connection)],
) -> PlainTextResponse:
    snapshot = await collect(conn)
    return PlainTextResponse(render(snapshot))
