"""Run the statistics queries against one connection.

The queries execute strictly one after another: each result set is
fully fetched and decoded before the next statement is sent.  Any
failure aborts the whole scrape; there is no partial result.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from sqlalchemy.exc import DBAPIError, ProgrammingError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from pg_exporter.core.errors import (
    DecodeError,
    QueryExecutionError,
    QueryPrepareError,
)
from pg_exporter.core.metrics import QUERY_DURATION, QUERY_ROWS
from pg_exporter.models.stats import (
    CacheHitMiss,
    IndexUsage,
    ScrapeSnapshot,
    TableEffectiveness,
)
from pg_exporter.services.queries import (
    COMMON_EFFECTIVENESS,
    HIT_MISS,
    INDEX_USAGE,
    StatQuery,
)

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


async def _fetch_rows(conn: AsyncConnection, query: StatQuery) -> Sequence[Any]:
    start = time.monotonic()
    try:
        result = await conn.execute(query.statement)
        rows = result.all()
    except ProgrammingError as e:
        # Syntax errors and unknown relations/columns are reported by the
        # server while the statement is being prepared.
        raise QueryPrepareError(
            f"query {query.name!r} was rejected by the server: {e.orig}",
            query=query.name,
        ) from e
    except DBAPIError as e:
        raise QueryExecutionError(
            f"query {query.name!r} failed: {e.orig}", query=query.name
        ) from e
    except SQLAlchemyError as e:
        raise QueryExecutionError(
            f"query {query.name!r} failed: {e}", query=query.name
        ) from e

    duration = time.monotonic() - start
    QUERY_DURATION.labels(query=query.name).observe(duration)
    QUERY_ROWS.labels(query=query.name).set(len(rows))
    logger.debug(
        "query %s returned %d rows in %.1fms",
        query.name,
        len(rows),
        duration * 1000,
    )
    return rows


async def _run(
    conn: AsyncConnection,
    query: StatQuery,
    decode: Callable[[Sequence[Any]], RecordT],
) -> list[RecordT]:
    rows = await _fetch_rows(conn, query)
    records: list[RecordT] = []
    for row in rows:
        try:
            records.append(decode(row))
        except DecodeError as e:
            e.query = query.name
            if e.column is not None:
                e.column_name = query.columns[e.column]
            raise
    return records


async def collect(conn: AsyncConnection) -> ScrapeSnapshot:
    """Run common-effectiveness, hit/miss and index-usage, in that order."""
    common = await _run(conn, COMMON_EFFECTIVENESS, TableEffectiveness.from_row)
    hit_miss = await _run(conn, HIT_MISS, CacheHitMiss.from_row)
    index_usage = await _run(conn, INDEX_USAGE, IndexUsage.from_row)
    return ScrapeSnapshot(
        common_effectiveness=common,
        hit_miss=hit_miss,
        index_usage=index_usage,
    )
