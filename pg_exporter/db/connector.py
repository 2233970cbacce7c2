"""One short-lived database connection per scrape.

There is no pool and nothing is reused: ``open_connection`` builds a
``NullPool`` engine, checks out a single asyncpg-backed connection,
and throws both away when the request is done.

asyncpg drives its protocol from the event loop, so there is no I/O
pump for us to run.  What we still supervise is the connection's
lifetime: ``ConnectionWatch`` hooks asyncpg's termination listener and
keeps a side task waiting on it.  If the server drops the connection
while a scrape is using it, the watch logs it; it never raises into
the request, which will see its own query error.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import asyncpg
from fastapi import Request
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, create_async_engine
from sqlalchemy.pool import NullPool

from pg_exporter.core.config import Settings
from pg_exporter.core.errors import DatabaseConnectError
from pg_exporter.core.metrics import CONNECTION_LOSSES

logger = logging.getLogger(__name__)

# asyncpg raises plain OSError subclasses (refused, DNS failure, timeout) and its
# own PostgresError subclasses (bad password, unknown database) from
# connect(); SQLAlchemy does not wrap all of them.
_CONNECT_ERRORS = (
    SQLAlchemyError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
)


def build_database_url(settings: Settings) -> URL:
    return URL.create(
        "postgresql+asyncpg",
        username=settings.db_user,
        password=settings.db_password,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
    )


class ConnectionWatch:
    """Supervises one driver connection for the lifetime of a scrape."""

    def __init__(self, target: str) -> None:
        self._target = target
        self._terminated = asyncio.Event()
        self._released = False
        self._task: asyncio.Task[None] | None = None

    @property
    def lost(self) -> bool:
        return self._terminated.is_set() and not self._released

    def attach(self, driver_connection: Any) -> None:
        driver_connection.add_termination_listener(self._on_terminated)
        self._task = asyncio.create_task(
            self._watch(), name=f"connection-watch {self._target}"
        )
        self._task.add_done_callback(self._report_failure)

    def _on_terminated(self, _connection: Any) -> None:
        self._terminated.set()

    async def _watch(self) -> None:
        await self._terminated.wait()
        if not self._released:
            CONNECTION_LOSSES.inc()
            logger.error("connection to %s terminated during scrape", self._target)

    def _report_failure(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "connection watch for %s failed",
                self._target,
                exc_info=exc,
            )

    async def release(self) -> None:
        """Stop watching; termination after this point is expected."""
        self._released = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task


@asynccontextmanager
async def open_connection(settings: Settings) -> AsyncIterator[AsyncConnection]:
    """Connect to the configured database for the duration of one scrape.

    Raises:
        DatabaseConnectError: the server could not be reached, rejected
            the credentials, or does not have the database.
    """
    engine = create_async_engine(build_database_url(settings), poolclass=NullPool)
    try:
        try:
            conn = await engine.connect()
        except _CONNECT_ERRORS as e:
            raise DatabaseConnectError(
                f"cannot connect to {settings.db_target}: {e}"
            ) from e

        watch = ConnectionWatch(settings.db_target)
        try:
            raw = await conn.get_raw_connection()
            watch.attach(raw.driver_connection)
            logger.debug("connected to %s", settings.db_target)
            yield conn
        finally:
            await watch.release()
            await conn.close()
    finally:
        await engine.dispose()


async def get_connection(request: Request) -> AsyncIterator[AsyncConnection]:
    """FastAPI dependency: a fresh connection for this request only."""
    settings: Settings = request.app.state.settings
    async with open_connection(settings) as conn:
        yield conn
