"""Tests for the per-scrape connector.

No database is required: connection failures use a port nothing
listens on, full requests run against a patched engine, and the
termination watch runs against a stand-in for the asyncpg connection.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from sqlalchemy.exc import DBAPIError

from pg_exporter.core.errors import DatabaseConnectError
from pg_exporter.db import connector
from pg_exporter.db.connector import ConnectionWatch, build_database_url, open_connection
from pg_exporter.main import create_app
from tests.conftest import FakeConnection, make_settings


class FakeDriverConnection:
    def __init__(self) -> None:
        self.listeners: list[Callable[[Any], None]] = []

    def add_termination_listener(self, callback: Callable[[Any], None]) -> None:
        self.listeners.append(callback)

    def terminate(self) -> None:
        for callback in self.listeners:
            callback(self)


class FakeAsyncConnection(FakeConnection):
    """Enough of AsyncConnection for open_connection and the collector."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.driver = FakeDriverConnection()
        self.closed = False

    async def get_raw_connection(self) -> SimpleNamespace:
        return SimpleNamespace(driver_connection=self.driver)

    async def close(self) -> None:
        self.closed = True
        # asyncpg fires termination listeners on a normal close too.
        self.driver.terminate()


class FakeEngine:
    def __init__(self, conn: FakeAsyncConnection) -> None:
        self.conn = conn
        self.disposed = False

    async def connect(self) -> FakeAsyncConnection:
        return self.conn

    async def dispose(self) -> None:
        self.disposed = True


def _losses() -> float:
    value = REGISTRY.get_sample_value("pg_exporter_connection_losses_total")
    return value if value is not None else 0.0


# ---- URL ----


def test_database_url_uses_asyncpg_driver() -> None:
    url = build_database_url(make_settings(db_port=6432))
    assert url.drivername == "postgresql+asyncpg"
    assert url.host == "db.internal"
    assert url.port == 6432
    assert url.database == "shop"
    assert url.username == "exporter"


def test_database_url_keeps_special_characters_in_password() -> None:
    url = build_database_url(make_settings(db_password="p@ss/w:rd"))
    assert url.password == "p@ss/w:rd"
    assert "p@ss/w:rd" not in url.render_as_string(hide_password=True)


# ---- connect ----


def test_unreachable_host_raises_connect_error() -> None:
    settings = make_settings(db_host="127.0.0.1", db_port=1)

    async def _scrape() -> None:
        async with open_connection(settings):
            pass

    with pytest.raises(DatabaseConnectError, match="127.0.0.1:1/shop") as exc_info:
        asyncio.run(_scrape())
    assert exc_info.value.stage == "connect"
    assert exc_info.value.__cause__ is not None


# ---- termination watch ----


def test_watch_logs_connection_lost_mid_scrape(
    caplog: pytest.LogCaptureFixture,
) -> None:
    async def _drop() -> bool:
        driver = FakeDriverConnection()
        watch = ConnectionWatch("db.internal:5432/shop")
        watch.attach(driver)
        driver.terminate()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        lost = watch.lost
        await watch.release()
        return lost

    before = _losses()
    with caplog.at_level(logging.ERROR):
        lost = asyncio.run(_drop())

    assert lost is True
    assert _losses() - before == 1
    assert "terminated during scrape" in caplog.text


def test_watch_ignores_close_after_release(caplog: pytest.LogCaptureFixture) -> None:
    async def _close() -> bool:
        driver = FakeDriverConnection()
        watch = ConnectionWatch("db.internal:5432/shop")
        watch.attach(driver)
        await watch.release()
        driver.terminate()
        await asyncio.sleep(0)
        return watch.lost

    before = _losses()
    with caplog.at_level(logging.ERROR):
        lost = asyncio.run(_close())

    assert lost is False
    assert _losses() == before
    assert "terminated during scrape" not in caplog.text


def test_watch_logs_its_own_failure(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    async def _broken(self: ConnectionWatch) -> None:
        raise RuntimeError("listener state corrupted")

    monkeypatch.setattr(ConnectionWatch, "_watch", _broken)

    async def _scrape() -> None:
        watch = ConnectionWatch("db.internal:5432/shop")
        watch.attach(FakeDriverConnection())
        for _ in range(3):
            await asyncio.sleep(0)
        await watch.release()

    with caplog.at_level(logging.ERROR):
        asyncio.run(_scrape())

    assert "connection watch for db.internal:5432/shop failed" in caplog.text
    assert "RuntimeError: listener state corrupted" in caplog.text


# ---- full request through the real dependency ----


@pytest.fixture
def engine(monkeypatch: pytest.MonkeyPatch) -> FakeEngine:
    fake = FakeEngine(FakeAsyncConnection())
    monkeypatch.setattr(connector, "create_async_engine", lambda *a, **kw: fake)
    return fake


def test_successful_scrape_closes_connection_and_engine(engine: FakeEngine) -> None:
    engine.conn.rows["index_usage"] = [("orders", 23, 1200)]
    before = _losses()

    resp = TestClient(create_app(make_settings())).get("/metrics")

    assert resp.status_code == 200
    assert "postgresql.index_usage.rows_in_table.orders 1200\n" in resp.text
    assert engine.conn.closed is True
    assert engine.disposed is True
    assert engine.conn.driver.listeners
    # Termination after release is a normal close, not a loss.
    assert _losses() == before


def test_failed_query_still_closes_connection_and_engine(engine: FakeEngine) -> None:
    engine.conn.errors["hit_miss"] = DBAPIError(
        "SELECT", {}, Exception("division by zero")
    )

    resp = TestClient(create_app(make_settings())).get("/metrics")

    assert resp.status_code == 500
    assert engine.conn.executed == ["common_effectiveness", "hit_miss"]
    assert engine.conn.closed is True
    assert engine.disposed is True
