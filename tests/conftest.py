from __future__ import annotations

import sys
from collections.abc import AsyncIterator, Sequence
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import pg_exporter` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pg_exporter.core.config import Settings  # noqa: E402
from pg_exporter.db.connector import get_connection  # noqa: E402
from pg_exporter.main import create_app  # noqa: E402
from pg_exporter.services.queries import ALL_QUERIES  # noqa: E402

TEST_PASSWORD = "hunter2-not-in-logs"

_QUERY_NAMES = {q.statement.text: q.name for q in ALL_QUERIES}


class FakeResult:
    def __init__(self, rows: Sequence[Sequence[Any]]) -> None:
        self._rows = rows

    def all(self) -> list[Sequence[Any]]:
        return list(self._rows)


class FakeConnection:
    """Answers the statistics queries from canned rows, keyed by query name."""

    def __init__(
        self,
        rows: dict[str, list[tuple]] | None = None,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.rows = rows if rows is not None else {}
        self.errors = errors if errors is not None else {}
        self.executed: list[str] = []

    async def execute(self, statement: Any) -> FakeResult:
        name = _QUERY_NAMES[statement.text]
        self.executed.append(name)
        if name in self.errors:
            raise self.errors[name]
        return FakeResult(self.rows.get(name, []))


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "db_host": "db.internal",
        "db_name": "shop",
        "db_user": "exporter",
        "db_password": TEST_PASSWORD,
        "app_env": "test",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_conn() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def client(settings: Settings, fake_conn: FakeConnection) -> TestClient:
    app = create_app(settings)

    async def _fake_connection() -> AsyncIterator[FakeConnection]:
        yield fake_conn

    app.dependency_overrides[get_connection] = _fake_connection
    return TestClient(app)
