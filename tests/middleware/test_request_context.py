"""Every response carries an X-Request-ID, generated or echoed."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from tests.conftest import FakeConnection


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/metrics", headers={"X-Request-ID": "scrape-0001"})
    assert resp.headers.get("x-request-id") == "scrape-0001"


def test_request_id_present_on_failed_scrapes(
    client: TestClient, fake_conn: FakeConnection
) -> None:
    fake_conn.rows["hit_miss"] = [("not", "a", "decimal")]
    resp = client.get("/metrics")
    assert resp.status_code == 500
    assert resp.headers.get("x-request-id") is not None


def test_completion_line_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO):
        client.get("/health", headers={"X-Request-ID": "probe-7"})
    summaries = [
        r for r in caplog.records if r.name == "pg_exporter.middleware.request_context"
    ]
    assert summaries
    assert getattr(summaries[-1], "request_id") == "probe-7"
    assert getattr(summaries[-1], "status_code") == 200
