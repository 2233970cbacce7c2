"""Liveness endpoint.

Answers without touching the database: a failing database shows up as
5xx on /metrics, not as a dead exporter.
"""

from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}
