"""
LensCritique Backend: Health Check Route
=========================================

What:  GET /health for container probes and load balancers.
How:   Runs `SELECT 1` against the backend's Postgres and asks the identity
       service for its own health.

Status levels:
    healthy    database and identity reachable          (HTTP 200)
    degraded   database fine, identity unreachable      (HTTP 200)
    unhealthy  database unreachable                     (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from app import __version__
from app.database import engine
from app.schemas.common import HealthResponse
from app.services.identity import identity_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    identity_status = "available"
    overall = "healthy"

    # ── Database ──────────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    # ── Identity service ──────────────────────────────────────────────────
    if not await identity_client.health_check():
        identity_status = "unavailable"
        if overall == "healthy":
            overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        identity=identity_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
